# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
GitHub App Provider

Authenticates as a GitHub App installation and wraps the REST calls
the PR workflow needs.
"""

import base64
import time
from typing import Dict, Any, Optional, List
from urllib.parse import quote
import jwt
import structlog

from prbridge.core.config import WorkflowConfig
from prbridge.core.exceptions import AuthenticationFailure, ResourceNotFound
from .provider_base import (
    SCMProvider,
    ProjectRef,
    BranchRef,
    FileRef,
    ChangeRequestRef,
)

logger = structlog.get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"


class GitHubAppProvider(SCMProvider):
    """
    GitHub App provider implementation.

    Documentation: https://docs.github.com/en/apps/creating-github-apps/authenticating-with-a-github-app
    """

    def __init__(
        self,
        app_id: str,
        private_key: str,
        installation_id: str,
        webhook_secret: Optional[str] = None,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ):
        """
        Initialize GitHub App provider.

        Args:
            app_id: GitHub App ID
            private_key: GitHub App private key (PEM)
            installation_id: Installation ID of the App on the target account
            webhook_secret: HMAC secret attached to created webhooks
            api_url: GitHub REST API root
            timeout: Per-request timeout in seconds
        """
        super().__init__(api_url, timeout)
        self.app_id = app_id
        self.private_key = private_key
        self.installation_id = installation_id
        self.webhook_secret = webhook_secret
        self._installation_token: Optional[str] = None

    @property
    def provider_name(self) -> str:
        return "github"

    @property
    def webhook_path(self) -> str:
        return "/api/webhook"

    def _headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def _auth_headers(self) -> Dict[str, str]:
        if not self._installation_token:
            raise AuthenticationFailure("GitHub installation token has not been obtained")
        return self._headers(self._installation_token)

    def generate_app_jwt(self) -> str:
        """
        Sign a short-lived App JWT (RS256).

        GitHub rejects tokens valid for more than 10 minutes; iat is
        backdated 60 seconds to absorb clock drift.

        Returns:
            Encoded JWT
        """
        app_id = self._require(self.app_id, "GITHUB_APP_ID")
        private_key = self._require(self.private_key, "GITHUB_APP_PRIVATE_KEY")

        now = int(time.time())
        payload = {
            "iat": now - 60,
            "exp": now + 540,
            "iss": str(app_id),
        }

        try:
            return jwt.encode(payload, private_key, algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            logger.error("github_app_jwt_signing_failed", error=str(e))
            raise AuthenticationFailure(f"Unable to sign GitHub App JWT: {e}") from e

    async def authenticate(self) -> None:
        """
        Exchange the App JWT for an installation access token.

        Raises:
            AuthenticationFailure: If credentials are missing or rejected
        """
        installation_id = self._require(self.installation_id, "GITHUB_INSTALLATION_ID")
        app_jwt = self.generate_app_jwt()

        token_data = await self._request(
            "POST",
            f"/app/installations/{installation_id}/access_tokens",
            headers=self._headers(app_jwt),
        )

        token = (token_data or {}).get("token")
        if not token:
            raise AuthenticationFailure(
                "GitHub did not return an installation access token",
                details=token_data,
            )

        self._installation_token = token

        logger.info(
            "github_installation_token_obtained",
            installation_id=installation_id,
            expires_at=token_data.get("expires_at"),
        )

    async def resolve_project(self, config: WorkflowConfig) -> ProjectRef:
        # GitHub addresses repositories by owner/name directly
        return ProjectRef(
            project_id=config.project_path,
            owner=config.owner,
            repo=config.repo,
            repository_id=config.repo,
        )

    def _repo_path(self, project: ProjectRef) -> str:
        return f"/repos/{project.owner}/{project.repo}"

    async def list_webhooks(self, project: ProjectRef) -> List[Dict[str, Any]]:
        hooks = await self._request("GET", f"{self._repo_path(project)}/hooks")
        return hooks or []

    def webhook_target_url(self, hook: Dict[str, Any]) -> Optional[str]:
        return (hook.get("config") or {}).get("url")

    async def create_webhook(self, project: ProjectRef, webhook_url: str) -> Dict[str, Any]:
        """
        Create a pull_request webhook in the repository.

        Args:
            project: Resolved repository
            webhook_url: URL to send webhook events to

        Returns:
            Webhook object with id, config, etc.
        """
        config = {
            "url": webhook_url,
            "content_type": "json",
            "insecure_ssl": "0",
        }
        if self.webhook_secret:
            config["secret"] = self.webhook_secret
        else:
            logger.warning(
                "github_webhook_secret_not_set",
                message="Webhook will be created without signature verification",
            )

        webhook_data = await self._request(
            "POST",
            f"{self._repo_path(project)}/hooks",
            json={
                "name": "web",
                "active": True,
                "events": ["pull_request"],
                "config": config,
            },
        )

        logger.info(
            "github_webhook_created",
            owner=project.owner,
            repo=project.repo,
            webhook_id=webhook_data.get("id"),
        )

        return webhook_data

    async def get_branch(self, project: ProjectRef, branch_name: str) -> BranchRef:
        ref_data = await self._request(
            "GET",
            f"{self._repo_path(project)}/git/ref/heads/{quote(branch_name)}",
        )
        # A prefix match returns a list instead of a single ref
        if not isinstance(ref_data, dict):
            raise ResourceNotFound(f"Base branch '{branch_name}' not found")
        return BranchRef(name=branch_name, sha=ref_data["object"]["sha"])

    async def create_branch(
        self, project: ProjectRef, branch_name: str, base: BranchRef
    ) -> BranchRef:
        await self._request(
            "POST",
            f"{self._repo_path(project)}/git/refs",
            json={
                "ref": f"refs/heads/{branch_name}",
                "sha": base.sha,
            },
        )

        logger.info(
            "github_branch_created",
            owner=project.owner,
            repo=project.repo,
            branch=branch_name,
            sha=base.sha,
        )

        return BranchRef(name=branch_name, sha=base.sha)

    async def get_file(
        self, project: ProjectRef, file_path: str, ref: str
    ) -> Optional[FileRef]:
        try:
            file_data = await self._request(
                "GET",
                f"{self._repo_path(project)}/contents/{quote(file_path)}",
                params={"ref": ref},
            )
        except ResourceNotFound:
            return None

        # Directories come back as a list and cannot be overwritten
        if not isinstance(file_data, dict) or "sha" not in file_data:
            return None

        return FileRef(path=file_path, content_id=file_data["sha"], data=file_data)

    async def write_file(
        self,
        project: ProjectRef,
        branch: BranchRef,
        file_path: str,
        content: str,
        message: str,
        existing: Optional[FileRef] = None,
    ) -> Dict[str, Any]:
        payload = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("utf-8"),
            "branch": branch.name,
        }

        if existing and existing.content_id:
            payload["sha"] = existing.content_id

        return await self._request(
            "PUT",
            f"{self._repo_path(project)}/contents/{quote(file_path)}",
            json=payload,
        )

    async def open_change_request(
        self,
        project: ProjectRef,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
    ) -> ChangeRequestRef:
        pr_data = await self._request(
            "POST",
            f"{self._repo_path(project)}/pulls",
            json={
                "title": title,
                "body": description,
                "head": source_branch,
                "base": target_branch,
            },
        )

        logger.info(
            "github_pull_request_created",
            owner=project.owner,
            repo=project.repo,
            pr_number=pr_data.get("number"),
        )

        return ChangeRequestRef(
            id=pr_data["number"],
            url=pr_data["html_url"],
            title=pr_data["title"],
            data=pr_data,
        )
