# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
GitLab Provider

Wraps the GitLab v4 REST API using a personal access token.
"""

from typing import Dict, Any, Optional, List
from urllib.parse import quote
import structlog

from prbridge.core.config import WorkflowConfig
from prbridge.core.exceptions import ResourceNotFound
from .provider_base import (
    SCMProvider,
    ProjectRef,
    BranchRef,
    FileRef,
    ChangeRequestRef,
)

logger = structlog.get_logger(__name__)


class GitLabProvider(SCMProvider):
    """
    GitLab provider implementation.

    Documentation: https://docs.gitlab.com/ee/api/rest/
    """

    def __init__(
        self,
        private_token: str,
        gitlab_url: str = "https://gitlab.com",
        timeout: float = 30.0,
    ):
        """
        Initialize GitLab provider.

        Args:
            private_token: GitLab personal access token (needs `api` scope)
            gitlab_url: GitLab instance URL (default: https://gitlab.com)
            timeout: Per-request timeout in seconds
        """
        self.gitlab_url = gitlab_url.rstrip("/")
        super().__init__(f"{self.gitlab_url}/api/v4", timeout)
        self.private_token = private_token

    @property
    def provider_name(self) -> str:
        return "gitlab"

    @property
    def webhook_path(self) -> str:
        return "/api/gitlab-webhook"

    @property
    def change_request_label(self) -> str:
        return "merge request"

    @property
    def webhook_forbidden_is_fatal(self) -> bool:
        # PATs without Maintainer access cannot manage hooks; carry on without one
        return False

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "PRIVATE-TOKEN": self._require(self.private_token, "GITLAB_PAT"),
            "Content-Type": "application/json",
        }

    async def resolve_project(self, config: WorkflowConfig) -> ProjectRef:
        """
        Resolve the numeric project ID from its path.

        Args:
            config: Workflow config whose owner/repo form the project path

        Returns:
            ProjectRef with the numeric project ID
        """
        project_data = await self._request(
            "GET",
            f"/projects/{quote(config.project_path, safe='')}",
        )

        logger.info(
            "gitlab_project_fetched",
            project_id=project_data.get("id"),
            project_path=project_data.get("path_with_namespace"),
        )

        return ProjectRef(
            project_id=project_data["id"],
            owner=config.owner,
            repo=config.repo,
            data=project_data,
        )

    async def list_webhooks(self, project: ProjectRef) -> List[Dict[str, Any]]:
        hooks = await self._request("GET", f"/projects/{project.project_id}/hooks")
        return hooks or []

    def webhook_target_url(self, hook: Dict[str, Any]) -> Optional[str]:
        return hook.get("url")

    async def create_webhook(self, project: ProjectRef, webhook_url: str) -> Dict[str, Any]:
        """
        Create a project hook that only fires on merge request events.

        Args:
            project: Resolved project
            webhook_url: URL to send webhook events to

        Returns:
            Hook object with id, url, etc.
        """
        hook_data = await self._request(
            "POST",
            f"/projects/{project.project_id}/hooks",
            json={
                "url": webhook_url,
                "merge_requests_events": True,
                "push_events": False,
                "issues_events": False,
                "wiki_page_events": False,
                "pipeline_events": False,
                "tag_push_events": False,
                "note_events": False,
                "enable_ssl_verification": True,
            },
        )

        logger.info(
            "gitlab_hook_created",
            project_id=project.project_id,
            hook_id=hook_data.get("id"),
        )

        return hook_data

    async def get_branch(self, project: ProjectRef, branch_name: str) -> BranchRef:
        try:
            branch_data = await self._request(
                "GET",
                f"/projects/{project.project_id}/repository/branches/{quote(branch_name, safe='')}",
            )
        except ResourceNotFound as e:
            raise ResourceNotFound(
                f"Base branch '{branch_name}' not found", details=e.details
            ) from e

        return BranchRef(name=branch_name, sha=branch_data["commit"]["id"])

    async def create_branch(
        self, project: ProjectRef, branch_name: str, base: BranchRef
    ) -> BranchRef:
        branch_data = await self._request(
            "POST",
            f"/projects/{project.project_id}/repository/branches",
            json={
                "branch": branch_name,
                "ref": base.sha,
            },
        )

        logger.info(
            "gitlab_branch_created",
            project_id=project.project_id,
            branch=branch_name,
            sha=base.sha,
        )

        commit = (branch_data or {}).get("commit") or {}
        return BranchRef(name=branch_name, sha=commit.get("id", base.sha))

    async def get_file(
        self, project: ProjectRef, file_path: str, ref: str
    ) -> Optional[FileRef]:
        try:
            file_data = await self._request(
                "GET",
                f"/projects/{project.project_id}/repository/files/{quote(file_path, safe='')}",
                params={"ref": ref},
            )
        except ResourceNotFound:
            return None

        return FileRef(
            path=file_path,
            content_id=file_data.get("last_commit_id"),
            data=file_data,
        )

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
            "branch": branch.name,
            "content": content,
            "commit_message": message,
        }

        # POST creates, PUT updates; last_commit_id guards against concurrent edits
        if existing:
            method = "PUT"
            if existing.content_id:
                payload["last_commit_id"] = existing.content_id
        else:
            method = "POST"

        return await self._request(
            method,
            f"/projects/{project.project_id}/repository/files/{quote(file_path, safe='')}",
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
        mr_data = await self._request(
            "POST",
            f"/projects/{project.project_id}/merge_requests",
            json={
                "source_branch": source_branch,
                "target_branch": target_branch,
                "title": title,
                "description": description,
            },
        )

        logger.info(
            "gitlab_merge_request_created",
            project_id=project.project_id,
            mr_iid=mr_data.get("iid"),
        )

        return ChangeRequestRef(
            id=mr_data["iid"],
            url=mr_data["web_url"],
            title=mr_data["title"],
            data=mr_data,
        )
