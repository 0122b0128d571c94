# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Azure DevOps Provider

Wraps the Azure DevOps Git and Service Hooks REST APIs using a
personal access token.
"""

import base64
from typing import Dict, Any, Optional, List
from urllib.parse import quote
import structlog

from prbridge.core.config import WorkflowConfig
from prbridge.core.exceptions import ProviderRejection, ResourceNotFound
from .provider_base import (
    SCMProvider,
    ProjectRef,
    BranchRef,
    FileRef,
    ChangeRequestRef,
)

logger = structlog.get_logger(__name__)

AZURE_API_VERSION = "7.1"
EMPTY_OBJECT_ID = "0000000000000000000000000000000000000000"


class AzureDevOpsProvider(SCMProvider):
    """
    Azure DevOps provider implementation.

    Documentation: https://learn.microsoft.com/en-us/rest/api/azure/devops/
    """

    def __init__(
        self,
        personal_access_token: str,
        org_url: str,
        webhook_username: str = "webhook",
        webhook_password: Optional[str] = None,
        event_type: str = "git.pullrequest.updated",
        timeout: float = 30.0,
    ):
        """
        Initialize Azure DevOps provider.

        Args:
            personal_access_token: Azure DevOps PAT
            org_url: Organization URL (e.g., https://dev.azure.com/my-org)
            webhook_username: Basic auth username attached to service hooks
            webhook_password: Basic auth password attached to service hooks
            event_type: Service hook event the subscription listens for
            timeout: Per-request timeout in seconds
        """
        super().__init__(org_url, timeout)
        self.personal_access_token = personal_access_token
        self.webhook_username = webhook_username
        self.webhook_password = webhook_password
        self.event_type = event_type

    @property
    def org_url(self) -> str:
        return self.base_url

    @property
    def provider_name(self) -> str:
        return "azure"

    @property
    def webhook_path(self) -> str:
        return "/api/azure-webhook"

    def _auth_headers(self) -> Dict[str, str]:
        pat = self._require(self.personal_access_token, "AZURE_DEVOPS_PAT")
        self._require(self.base_url, "AZURE_DEVOPS_ORG_URL")
        # Empty username, PAT as password
        credentials = base64.b64encode(f":{pat}".encode("utf-8")).decode("utf-8")
        return {
            "Authorization": f"Basic {credentials}",
            "Content-Type": "application/json",
        }

    def _default_params(self) -> Dict[str, Any]:
        return {"api-version": AZURE_API_VERSION}

    def _git_path(self, project: ProjectRef) -> str:
        return (
            f"/{quote(project.owner)}/_apis/git/repositories/{project.repository_id}"
        )

    async def resolve_project(self, config: WorkflowConfig) -> ProjectRef:
        """
        Resolve project ID, then repository ID.

        Args:
            config: Workflow config (owner = project name, repo = repository name)

        Returns:
            ProjectRef with both IDs
        """
        project_data = await self._request(
            "GET", f"/_apis/projects/{quote(config.owner)}"
        )
        repo_data = await self._request(
            "GET",
            f"/{quote(config.owner)}/_apis/git/repositories/{quote(config.repo)}",
        )

        logger.info(
            "azure_project_resolved",
            project=config.owner,
            project_id=project_data.get("id"),
            repository_id=repo_data.get("id"),
        )

        return ProjectRef(
            project_id=project_data["id"],
            owner=config.owner,
            repo=config.repo,
            repository_id=repo_data["id"],
            data={"project": project_data, "repository": repo_data},
        )

    async def list_webhooks(self, project: ProjectRef) -> List[Dict[str, Any]]:
        # Service hook subscriptions are organization-wide
        data = await self._request("GET", "/_apis/hooks/subscriptions")
        return (data or {}).get("value", [])

    def webhook_target_url(self, hook: Dict[str, Any]) -> Optional[str]:
        return (hook.get("consumerInputs") or {}).get("url")

    async def create_webhook(self, project: ProjectRef, webhook_url: str) -> Dict[str, Any]:
        """
        Create a service hook subscription posting to webhook_url.

        Args:
            project: Resolved project and repository
            webhook_url: URL to send events to

        Returns:
            Subscription object
        """
        consumer_inputs = {"url": webhook_url}
        if self.webhook_password:
            consumer_inputs["basicAuthUsername"] = self.webhook_username
            consumer_inputs["basicAuthPassword"] = self.webhook_password

        subscription = await self._request(
            "POST",
            "/_apis/hooks/subscriptions",
            json={
                "publisherId": "tfs",
                "eventType": self.event_type,
                "resourceVersion": "1.0",
                "consumerId": "webHooks",
                "consumerActionId": "httpRequest",
                "publisherInputs": {
                    "projectId": project.project_id,
                    "repository": project.repository_id,
                },
                "consumerInputs": consumer_inputs,
            },
        )

        logger.info(
            "azure_service_hook_created",
            project=project.owner,
            subscription_id=subscription.get("id"),
            event_type=self.event_type,
        )

        return subscription

    async def get_branch(self, project: ProjectRef, branch_name: str) -> BranchRef:
        data = await self._request(
            "GET",
            f"{self._git_path(project)}/refs",
            params={"filter": f"heads/{branch_name}"},
        )

        # filter is a prefix match; only the exact ref counts
        wanted = f"refs/heads/{branch_name}"
        for ref in (data or {}).get("value", []):
            if ref.get("name") == wanted:
                return BranchRef(name=branch_name, sha=ref["objectId"])

        raise ResourceNotFound(f"Base branch '{branch_name}' not found")

    async def create_branch(
        self, project: ProjectRef, branch_name: str, base: BranchRef
    ) -> BranchRef:
        data = await self._request(
            "POST",
            f"{self._git_path(project)}/refs",
            json=[
                {
                    "name": f"refs/heads/{branch_name}",
                    "oldObjectId": EMPTY_OBJECT_ID,
                    "newObjectId": base.sha,
                }
            ],
        )

        results = (data or {}).get("value", [])
        if results and results[0].get("success") is False:
            raise ProviderRejection(
                f"Failed to create branch '{branch_name}'",
                status_code=409,
                details=results[0],
            )

        logger.info(
            "azure_branch_created",
            project=project.owner,
            repository_id=project.repository_id,
            branch=branch_name,
            sha=base.sha,
        )

        return BranchRef(name=branch_name, sha=base.sha)

    @staticmethod
    def _item_path(file_path: str) -> str:
        return file_path if file_path.startswith("/") else f"/{file_path}"

    async def get_file(
        self, project: ProjectRef, file_path: str, ref: str
    ) -> Optional[FileRef]:
        try:
            item = await self._request(
                "GET",
                f"{self._git_path(project)}/items",
                params={
                    "path": self._item_path(file_path),
                    "versionDescriptor.version": ref,
                    "versionDescriptor.versionType": "branch",
                    "$format": "json",
                },
            )
        except ResourceNotFound:
            return None

        return FileRef(path=file_path, content_id=item.get("objectId"), data=item)

    async def write_file(
        self,
        project: ProjectRef,
        branch: BranchRef,
        file_path: str,
        content: str,
        message: str,
        existing: Optional[FileRef] = None,
    ) -> Dict[str, Any]:
        """
        Push one commit to branch.

        The ref update is conditional on branch.sha still being the head
        of the branch.
        """
        change_type = "edit" if existing else "add"

        push = await self._request(
            "POST",
            f"{self._git_path(project)}/pushes",
            json={
                "refUpdates": [
                    {
                        "name": f"refs/heads/{branch.name}",
                        "oldObjectId": branch.sha,
                    }
                ],
                "commits": [
                    {
                        "comment": message,
                        "changes": [
                            {
                                "changeType": change_type,
                                "item": {"path": self._item_path(file_path)},
                                "newContent": {
                                    "content": content,
                                    "contentType": "rawtext",
                                },
                            }
                        ],
                    }
                ],
            },
        )

        logger.info(
            "azure_changes_pushed",
            project=project.owner,
            branch=branch.name,
            change_type=change_type,
            push_id=(push or {}).get("pushId"),
        )

        return push

    def pull_request_url(self, project: ProjectRef, pull_request_id: int) -> str:
        return f"{self.org_url}/{project.owner}/_git/{project.repo}/pullrequest/{pull_request_id}"

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
            f"{self._git_path(project)}/pullrequests",
            json={
                "sourceRefName": f"refs/heads/{source_branch}",
                "targetRefName": f"refs/heads/{target_branch}",
                "title": title,
                "description": description,
            },
        )

        pull_request_id = pr_data["pullRequestId"]

        logger.info(
            "azure_pull_request_created",
            project=project.owner,
            pull_request_id=pull_request_id,
        )

        return ChangeRequestRef(
            id=pull_request_id,
            url=self.pull_request_url(project, pull_request_id),
            title=pr_data["title"],
            data=pr_data,
        )
