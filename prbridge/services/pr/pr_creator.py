# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
PR Creator Service

Runs the branch -> commit -> pull/merge request workflow against any
SCMProvider.
"""

import time
from dataclasses import dataclass
from typing import Optional
import structlog

from prbridge.core.config import WorkflowConfig
from prbridge.services.providers.provider_base import SCMProvider
from prbridge.services.webhook.webhook_manager import WebhookManager

logger = structlog.get_logger(__name__)


@dataclass
class ChangeRequestResult:
    """Normalized outcome of one workflow run."""

    id: int
    url: str
    title: str
    branch: str


class PRCreator:
    """
    Creates pull requests (or GitLab merge requests) from a WorkflowConfig.

    Responsibilities:
    - Authenticate and resolve the target project
    - Make sure the provider's webhook points back at this service
    - Branch from the current head of the base branch
    - Create or update the configured file on the new branch
    - Open the pull/merge request

    Any failure aborts the remaining steps; nothing is rolled back.
    """

    def __init__(self, webhook_manager: WebhookManager):
        """
        Initialize PR creator.

        Args:
            webhook_manager: Manager used for the webhook ensure-exists step
        """
        self.webhook_manager = webhook_manager

    @staticmethod
    def generate_branch_name(prefix: str, now: Optional[float] = None) -> str:
        """
        Generate a unique branch name.

        Args:
            prefix: Branch name prefix
            now: Epoch seconds (defaults to the current time)

        Returns:
            Branch name like: feature/auto-pr-1718000000000
        """
        timestamp = now if now is not None else time.time()
        return f"{prefix}-{int(timestamp * 1000)}"

    async def run(
        self,
        provider: SCMProvider,
        config: WorkflowConfig,
    ) -> ChangeRequestResult:
        """
        Execute the workflow.

        Args:
            provider: Provider client to run against
            config: Repository, file and PR settings

        Returns:
            ChangeRequestResult for the opened pull/merge request

        Raises:
            SCMError: On the first failing step
        """
        log = logger.bind(provider=provider.provider_name, project=config.project_path)

        await provider.authenticate()
        log.info("provider_authenticated")

        project = await provider.resolve_project(config)

        if config.webhook_base_url:
            webhook_url = WebhookManager.build_webhook_url(
                config.webhook_base_url, provider.webhook_path
            )
            await self.webhook_manager.ensure_webhook(provider, project, webhook_url)
        else:
            log.warning(
                "webhook_base_url_not_configured",
                message="Skipping webhook registration",
            )

        base = await provider.get_branch(project, config.base_branch)
        log.info("base_branch_resolved", base_branch=base.name, sha=base.sha)

        branch_name = self.generate_branch_name(config.branch_prefix)
        branch = await provider.create_branch(project, branch_name, base)
        log.info("branch_created", branch=branch.name, sha=base.sha)

        existing = await provider.get_file(project, config.file_path, branch.name)
        log.info(
            "file_existence_checked",
            file_path=config.file_path,
            exists=existing is not None,
        )

        await provider.write_file(
            project,
            branch,
            config.file_path,
            config.file_content,
            config.commit_message,
            existing=existing,
        )
        log.info(
            "file_committed",
            file_path=config.file_path,
            action="update" if existing else "create",
        )

        change_request = await provider.open_change_request(
            project,
            source_branch=branch.name,
            target_branch=config.base_branch,
            title=config.pr_title,
            description=config.pr_body,
        )

        log.info(
            "change_request_opened",
            kind=provider.change_request_label,
            id=change_request.id,
            url=change_request.url,
        )

        return ChangeRequestResult(
            id=change_request.id,
            url=change_request.url,
            title=change_request.title,
            branch=branch.name,
        )
