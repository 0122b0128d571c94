# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
FastAPI dependency providers.
"""

from functools import lru_cache

from fastapi import Depends

from prbridge.core.config import Settings, get_settings
from prbridge.services.pr import PRCreator
from prbridge.services.providers import (
    AzureDevOpsProvider,
    GitHubAppProvider,
    GitLabProvider,
)
from prbridge.services.webhook import WebhookManager


@lru_cache()
def get_webhook_manager() -> WebhookManager:
    """Process-wide manager so ensure-exists locks are shared between requests."""
    return WebhookManager()


def get_pr_creator(
    webhook_manager: WebhookManager = Depends(get_webhook_manager),
) -> PRCreator:
    return PRCreator(webhook_manager)


def get_github_provider(settings: Settings = Depends(get_settings)) -> GitHubAppProvider:
    return GitHubAppProvider(
        app_id=settings.github_app_id,
        private_key=settings.github_app_private_key,
        installation_id=settings.github_installation_id,
        webhook_secret=settings.github_webhook_secret,
        api_url=settings.github_api_url,
        timeout=settings.http_timeout_seconds,
    )


def get_gitlab_provider(settings: Settings = Depends(get_settings)) -> GitLabProvider:
    return GitLabProvider(
        private_token=settings.gitlab_pat,
        gitlab_url=settings.gitlab_url,
        timeout=settings.http_timeout_seconds,
    )


def get_azure_provider(settings: Settings = Depends(get_settings)) -> AzureDevOpsProvider:
    return AzureDevOpsProvider(
        personal_access_token=settings.azure_devops_pat,
        org_url=settings.azure_devops_org_url,
        webhook_username=settings.azure_outbound_webhook_username,
        webhook_password=settings.azure_webhook_password,
        timeout=settings.http_timeout_seconds,
    )
