# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Source Control Providers

REST clients for GitHub (App auth), GitLab (PAT) and Azure DevOps (PAT).
"""

from .provider_base import (
    SCMProvider,
    ProjectRef,
    BranchRef,
    FileRef,
    ChangeRequestRef,
)
from .github_app import GitHubAppProvider
from .gitlab import GitLabProvider
from .azure_devops import AzureDevOpsProvider

__all__ = [
    "SCMProvider",
    "ProjectRef",
    "BranchRef",
    "FileRef",
    "ChangeRequestRef",
    "GitHubAppProvider",
    "GitLabProvider",
    "AzureDevOpsProvider",
]
