# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Pull Request Schemas

Pydantic models for the PR/MR creation endpoints.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class GitHubPullRequest(BaseModel):
    """GitHub pull request created by a workflow run."""

    number: int = Field(..., description="GitHub PR number")
    url: str = Field(..., description="URL to the PR")
    title: str = Field(..., description="PR title")
    branch: str = Field(..., description="Source branch name")


class AzurePullRequest(BaseModel):
    """Azure DevOps pull request created by a workflow run."""

    id: int = Field(..., description="Azure DevOps pull request ID")
    url: str = Field(..., description="URL to the PR")
    title: str = Field(..., description="PR title")
    branch: str = Field(..., description="Source branch name")


class GitLabMergeRequest(BaseModel):
    """GitLab merge request created by a workflow run."""

    iid: int = Field(..., description="Project-scoped merge request IID")
    url: str = Field(..., description="URL to the MR")
    title: str = Field(..., description="MR title")
    branch: str = Field(..., description="Source branch name")


class CreatePRResponse(BaseModel):
    """Response from GitHub PR creation."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True)
    pull_request: GitHubPullRequest = Field(..., alias="pullRequest")


class AzureCreatePRResponse(BaseModel):
    """Response from Azure DevOps PR creation."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True)
    pull_request: AzurePullRequest = Field(..., alias="pullRequest")


class CreateMRResponse(BaseModel):
    """Response from GitLab MR creation."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True)
    merge_request: GitLabMergeRequest = Field(..., alias="mergeRequest")


class ErrorResponse(BaseModel):
    """Error envelope returned when a workflow run fails."""

    success: bool = Field(default=False)
    error: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(None, description="Raw provider error body, if any")
