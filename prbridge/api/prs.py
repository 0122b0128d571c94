# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Pull Request Creation API Endpoints

One endpoint per provider; each runs the full branch/commit/PR workflow
with the provider's configured WorkflowConfig.
"""

from typing import Union
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
import structlog

from prbridge.core.config import Settings, WorkflowConfig, get_settings
from prbridge.core.exceptions import SCMError
from prbridge.core.schemas.pr import (
    AzureCreatePRResponse,
    AzurePullRequest,
    CreateMRResponse,
    CreatePRResponse,
    ErrorResponse,
    GitHubPullRequest,
    GitLabMergeRequest,
)
from prbridge.dependencies import (
    get_azure_provider,
    get_github_provider,
    get_gitlab_provider,
    get_pr_creator,
)
from prbridge.services.pr import ChangeRequestResult, PRCreator
from prbridge.services.providers import (
    AzureDevOpsProvider,
    GitHubAppProvider,
    GitLabProvider,
    SCMProvider,
)

logger = structlog.get_logger(__name__)
router = APIRouter(tags=["Pull Requests"])

ERROR_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


async def _run_workflow(
    creator: PRCreator,
    provider: SCMProvider,
    config: WorkflowConfig,
) -> Union[ChangeRequestResult, JSONResponse]:
    """
    Run the workflow and turn failures into the error envelope.

    Returns:
        ChangeRequestResult on success, otherwise a JSONResponse carrying
        the provider status (500 when unknown)
    """
    try:
        return await creator.run(provider, config)

    except SCMError as e:
        logger.error(
            "change_request_workflow_failed",
            provider=provider.provider_name,
            status_code=e.status_code,
            error=e.message,
        )
        return JSONResponse(
            status_code=e.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=e.to_dict(),
        )
    except Exception as e:
        logger.error(
            "change_request_workflow_error",
            provider=provider.provider_name,
            error=str(e),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error=str(e)).model_dump(),
        )


@router.post(
    "/create-pr",
    response_model=CreatePRResponse,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
    summary="Create GitHub Pull Request",
    description="Create a branch, commit the configured file and open a pull request on GitHub.",
)
async def create_github_pr(
    provider: GitHubAppProvider = Depends(get_github_provider),
    creator: PRCreator = Depends(get_pr_creator),
    settings: Settings = Depends(get_settings),
):
    """
    Create a GitHub pull request.

    **Flow:**
    1. Exchange the App JWT for an installation token
    2. Ensure the pull_request webhook exists
    3. Branch from the base branch head
    4. Create or update the configured file
    5. Open the pull request
    """
    result = await _run_workflow(creator, provider, settings.github_workflow)
    if isinstance(result, JSONResponse):
        return result

    return CreatePRResponse(
        pull_request=GitHubPullRequest(
            number=result.id,
            url=result.url,
            title=result.title,
            branch=result.branch,
        )
    )


@router.post(
    "/azure-create-pr",
    response_model=AzureCreatePRResponse,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
    summary="Create Azure DevOps Pull Request",
    description="Create a branch, push the configured file and open a pull request on Azure DevOps.",
)
async def create_azure_pr(
    provider: AzureDevOpsProvider = Depends(get_azure_provider),
    creator: PRCreator = Depends(get_pr_creator),
    settings: Settings = Depends(get_settings),
):
    result = await _run_workflow(creator, provider, settings.azure_workflow)
    if isinstance(result, JSONResponse):
        return result

    return AzureCreatePRResponse(
        pull_request=AzurePullRequest(
            id=result.id,
            url=result.url,
            title=result.title,
            branch=result.branch,
        )
    )


@router.post(
    "/gitlab-create-mr",
    response_model=CreateMRResponse,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
    summary="Create GitLab Merge Request",
    description="Create a branch, commit the configured file and open a merge request on GitLab.",
)
async def create_gitlab_mr(
    provider: GitLabProvider = Depends(get_gitlab_provider),
    creator: PRCreator = Depends(get_pr_creator),
    settings: Settings = Depends(get_settings),
):
    result = await _run_workflow(creator, provider, settings.gitlab_workflow)
    if isinstance(result, JSONResponse):
        return result

    return CreateMRResponse(
        merge_request=GitLabMergeRequest(
            iid=result.id,
            url=result.url,
            title=result.title,
            branch=result.branch,
        )
    )
