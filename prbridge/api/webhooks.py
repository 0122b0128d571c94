# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Webhook Receiver API Endpoints

Inbound endpoints for GitHub, GitLab and Azure DevOps deliveries. Each one
verifies the delivery, logs the salient fields of known event types and
acknowledges with 200.
"""

import json
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
import structlog

from prbridge.core.config import Settings, get_settings
from prbridge.core.exceptions import PayloadParseFailure
from prbridge.core.schemas.webhooks import (
    AzureWebhookAck,
    GitHubWebhookAck,
    GitLabWebhookAck,
)
from prbridge.services.webhook import WebhookManager

logger = structlog.get_logger(__name__)
router = APIRouter(tags=["Webhooks"])


def _unauthorized(error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"success": False, "error": error},
    )


def _processing_failed() -> JSONResponse:
    failure = PayloadParseFailure()
    return JSONResponse(
        status_code=failure.status_code,
        content={"success": False, "error": failure.message},
    )


def _parse_payload(body: bytes) -> Dict[str, Any]:
    """
    Decode a JSON body.

    Valid JSON that is not an object (a list, null, a number) is treated
    as an empty payload.

    Raises:
        PayloadParseFailure: If the body is not valid JSON
    """
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PayloadParseFailure(details=str(e)) from e

    return _as_dict(payload)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _get(data: Dict[str, Any], *keys: str) -> Any:
    """Walk nested dicts, returning None at the first missing level."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


# GitHub


def log_github_event(event: str, payload: Dict[str, Any]) -> None:
    if event == "pull_request":
        logger.info(
            "github_pull_request_event",
            action=payload.get("action"),
            number=_get(payload, "pull_request", "number"),
            title=_get(payload, "pull_request", "title"),
        )
    elif event == "push":
        logger.info(
            "github_push_event",
            ref=payload.get("ref"),
            pusher=_get(payload, "pusher", "name"),
        )
    elif event == "issues":
        logger.info(
            "github_issue_event",
            action=payload.get("action"),
            number=_get(payload, "issue", "number"),
            title=_get(payload, "issue", "title"),
        )
    elif event == "issue_comment":
        logger.info(
            "github_issue_comment_event",
            action=payload.get("action"),
            issue_number=_get(payload, "issue", "number"),
        )
    else:
        logger.info("github_event_received", event_type=event)


@router.post(
    "/webhook",
    response_model=GitHubWebhookAck,
    status_code=status.HTTP_200_OK,
    summary="GitHub Webhook Endpoint",
    description="Receive GitHub webhook deliveries signed with X-Hub-Signature-256.",
)
async def github_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
):
    """
    Process GitHub webhook events.

    **Headers:**
    - X-GitHub-Event: Event type (pull_request, push, issues, issue_comment)
    - X-Hub-Signature-256: HMAC signature for verification
    - X-GitHub-Delivery: Unique delivery ID

    **Response:**
    - 200 OK for every verified delivery, including unhandled event types
    - 401 Unauthorized if signature verification fails
    - 500 if the payload cannot be parsed
    """
    event = request.headers.get("X-GitHub-Event")
    delivery = request.headers.get("X-GitHub-Delivery")
    signature = request.headers.get("X-Hub-Signature-256")

    try:
        body = await request.body()

        if settings.github_webhook_secret:
            try:
                is_valid = bool(signature) and WebhookManager.verify_github_signature(
                    payload=body,
                    signature=signature,
                    secret=settings.github_webhook_secret,
                )
            except ValueError as e:
                logger.error("github_signature_invalid_format", error=str(e))
                is_valid = False

            if not is_valid:
                logger.error(
                    "github_signature_verification_failed",
                    event_type=event,
                    delivery=delivery,
                    signature_present=bool(signature),
                )
                return _unauthorized("Invalid signature")
        else:
            logger.warning(
                "github_webhook_secret_not_set",
                message="Skipping signature verification",
            )

        payload = _parse_payload(body)

        logger.info("github_webhook_received", event_type=event, delivery=delivery)
        log_github_event(event, payload)

        return GitHubWebhookAck(event=event, delivery=delivery)

    except Exception as e:
        logger.error("github_webhook_processing_error", error=str(e), exc_info=True)
        return _processing_failed()


# GitLab


def log_gitlab_event(event: str, payload: Dict[str, Any]) -> None:
    attributes = _as_dict(payload.get("object_attributes"))

    if event == "Merge Request Hook":
        logger.info(
            "gitlab_merge_request_event",
            action=attributes.get("action"),
            iid=attributes.get("iid"),
            title=attributes.get("title"),
            author=_get(payload, "user", "name"),
            source_branch=attributes.get("source_branch"),
            target_branch=attributes.get("target_branch"),
            state=attributes.get("state"),
            merge_status=attributes.get("merge_status"),
        )
    elif event == "Push Hook":
        commits = _as_list(payload.get("commits"))
        logger.info(
            "gitlab_push_event",
            ref=payload.get("ref"),
            user=payload.get("user_name"),
            total_commits=payload.get("total_commits_count") or 0,
            commits=[
                f"{str(commit.get('id', ''))[:7]}: {commit.get('message')}"
                for commit in commits
                if isinstance(commit, dict)
            ],
        )
    elif event == "Issue Hook":
        logger.info(
            "gitlab_issue_event",
            action=attributes.get("action"),
            iid=attributes.get("iid"),
            title=attributes.get("title"),
            state=attributes.get("state"),
        )
    elif event == "Note Hook":
        noteable_type = attributes.get("noteable_type")
        logger.info(
            "gitlab_note_event",
            noteable_type=noteable_type,
            merge_request_iid=(
                _get(payload, "merge_request", "iid")
                if noteable_type == "MergeRequest"
                else None
            ),
        )
    elif event == "Pipeline Hook":
        logger.info(
            "gitlab_pipeline_event",
            pipeline_id=attributes.get("id"),
            pipeline_status=attributes.get("status"),
            ref=attributes.get("ref"),
        )
    else:
        logger.info("gitlab_event_received", event_type=event)


@router.post(
    "/gitlab-webhook",
    response_model=GitLabWebhookAck,
    status_code=status.HTTP_200_OK,
    summary="GitLab Webhook Endpoint",
    description="Receive GitLab webhook deliveries authenticated with X-Gitlab-Token.",
)
async def gitlab_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
):
    """
    Process GitLab webhook events.

    **Headers:**
    - X-Gitlab-Event: Event type (Merge Request Hook, Push Hook, ...)
    - X-Gitlab-Token: Secret token configured on the hook
    """
    event = request.headers.get("X-Gitlab-Event")
    token = request.headers.get("X-Gitlab-Token")

    try:
        if settings.gitlab_webhook_token:
            if not WebhookManager.verify_gitlab_token(token, settings.gitlab_webhook_token):
                logger.error(
                    "gitlab_token_verification_failed",
                    event_type=event,
                    token_present=token is not None,
                )
                return _unauthorized("Invalid token")
        else:
            logger.warning(
                "gitlab_webhook_token_not_set",
                message="Skipping token verification",
            )

        payload = _parse_payload(await request.body())

        logger.info(
            "gitlab_webhook_received",
            event_type=event,
            token_present=token is not None,
        )
        log_gitlab_event(event, payload)

        return GitLabWebhookAck(event=event)

    except Exception as e:
        logger.error("gitlab_webhook_processing_error", error=str(e), exc_info=True)
        return _processing_failed()


# Azure DevOps


def log_azure_event(event_type: str, payload: Dict[str, Any]) -> None:
    resource = _as_dict(payload.get("resource"))

    if event_type == "git.pullrequest.created":
        logger.info(
            "azure_pull_request_created_event",
            pull_request_id=resource.get("pullRequestId"),
            title=resource.get("title"),
            created_by=_get(resource, "createdBy", "displayName"),
            source_ref=resource.get("sourceRefName"),
            target_ref=resource.get("targetRefName"),
        )
    elif event_type == "git.pullrequest.updated":
        logger.info(
            "azure_pull_request_updated_event",
            pull_request_id=resource.get("pullRequestId"),
            title=resource.get("title"),
            pr_status=resource.get("status"),
        )
    elif event_type == "git.pullrequest.merged":
        logger.info(
            "azure_pull_request_merged_event",
            pull_request_id=resource.get("pullRequestId"),
            title=resource.get("title"),
            merged_by=_get(resource, "closedBy", "displayName"),
        )
    elif event_type == "git.push":
        ref_updates = _as_list(resource.get("refUpdates")) or [{}]
        commits = _as_list(resource.get("commits"))
        logger.info(
            "azure_push_event",
            ref=_get(ref_updates[0], "name"),
            pushed_by=_get(resource, "pushedBy", "displayName"),
            total_commits=len(commits),
            commits=[
                f"{str(commit.get('commitId', ''))[:7]}: {commit.get('comment')}"
                for commit in commits
                if isinstance(commit, dict)
            ],
        )
    elif event_type in ("workitem.created", "workitem.updated"):
        logger.info(
            "azure_work_item_event",
            event_type=event_type,
            work_item_id=resource.get("id"),
            title=_get(resource, "fields", "System.Title"),
        )
    else:
        logger.info("azure_event_received", event_type=event_type)


@router.post(
    "/azure-webhook",
    response_model=AzureWebhookAck,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Azure DevOps Webhook Endpoint",
    description="Receive Azure DevOps service hook deliveries authenticated with HTTP Basic.",
)
async def azure_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
):
    """
    Process Azure DevOps service hook events.

    The event type comes from the payload's eventType field and the
    resource type from resource.repository.name.
    """
    try:
        if settings.azure_webhook_username and settings.azure_webhook_password:
            is_valid = WebhookManager.verify_azure_basic_auth(
                request.headers.get("Authorization"),
                username=settings.azure_webhook_username,
                password=settings.azure_webhook_password,
            )
            if not is_valid:
                logger.error("azure_basic_auth_verification_failed")
                return _unauthorized("Unauthorized")
        else:
            logger.warning(
                "azure_webhook_auth_not_set",
                message="Skipping basic auth verification",
            )

        payload = _parse_payload(await request.body())

        event_type = _as_str(payload.get("eventType"))
        resource_type = _as_str(_get(payload, "resource", "repository", "name")) or "unknown"

        logger.info(
            "azure_webhook_received",
            event_type=event_type,
            resource_type=resource_type,
            resource_version=payload.get("resourceVersion"),
            pr_status=_get(payload, "resource", "status"),
            url=_get(payload, "resource", "_links", "web", "href"),
        )
        log_azure_event(event_type, payload)

        return AzureWebhookAck(event_type=event_type, resource_type=resource_type)

    except Exception as e:
        logger.error("azure_webhook_processing_error", error=str(e), exc_info=True)
        return _processing_failed()
