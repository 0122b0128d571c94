# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Webhook Schemas

Acknowledgement bodies returned by the inbound webhook receivers.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GitHubWebhookAck(BaseModel):
    success: bool = True
    received: bool = True
    event: Optional[str] = Field(None, description="X-GitHub-Event header value")
    delivery: Optional[str] = Field(None, description="X-GitHub-Delivery header value")


class GitLabWebhookAck(BaseModel):
    success: bool = True
    received: bool = True
    event: Optional[str] = Field(None, description="X-Gitlab-Event header value")


class AzureWebhookAck(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    received: bool = True
    event_type: Optional[str] = Field(None, alias="eventType")
    resource_type: str = Field("unknown", alias="resourceType")
