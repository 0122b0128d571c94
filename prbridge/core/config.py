# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Application Configuration

Credentials, verification secrets and per-provider workflow settings,
loaded from environment variables (and an optional .env file).
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkflowConfig(BaseModel):
    """
    What a single PR/MR workflow run does.

    For GitLab, ``owner/repo`` is the project path. For Azure DevOps,
    ``owner`` is the project name.
    """

    owner: str = ""
    repo: str = ""
    base_branch: str = "master"
    file_path: str = "example.txt"
    file_content: str = ""
    commit_message: str = ""
    pr_title: str = ""
    pr_body: str = ""
    webhook_base_url: str = ""
    branch_prefix: str = "feature/auto-pr"

    @property
    def project_path(self) -> str:
        return f"{self.owner}/{self.repo}"


class GitHubWorkflowConfig(WorkflowConfig):
    file_content: str = "This is an automatically generated file created by the GitHub PR POC."
    commit_message: str = "Add example file via API"
    pr_title: str = "Automated PR: Add example file"
    pr_body: str = (
        "This pull request was automatically created using the GitHub REST API "
        "and a GitHub App for authentication."
    )


class GitLabWorkflowConfig(WorkflowConfig):
    base_branch: str = "main"
    file_content: str = "This file was automatically modified by the GitLab MR POC.\n"
    commit_message: str = "Update example file via GitLab API"
    pr_title: str = "Automated MR: Update example file"
    pr_body: str = (
        "This merge request was automatically created using the GitLab REST API "
        "with PAT authentication."
    )
    branch_prefix: str = "feature/auto-mr"


class AzureWorkflowConfig(WorkflowConfig):
    file_path: str = "static/script.js"
    file_content: str = (
        "// This is an automatically generated file created by the Azure DevOps PR POC\n"
        "console.log('Hello from Azure DevOps automated PR!');\n"
    )
    commit_message: str = "Add script.js via Azure DevOps API"
    pr_title: str = "Automated PR: Add script.js"
    pr_body: str = (
        "This pull request was automatically created using the Azure DevOps REST API "
        "with PAT authentication."
    )


class Settings(BaseSettings):
    """
    prbridge settings.

    Absent verification secrets disable verification for that inbound
    channel instead of rejecting every delivery.
    """

    # GitHub App
    github_app_id: str = Field(default="", alias="GITHUB_APP_ID")
    github_app_private_key: str = Field(default="", alias="GITHUB_APP_PRIVATE_KEY")
    github_installation_id: str = Field(default="", alias="GITHUB_INSTALLATION_ID")
    github_webhook_secret: Optional[str] = Field(default=None, alias="GITHUB_WEBHOOK_SECRET")
    github_api_url: str = Field(default="https://api.github.com", alias="GITHUB_API_URL")

    # GitLab
    gitlab_pat: str = Field(default="", alias="GITLAB_PAT")
    gitlab_webhook_token: Optional[str] = Field(default=None, alias="GITLAB_WEBHOOK_TOKEN")
    gitlab_url: str = Field(default="https://gitlab.com", alias="GITLAB_URL")

    # Azure DevOps
    azure_devops_pat: str = Field(default="", alias="AZURE_DEVOPS_PAT")
    azure_devops_org_url: str = Field(default="", alias="AZURE_DEVOPS_ORG_URL")
    azure_webhook_username: Optional[str] = Field(default=None, alias="AZURE_WEBHOOK_USERNAME")
    azure_webhook_password: Optional[str] = Field(default=None, alias="AZURE_WEBHOOK_PASSWORD")

    # Workflows
    github_workflow: GitHubWorkflowConfig = Field(
        default_factory=GitHubWorkflowConfig, alias="GITHUB_WORKFLOW"
    )
    gitlab_workflow: GitLabWorkflowConfig = Field(
        default_factory=GitLabWorkflowConfig, alias="GITLAB_WORKFLOW"
    )
    azure_workflow: AzureWorkflowConfig = Field(
        default_factory=AzureWorkflowConfig, alias="AZURE_WORKFLOW"
    )

    # Application
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")
    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("github_app_private_key")
    @classmethod
    def expand_private_key_newlines(cls, value: str) -> str:
        # PEM keys pasted into a single env line arrive with literal "\n"
        return value.replace("\\n", "\n")

    @property
    def azure_outbound_webhook_username(self) -> str:
        """Username attached to Azure service hooks when a password is set."""
        return self.azure_webhook_username or "webhook"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings instance
    """
    return Settings()
