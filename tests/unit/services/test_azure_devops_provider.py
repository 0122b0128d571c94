# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Unit tests for AzureDevOpsProvider.
"""

import base64
import pytest
from unittest.mock import Mock, AsyncMock, patch

from prbridge.core.config import AzureWorkflowConfig
from prbridge.core.exceptions import ProviderRejection, ResourceNotFound
from prbridge.services.providers import (
    AzureDevOpsProvider,
    BranchRef,
    FileRef,
    ProjectRef,
)


ORG_URL = "https://dev.azure.com/my-org"


def make_response(status_code=200, json_data=None):
    response = Mock()
    response.status_code = status_code
    response.content = b"{}" if json_data is not None else b""
    response.json.return_value = json_data
    response.text = ""
    return response


class TestAzureDevOpsProvider:
    """Test suite for AzureDevOpsProvider."""

    @pytest.fixture
    def provider(self):
        return AzureDevOpsProvider(
            personal_access_token="azure_pat",
            org_url=ORG_URL,
            webhook_username="webhook",
            webhook_password="hook_password",
        )

    @pytest.fixture
    def project(self):
        return ProjectRef(
            project_id="proj-guid",
            owner="MyProject",
            repo="my-repo",
            repository_id="repo-guid",
        )

    def test_auth_headers_use_pat_as_password(self, provider):
        header = provider._auth_headers()["Authorization"]

        assert header.startswith("Basic ")
        assert base64.b64decode(header[6:]).decode() == ":azure_pat"

    @pytest.mark.asyncio
    async def test_resolve_project(self, provider):
        """Test project id then repository id are resolved."""
        config = AzureWorkflowConfig(owner="MyProject", repo="my-repo")

        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(side_effect=[
                make_response(200, {"id": "proj-guid", "name": "MyProject"}),
                make_response(200, {"id": "repo-guid", "name": "my-repo"}),
            ])
            mock_client.return_value.__aenter__.return_value.request = mock_request

            project = await provider.resolve_project(config)

        assert project.project_id == "proj-guid"
        assert project.repository_id == "repo-guid"
        first_call, second_call = mock_request.call_args_list
        assert first_call.args[1] == f"{ORG_URL}/_apis/projects/MyProject"
        assert second_call.args[1] == f"{ORG_URL}/MyProject/_apis/git/repositories/my-repo"
        assert first_call.kwargs["params"] == {"api-version": "7.1"}

    @pytest.mark.asyncio
    async def test_create_webhook_with_basic_auth(self, provider, project):
        """Test service hook subscription carries basic auth credentials."""
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=make_response(200, {"id": "sub-1"}))
            mock_client.return_value.__aenter__.return_value.request = mock_request

            await provider.create_webhook(project, "https://x/api/azure-webhook")

        body = mock_request.call_args.kwargs["json"]
        assert body["eventType"] == "git.pullrequest.updated"
        assert body["publisherInputs"] == {"projectId": "proj-guid", "repository": "repo-guid"}
        assert body["consumerInputs"] == {
            "url": "https://x/api/azure-webhook",
            "basicAuthUsername": "webhook",
            "basicAuthPassword": "hook_password",
        }

    @pytest.mark.asyncio
    async def test_create_webhook_without_password(self, project):
        provider = AzureDevOpsProvider(personal_access_token="azure_pat", org_url=ORG_URL)

        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=make_response(200, {"id": "sub-1"}))
            mock_client.return_value.__aenter__.return_value.request = mock_request

            await provider.create_webhook(project, "https://x/api/azure-webhook")

        assert mock_request.call_args.kwargs["json"]["consumerInputs"] == {
            "url": "https://x/api/azure-webhook"
        }

    @pytest.mark.asyncio
    async def test_find_webhook_by_consumer_url(self, provider, project):
        subscriptions = {"value": [
            {"id": "a", "consumerInputs": {"url": "https://other/api/azure-webhook"}},
            {"id": "b", "consumerInputs": {"url": "https://x/api/azure-webhook"}},
        ]}

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=make_response(200, subscriptions)
            )

            hook = await provider.find_webhook(project, "https://x/api/azure-webhook")

        assert hook["id"] == "b"

    @pytest.mark.asyncio
    async def test_get_branch_exact_match(self, provider, project):
        """Test prefix matches from the refs filter are ignored."""
        refs = {"value": [
            {"name": "refs/heads/master-old", "objectId": "1111"},
            {"name": "refs/heads/master", "objectId": "deadbeef"},
        ]}

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=make_response(200, refs)
            )

            branch = await provider.get_branch(project, "master")

        assert branch == BranchRef(name="master", sha="deadbeef")

    @pytest.mark.asyncio
    async def test_get_branch_missing(self, provider, project):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=make_response(200, {"value": []})
            )

            with pytest.raises(ResourceNotFound):
                await provider.get_branch(project, "master")

    @pytest.mark.asyncio
    async def test_create_branch(self, provider, project):
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=make_response(200, {"value": [{"success": True}]}))
            mock_client.return_value.__aenter__.return_value.request = mock_request

            branch = await provider.create_branch(
                project, "feature/auto-pr-1", BranchRef(name="master", sha="deadbeef")
            )

        assert branch.sha == "deadbeef"
        ref_update = mock_request.call_args.kwargs["json"][0]
        assert ref_update["name"] == "refs/heads/feature/auto-pr-1"
        assert ref_update["oldObjectId"] == "0" * 40
        assert ref_update["newObjectId"] == "deadbeef"

    @pytest.mark.asyncio
    async def test_create_branch_rejected_in_body(self, provider, project):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=make_response(200, {"value": [{"success": False, "customMessage": "exists"}]})
            )

            with pytest.raises(ProviderRejection):
                await provider.create_branch(
                    project, "feature/auto-pr-1", BranchRef(name="master", sha="deadbeef")
                )

    @pytest.mark.asyncio
    async def test_get_file_present(self, provider, project):
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(
                return_value=make_response(200, {"path": "/static/script.js", "objectId": "blob-sha"})
            )
            mock_client.return_value.__aenter__.return_value.request = mock_request

            file_ref = await provider.get_file(project, "static/script.js", "feature/auto-pr-1")

        assert file_ref.content_id == "blob-sha"
        params = mock_request.call_args.kwargs["params"]
        assert params["path"] == "/static/script.js"
        assert params["versionDescriptor.version"] == "feature/auto-pr-1"

    @pytest.mark.asyncio
    async def test_get_file_absent(self, provider, project):
        """Test a 404 from the items API means the file does not exist yet."""
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=make_response(404, {"message": "TF401174: The item could not be found."})
            )

            file_ref = await provider.get_file(project, "static/script.js", "feature/auto-pr-1")

        assert file_ref is None

    @pytest.mark.asyncio
    async def test_write_file_add_vs_edit(self, provider, project):
        """Test change type follows the existence check."""
        branch = BranchRef(name="feature/auto-pr-1", sha="deadbeef")

        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=make_response(201, {"pushId": 1}))
            mock_client.return_value.__aenter__.return_value.request = mock_request

            await provider.write_file(project, branch, "static/script.js", "x", "msg")
            add_body = mock_request.call_args.kwargs["json"]

            await provider.write_file(
                project, branch, "static/script.js", "x", "msg",
                existing=FileRef(path="static/script.js", content_id="obj1"),
            )
            edit_body = mock_request.call_args.kwargs["json"]

        assert add_body["commits"][0]["changes"][0]["changeType"] == "add"
        assert add_body["commits"][0]["changes"][0]["item"]["path"] == "/static/script.js"
        assert add_body["refUpdates"][0]["oldObjectId"] == "deadbeef"
        assert edit_body["commits"][0]["changes"][0]["changeType"] == "edit"

    @pytest.mark.asyncio
    async def test_open_change_request_builds_web_url(self, provider, project):
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(
                return_value=make_response(201, {"pullRequestId": 12, "title": "Automated PR: Add script.js"})
            )
            mock_client.return_value.__aenter__.return_value.request = mock_request

            result = await provider.open_change_request(
                project, "feature/auto-pr-1", "master", "Automated PR: Add script.js", "body"
            )

        assert result.id == 12
        assert result.url == f"{ORG_URL}/MyProject/_git/my-repo/pullrequest/12"
        body = mock_request.call_args.kwargs["json"]
        assert body["sourceRefName"] == "refs/heads/feature/auto-pr-1"
        assert body["targetRefName"] == "refs/heads/master"
