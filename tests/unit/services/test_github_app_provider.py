# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Unit tests for GitHubAppProvider.
"""

import base64
import jwt
import pytest
from unittest.mock import Mock, AsyncMock, patch
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from prbridge.core.exceptions import AuthenticationFailure, ProviderRejection, ResourceNotFound
from prbridge.services.providers import (
    BranchRef,
    FileRef,
    GitHubAppProvider,
    ProjectRef,
)


def make_response(status_code=200, json_data=None):
    response = Mock()
    response.status_code = status_code
    response.content = b"{}" if json_data is not None else b""
    response.json.return_value = json_data
    response.text = ""
    return response


@pytest.fixture(scope="module")
def rsa_key_pair():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


class TestGitHubAppProvider:
    """Test suite for GitHubAppProvider."""

    @pytest.fixture
    def provider(self, rsa_key_pair):
        private_pem, _ = rsa_key_pair
        return GitHubAppProvider(
            app_id="123456",
            private_key=private_pem,
            installation_id="7890",
            webhook_secret="hook_secret",
        )

    @pytest.fixture
    def authed_provider(self, provider):
        provider._installation_token = "ghs_installation_token"
        return provider

    @pytest.fixture
    def project(self):
        return ProjectRef(project_id="owner/repo", owner="owner", repo="repo")

    def test_generate_app_jwt(self, provider, rsa_key_pair):
        """Test App JWT is RS256 signed with the app id as issuer."""
        _, public_pem = rsa_key_pair

        token = provider.generate_app_jwt()
        claims = jwt.decode(token, public_pem, algorithms=["RS256"])

        assert claims["iss"] == "123456"
        assert claims["exp"] - claims["iat"] == 600

    def test_generate_app_jwt_invalid_key(self):
        """Test unusable private key surfaces as AuthenticationFailure."""
        provider = GitHubAppProvider(
            app_id="1", private_key="not a pem", installation_id="2"
        )

        with pytest.raises(AuthenticationFailure):
            provider.generate_app_jwt()

    def test_generate_app_jwt_missing_credentials(self):
        provider = GitHubAppProvider(app_id="", private_key="", installation_id="2")

        with pytest.raises(AuthenticationFailure, match="GITHUB_APP_ID"):
            provider.generate_app_jwt()

    @pytest.mark.asyncio
    async def test_authenticate_exchanges_installation_token(self, provider):
        """Test JWT is exchanged for an installation access token."""
        mock_response = make_response(201, {"token": "ghs_abc", "expires_at": "2026-01-01T00:00:00Z"})

        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=mock_response)
            mock_client.return_value.__aenter__.return_value.request = mock_request

            await provider.authenticate()

        assert provider._installation_token == "ghs_abc"
        method, url = mock_request.call_args.args
        assert method == "POST"
        assert url == "https://api.github.com/app/installations/7890/access_tokens"
        assert mock_request.call_args.kwargs["headers"]["Authorization"].startswith("Bearer ")

    @pytest.mark.asyncio
    async def test_authenticate_rejected(self, provider):
        """Test 401 from GitHub surfaces as AuthenticationFailure."""
        mock_response = make_response(401, {"message": "Bad credentials"})

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=mock_response
            )

            with pytest.raises(AuthenticationFailure) as exc_info:
                await provider.authenticate()

        assert exc_info.value.details == {"message": "Bad credentials"}

    @pytest.mark.asyncio
    async def test_create_webhook_includes_secret(self, authed_provider, project):
        """Test webhook is created for pull_request events with the HMAC secret."""
        mock_response = make_response(201, {"id": 1, "config": {"url": "https://x/api/webhook"}})

        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=mock_response)
            mock_client.return_value.__aenter__.return_value.request = mock_request

            result = await authed_provider.create_webhook(project, "https://x/api/webhook")

        assert result["id"] == 1
        body = mock_request.call_args.kwargs["json"]
        assert body["events"] == ["pull_request"]
        assert body["config"]["url"] == "https://x/api/webhook"
        assert body["config"]["secret"] == "hook_secret"
        assert body["config"]["content_type"] == "json"

    @pytest.mark.asyncio
    async def test_find_webhook_exact_match(self, authed_provider, project):
        """Test hooks are matched on config.url exactly."""
        hooks = [
            {"id": 1, "config": {"url": "https://x/api/webhook/"}},
            {"id": 2, "config": {"url": "https://x/api/webhook"}},
        ]

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=make_response(200, hooks)
            )

            hook = await authed_provider.find_webhook(project, "https://x/api/webhook")

        assert hook["id"] == 2

    @pytest.mark.asyncio
    async def test_get_branch(self, authed_provider, project):
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(
                return_value=make_response(200, {"ref": "refs/heads/master", "object": {"sha": "deadbeef"}})
            )
            mock_client.return_value.__aenter__.return_value.request = mock_request

            branch = await authed_provider.get_branch(project, "master")

        assert branch == BranchRef(name="master", sha="deadbeef")
        assert mock_request.call_args.args[1].endswith("/repos/owner/repo/git/ref/heads/master")

    @pytest.mark.asyncio
    async def test_get_branch_missing(self, authed_provider, project):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=make_response(404, {"message": "Not Found"})
            )

            with pytest.raises(ResourceNotFound):
                await authed_provider.get_branch(project, "master")

    @pytest.mark.asyncio
    async def test_create_branch_from_base_sha(self, authed_provider, project):
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=make_response(201, {"ref": "refs/heads/feature/x"}))
            mock_client.return_value.__aenter__.return_value.request = mock_request

            branch = await authed_provider.create_branch(
                project, "feature/x", BranchRef(name="master", sha="deadbeef")
            )

        assert branch.sha == "deadbeef"
        assert mock_request.call_args.kwargs["json"] == {
            "ref": "refs/heads/feature/x",
            "sha": "deadbeef",
        }

    @pytest.mark.asyncio
    async def test_get_file_absent(self, authed_provider, project):
        """Test 404 on the contents endpoint means the file is absent."""
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=make_response(404, {"message": "Not Found"})
            )

            result = await authed_provider.get_file(project, "example.txt", "feature/x")

        assert result is None

    @pytest.mark.asyncio
    async def test_write_file_update_sends_sha(self, authed_provider, project):
        """Test update supplies the existing blob sha and base64 content."""
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=make_response(200, {"content": {}}))
            mock_client.return_value.__aenter__.return_value.request = mock_request

            await authed_provider.write_file(
                project,
                BranchRef(name="feature/x", sha="deadbeef"),
                "example.txt",
                "hello",
                "Add example file via API",
                existing=FileRef(path="example.txt", content_id="blob123"),
            )

        method = mock_request.call_args.args[0]
        body = mock_request.call_args.kwargs["json"]
        assert method == "PUT"
        assert body["sha"] == "blob123"
        assert body["branch"] == "feature/x"
        assert base64.b64decode(body["content"]).decode() == "hello"

    @pytest.mark.asyncio
    async def test_write_file_create_omits_sha(self, authed_provider, project):
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=make_response(201, {"content": {}}))
            mock_client.return_value.__aenter__.return_value.request = mock_request

            await authed_provider.write_file(
                project,
                BranchRef(name="feature/x", sha="deadbeef"),
                "example.txt",
                "hello",
                "Add example file via API",
            )

        assert "sha" not in mock_request.call_args.kwargs["json"]

    @pytest.mark.asyncio
    async def test_open_change_request(self, authed_provider, project):
        pr = {"number": 5, "html_url": "https://github.com/owner/repo/pull/5", "title": "T"}

        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(return_value=make_response(201, pr))
            mock_client.return_value.__aenter__.return_value.request = mock_request

            result = await authed_provider.open_change_request(
                project, "feature/x", "master", "T", "body"
            )

        assert result.id == 5
        assert result.url == "https://github.com/owner/repo/pull/5"
        assert mock_request.call_args.kwargs["json"]["head"] == "feature/x"
        assert mock_request.call_args.kwargs["json"]["base"] == "master"

    @pytest.mark.asyncio
    async def test_unexpected_status_raises_provider_rejection(self, authed_provider, project):
        """Test non-2xx status and body are carried on the error."""
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=make_response(422, {"message": "Validation Failed"})
            )

            with pytest.raises(ProviderRejection) as exc_info:
                await authed_provider.create_branch(
                    project, "feature/x", BranchRef(name="master", sha="deadbeef")
                )

        assert exc_info.value.status_code == 422
        assert exc_info.value.details == {"message": "Validation Failed"}

    @pytest.mark.asyncio
    async def test_calls_require_installation_token(self, provider, project):
        with pytest.raises(AuthenticationFailure):
            await provider.list_webhooks(project)
