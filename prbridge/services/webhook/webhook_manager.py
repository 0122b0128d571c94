# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Webhook Manager Service

Registers webhooks on GitHub/GitLab/Azure DevOps (check-then-create) and
verifies inbound deliveries.
"""

import asyncio
import base64
import binascii
import hashlib
import hmac
from typing import Dict, Any, Optional, Tuple
import structlog

from prbridge.core.exceptions import ProviderRejection
from prbridge.services.providers.provider_base import SCMProvider, ProjectRef

logger = structlog.get_logger(__name__)


class WebhookManager:
    """
    Ensures a webhook is registered for a callback URL.

    Registration is idempotent per exact URL string. Concurrent calls for the
    same (provider, URL) inside this process are serialized.
    """

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    def _lock_for(self, provider_name: str, webhook_url: str) -> asyncio.Lock:
        return self._locks.setdefault((provider_name, webhook_url), asyncio.Lock())

    @staticmethod
    def build_webhook_url(base_url: str, path: str) -> str:
        """
        Join the public base URL and a receiver path.

        Args:
            base_url: Public base URL (a bare host gets an https:// scheme)
            path: Receiver path, e.g. /api/webhook

        Returns:
            Full callback URL
        """
        base = base_url.rstrip("/")
        if "://" not in base:
            base = f"https://{base}"
        return f"{base}{path}"

    async def ensure_webhook(
        self,
        provider: SCMProvider,
        project: ProjectRef,
        webhook_url: str,
    ) -> Optional[Dict[str, Any]]:
        """
        Return the webhook registered for webhook_url, creating it if missing.

        Args:
            provider: Authenticated provider client
            project: Resolved project
            webhook_url: Callback URL (compared verbatim)

        Returns:
            Existing or newly created webhook record, or None when the provider
            refused with 403 and that is not fatal for it

        Raises:
            ProviderRejection: If listing or creation fails
        """
        async with self._lock_for(provider.provider_name, webhook_url):
            try:
                existing = await provider.find_webhook(project, webhook_url)

                if existing:
                    logger.info(
                        "webhook_already_exists",
                        provider=provider.provider_name,
                        webhook_url=webhook_url,
                        webhook_id=existing.get("id"),
                    )
                    return existing

                logger.info(
                    "webhook_creating",
                    provider=provider.provider_name,
                    webhook_url=webhook_url,
                )
                created = await provider.create_webhook(project, webhook_url)

                logger.info(
                    "webhook_created",
                    provider=provider.provider_name,
                    webhook_url=webhook_url,
                    webhook_id=created.get("id"),
                )
                return created

            except ProviderRejection as e:
                if e.status_code == 403 and not provider.webhook_forbidden_is_fatal:
                    logger.warning(
                        "webhook_management_forbidden",
                        provider=provider.provider_name,
                        webhook_url=webhook_url,
                        message="Token lacks permission to manage webhooks; continuing without webhook setup",
                    )
                    return None

                logger.error(
                    "webhook_ensure_failed",
                    provider=provider.provider_name,
                    webhook_url=webhook_url,
                    status_code=e.status_code,
                    error=e.message,
                )
                raise

    @staticmethod
    def verify_github_signature(
        payload: bytes,
        signature: str,
        secret: str,
    ) -> bool:
        """
        Verify GitHub webhook signature.

        GitHub sends: X-Hub-Signature-256: sha256=<hash>

        Args:
            payload: Raw request body
            signature: Signature from X-Hub-Signature-256 header
            secret: Webhook secret

        Returns:
            True if signature is valid

        Raises:
            ValueError: If signature format is invalid
        """
        if not signature.startswith("sha256="):
            raise ValueError("Invalid signature format")

        expected_signature = "sha256=" + hmac.new(
            key=secret.encode(),
            msg=payload,
            digestmod=hashlib.sha256
        ).hexdigest()

        return hmac.compare_digest(expected_signature.encode(), signature.encode())

    @staticmethod
    def verify_gitlab_token(
        token_header: Optional[str],
        secret: str,
    ) -> bool:
        """
        Verify GitLab webhook token.

        GitLab sends: X-Gitlab-Token: <secret>

        Args:
            token_header: Token from X-Gitlab-Token header
            secret: Expected token

        Returns:
            True if token matches exactly
        """
        if token_header is None:
            return False
        return hmac.compare_digest(token_header.encode(), secret.encode())

    @staticmethod
    def verify_azure_basic_auth(
        authorization_header: Optional[str],
        username: str,
        password: str,
    ) -> bool:
        """
        Verify Azure DevOps service hook basic auth.

        Azure DevOps sends: Authorization: Basic base64(username:password)

        Args:
            authorization_header: Authorization header value
            username: Expected username
            password: Expected password

        Returns:
            True if both username and password match
        """
        if not authorization_header or not authorization_header.startswith("Basic "):
            return False

        try:
            credentials = base64.b64decode(
                authorization_header[6:], validate=True
            ).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return False

        received_username, separator, received_password = credentials.partition(":")
        if not separator:
            return False

        username_ok = hmac.compare_digest(received_username.encode(), username.encode())
        password_ok = hmac.compare_digest(received_password.encode(), password.encode())
        return username_ok and password_ok
