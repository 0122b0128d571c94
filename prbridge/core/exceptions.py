# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Error taxonomy shared by provider clients, the PR workflow and the API layer.
"""

from typing import Any, Optional

import httpx


class SCMError(Exception):
    """
    Base error for all provider-facing failures.

    Carries the HTTP status (if one is known) and the raw provider
    error body so the API layer can relay both to the caller.
    """

    default_message = "Source control operation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.message = message or self.default_message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.message,
            "details": self.details,
        }


class AuthenticationFailure(SCMError):
    """Missing or rejected credentials."""

    default_message = "Authentication failed"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message, status_code=401, details=details)


class ProviderRejection(SCMError):
    """Any non-2xx response from a provider API."""

    default_message = "Provider rejected the request"

    @classmethod
    def from_response(cls, response: httpx.Response, message: Optional[str] = None) -> "ProviderRejection":
        """
        Build the most specific error for a failed provider response.

        Args:
            response: Provider HTTP response with a non-2xx status
            message: Optional human-readable summary

        Returns:
            ResourceNotFound for 404, AuthenticationFailure for 401,
            ProviderRejection otherwise
        """
        try:
            details = response.json()
        except ValueError:
            details = response.text or None

        status_code = response.status_code
        text = message or f"Request failed with status code {status_code}"

        if status_code == 404:
            return ResourceNotFound(text, details=details)
        if status_code == 401:
            return AuthenticationFailure(text, details=details)
        return cls(text, status_code=status_code, details=details)


class ResourceNotFound(ProviderRejection):
    """Branch, file or project absent on the provider."""

    default_message = "Resource not found"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message, status_code=404, details=details)


class PayloadParseFailure(SCMError):
    """Inbound webhook body could not be parsed."""

    default_message = "Failed to process webhook"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message, status_code=500, details=details)
