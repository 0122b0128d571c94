# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Base Source Control Provider Class

Common REST plumbing and the capability set every provider implements
(GitHub, GitLab, Azure DevOps).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Union
import httpx
import structlog

from prbridge.core.config import WorkflowConfig
from prbridge.core.exceptions import AuthenticationFailure, ProviderRejection

logger = structlog.get_logger(__name__)


@dataclass
class ProjectRef:
    """Project/repository identifiers resolved once per workflow run."""

    project_id: Union[int, str]
    owner: str
    repo: str
    repository_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BranchRef:
    """Branch name and the commit it points to."""

    name: str
    sha: str


@dataclass
class FileRef:
    """An existing file and the identifier the provider needs to update it."""

    path: str
    content_id: Optional[str]
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChangeRequestRef:
    """A pull request (GitHub, Azure DevOps) or merge request (GitLab)."""

    id: int
    url: str
    title: str
    data: Dict[str, Any] = field(default_factory=dict)


class SCMProvider(ABC):
    """
    Abstract base class for source control providers.

    Each operation maps onto one provider REST endpoint. Non-2xx responses
    are raised as ProviderRejection (ResourceNotFound for 404,
    AuthenticationFailure for 401).
    """

    def __init__(self, base_url: str, timeout: float = 30.0):
        """
        Initialize provider.

        Args:
            base_url: REST API root for the provider
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'github', 'gitlab', 'azure')"""
        pass

    @property
    @abstractmethod
    def webhook_path(self) -> str:
        """Return the path of this provider's inbound webhook receiver"""
        pass

    @property
    def change_request_label(self) -> str:
        return "pull request"

    @property
    def webhook_forbidden_is_fatal(self) -> bool:
        """Whether a 403 while ensuring the webhook aborts the workflow"""
        return True

    @abstractmethod
    def _auth_headers(self) -> Dict[str, str]:
        """Return the headers that authenticate a REST call"""
        pass

    def _default_params(self) -> Dict[str, Any]:
        """
        Query parameters added to every request.

        Override in subclasses (e.g. Azure DevOps api-version).
        """
        return {}

    async def authenticate(self) -> None:
        """
        Resolve the credential used by subsequent calls.

        The default implementation only checks that a static credential
        is present; override for token exchange flows.
        """
        self._auth_headers()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Issue one authenticated REST call.

        Args:
            method: HTTP method
            path: Path relative to base_url (or an absolute URL)
            params: Query parameters
            json: JSON request body
            headers: Replaces the provider auth headers when given

        Returns:
            Parsed JSON body (None for empty responses)

        Raises:
            ProviderRejection: On any non-2xx response or transport failure
        """
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        query = {**self._default_params(), **(params or {})}
        request_headers = headers if headers is not None else self._auth_headers()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    url,
                    params=query or None,
                    json=json,
                    headers=request_headers,
                )
        except httpx.HTTPError as e:
            logger.error(
                "provider_request_failed",
                provider=self.provider_name,
                method=method,
                url=url,
                error=str(e),
            )
            raise ProviderRejection(f"{self.provider_name} request failed: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                "provider_request_rejected",
                provider=self.provider_name,
                method=method,
                url=url,
                status_code=response.status_code,
            )
            raise ProviderRejection.from_response(response)

        logger.debug(
            "provider_request_completed",
            provider=self.provider_name,
            method=method,
            url=url,
            status_code=response.status_code,
        )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _require(self, value: Optional[str], name: str) -> str:
        if not value:
            raise AuthenticationFailure(
                f"{name} is not configured for {self.provider_name}"
            )
        return value

    # Project

    @abstractmethod
    async def resolve_project(self, config: WorkflowConfig) -> ProjectRef:
        """Resolve the identifiers that scope every later call"""
        pass

    # Webhooks

    @abstractmethod
    async def list_webhooks(self, project: ProjectRef) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def create_webhook(self, project: ProjectRef, webhook_url: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    def webhook_target_url(self, hook: Dict[str, Any]) -> Optional[str]:
        """Return the callback URL stored on a provider webhook record"""
        pass

    async def find_webhook(
        self, project: ProjectRef, webhook_url: str
    ) -> Optional[Dict[str, Any]]:
        """
        Find a registered webhook by exact callback URL.

        Args:
            project: Resolved project
            webhook_url: Callback URL to look for

        Returns:
            The webhook record, or None
        """
        hooks = await self.list_webhooks(project)
        for hook in hooks:
            if self.webhook_target_url(hook) == webhook_url:
                return hook
        return None

    # Branches and files

    @abstractmethod
    async def get_branch(self, project: ProjectRef, branch_name: str) -> BranchRef:
        """Raises ResourceNotFound if the branch does not exist"""
        pass

    @abstractmethod
    async def create_branch(
        self, project: ProjectRef, branch_name: str, base: BranchRef
    ) -> BranchRef:
        pass

    @abstractmethod
    async def get_file(
        self, project: ProjectRef, file_path: str, ref: str
    ) -> Optional[FileRef]:
        """Return None when the file is absent on ref"""
        pass

    @abstractmethod
    async def write_file(
        self,
        project: ProjectRef,
        branch: BranchRef,
        file_path: str,
        content: str,
        message: str,
        existing: Optional[FileRef] = None,
    ) -> Dict[str, Any]:
        """Create the file, or update it when existing is given"""
        pass

    # Pull / merge requests

    @abstractmethod
    async def open_change_request(
        self,
        project: ProjectRef,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
    ) -> ChangeRequestRef:
        pass
