"""Control-plane API client with authentication, retries and cancellation."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Optional

import httpx

from common.config.config import ClientConfig
from common.exception.exceptions import (
    RemoteError,
    RetriesExhaustedError,
    RetryableError,
    UnauthenticatedError,
)
from common.utils.cancellation import CancellationToken
from forge_deploy.entity.deployment import (
    DeploymentSnapshot,
    OperationKind,
    parse_deployment_snapshot,
)
from forge_deploy.entity.health import HealthSnapshot, parse_health_snapshot
from forge_deploy.models.response_models import (
    DeploymentPreview,
    extract_data,
    parse_deployment_preview,
)
from forge_deploy.services.cloud_api.retry_logic import (
    backoff_with_jitter,
    is_retryable_error,
    is_retryable_status,
)

logger = logging.getLogger(__name__)


class CloudAPIService:
    """Client for the World Forge control-plane API.

    This class:
    1. Maintains a single httpx.AsyncClient for connection pooling
    2. Attaches the configured credential to every request
    3. Retries transient failures (timeouts, 429, 5xx) with exponential backoff and jitter
    4. Stops waiting as soon as the caller's CancellationToken fires

    HTTP 401 is never retried and surfaces as UnauthenticatedError.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the API client.

        Args:
            config: Client configuration (base URL, credential, retry policy)
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
            rng: Optional random source for backoff jitter
        """
        self.config = config
        self._transport = transport
        self._rng = rng
        self._client: Optional[httpx.AsyncClient] = None
        self._token: Optional[str] = config.auth_token
        self._config_lock = asyncio.Lock()

    def set_auth_token(self, token: str) -> None:
        """Replace the credential used for subsequent requests."""
        self._token = token

    async def _ensure_client_initialized(self) -> httpx.AsyncClient:
        """Ensure the HTTP client is initialized and return it."""
        if self._client is None:
            async with self._config_lock:
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        base_url=self.config.api_url,
                        timeout=self.config.request_timeout,
                        transport=self._transport,
                    )
                    logger.info(
                        f"Initialized Forge API client with base URL: {self.config.api_url}"
                    )
        return self._client

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"{self.config.auth_scheme} {self._token}"
        return headers

    @staticmethod
    def _extract_message(response: httpx.Response) -> str:
        """Return the ``message`` field of an error body, or an empty string."""
        try:
            payload = response.json()
        except ValueError:
            return ""
        if isinstance(payload, dict):
            message = payload.get("message")
            if isinstance(message, str):
                return message
        return ""

    async def _do_request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        body: Optional[Any],
    ) -> bytes:
        """Execute a single HTTP request and map the outcome to bytes or an error."""
        kwargs: dict[str, Any] = {"headers": self._build_headers()}
        if body is not None:
            kwargs["json"] = body

        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            raise
        except httpx.HTTPError as e:
            raise RemoteError(f"Request to {path} failed: {e}") from e

        if response.status_code == 401:
            raise UnauthenticatedError(str(response.request.url))

        if not response.is_success:
            message = self._extract_message(response)
            if is_retryable_status(response.status_code):
                raise RetryableError(message, status_code=response.status_code)
            raise RemoteError(message, status_code=response.status_code)

        return response.content

    async def send(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> bytes:
        """Send an authenticated request, retrying transient failures.

        Args:
            method: HTTP method (GET, POST, ...)
            path: API path relative to the configured base URL
            body: Optional JSON-serializable request body
            cancel_token: Session cancellation token

        Returns:
            Raw response body

        Raises:
            UnauthenticatedError: On HTTP 401, immediately
            RemoteError: On any other non-retryable failure
            RetriesExhaustedError: When every attempt failed with a retryable error
            OperationCanceledError: When the token fires before the request completes
        """
        client = await self._ensure_client_initialized()
        token = cancel_token or CancellationToken()
        max_retries = self.config.max_retries
        last_error: Optional[BaseException] = None

        for attempt in range(max_retries):
            token.raise_if_cancelled()
            if attempt > 0:
                logger.info(f"Retrying {method} {path} (attempt {attempt + 1}/{max_retries})")

            try:
                return await token.run(self._do_request(client, method, path, body))
            except (httpx.TimeoutException, RemoteError) as e:
                if not is_retryable_error(e):
                    raise
                last_error = e

            if attempt < max_retries - 1:
                delay = backoff_with_jitter(self.config.retry_base_delay, attempt, self._rng)
                logger.warning(
                    f"Failed to make request [{method} {path}]: {last_error!r}. "
                    f"Retrying in {delay:.3f}s..."
                )
                await token.wait(delay)

        logger.error(f"Request [{method} {path}] failed after {max_retries} attempts: {last_error!r}")
        raise RetriesExhaustedError(max_retries, last_error) from last_error

    @staticmethod
    def _require(value: str, name: str) -> None:
        if not value:
            raise ValueError(f"{name} is required")

    def _operation_path(
        self, org_id: str, project_id: str, kind: OperationKind, force: bool
    ) -> str:
        self._require(org_id, "organization ID")
        self._require(project_id, "project ID")
        if force and kind != OperationKind.DEPLOY:
            raise ValueError(f"force is only supported for deploy, not {kind.value}")
        path = f"/api/organization/{org_id}/project/{project_id}/{kind.value}"
        if force:
            path += "?force=true"
        return path

    async def trigger_operation(
        self,
        org_id: str,
        project_id: str,
        kind: OperationKind,
        force: bool = False,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> None:
        """Start a deploy, destroy or reset. Returns as soon as the control plane accepts it."""
        path = self._operation_path(org_id, project_id, kind, force)
        logger.info(f"Triggering {kind.value} for project {project_id} (force={force})")
        await self.send("POST", path, cancel_token=cancel_token)

    async def preview_deployment(
        self,
        org_id: str,
        project_id: str,
        kind: OperationKind,
        force: bool = False,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DeploymentPreview:
        """Ask the control plane what an operation would do without running it."""
        path = self._operation_path(org_id, project_id, kind, force)
        separator = "&" if "?" in path else "?"
        body = await self.send("POST", f"{path}{separator}preview=true", cancel_token=cancel_token)
        return parse_deployment_preview(body)

    async def get_deployment_status(
        self, project_id: str, *, cancel_token: Optional[CancellationToken] = None
    ) -> DeploymentSnapshot:
        """Fetch per-environment deployment status. Empty when nothing is deployed."""
        self._require(project_id, "project ID")
        body = await self.send("GET", f"/api/deployment/{project_id}", cancel_token=cancel_token)
        return parse_deployment_snapshot(extract_data(body), project_id)

    async def get_health_status(
        self, project_id: str, *, cancel_token: Optional[CancellationToken] = None
    ) -> HealthSnapshot:
        """Fetch per-environment instance health. Empty when nothing is reported."""
        self._require(project_id, "project ID")
        body = await self.send("GET", f"/api/health/{project_id}", cancel_token=cancel_token)
        return parse_health_snapshot(extract_data(body))

    async def close(self):
        """Close the HTTP client and cleanup resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Forge API client closed")

    async def __aenter__(self):
        await self._ensure_client_initialized()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
