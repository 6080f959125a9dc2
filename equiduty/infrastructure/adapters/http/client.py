"""Shared HTTP client for the EquiDuty REST backend.

Sends JSON requests under ``{api_url}/api/{version}`` with a bearer token
and an ``X-Correlation-ID`` header, and maps failures onto the
EquiDutyApiError family. All three HTTP adapters share one instance.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from equiduty.config.client_config import ApiClientConfig
from equiduty.domain.errors.api import (
    BadRequestError,
    DecodingError,
    EquiDutyApiError,
    ForbiddenError,
    InsufficientPermissionsError,
    NetworkError,
    NotFoundError,
    ServerError,
    UnauthorizedError,
)
from equiduty.infrastructure.observability.correlation import ensure_correlation_id

logger = structlog.get_logger()

TokenProvider = Callable[[], Awaitable[str | None]]
PermissionDeniedListener = Callable[[], None]

ModelT = TypeVar("ModelT", bound=BaseModel)


def _error_message(response: httpx.Response) -> str:
    """Extract the backend's ``message`` (or ``error``) from an error body."""
    try:
        detail = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(detail, dict):
        return str(detail.get("message") or detail.get("error") or "")
    return str(detail)


class EquiDutyHttpClient:
    """Low-level JSON client for the EquiDuty backend."""

    def __init__(
        self,
        config: ApiClientConfig,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Backend URL, version and timeout.
            token_provider: Coroutine returning the current bearer token.
            transport: httpx transport override (tests use MockTransport).
        """
        self.config = config
        self._base_url = config.base_url
        self._timeout = config.timeout_seconds
        self._token_provider = token_provider
        self._transport = transport
        self._permission_denied_listeners: list[PermissionDeniedListener] = []

    def add_permission_denied_listener(self, listener: PermissionDeniedListener) -> None:
        """Call ``listener`` whenever the backend answers 403 for a missing permission."""
        self._permission_denied_listeners.append(listener)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Returns:
            Decoded JSON, or None for an empty success body.

        Raises:
            EquiDutyApiError: Subclass matching the failure.
        """
        url = f"{self._base_url}{path}"
        headers = {
            "Accept": "application/json",
            "X-Correlation-ID": ensure_correlation_id(),
        }
        if self._token_provider is not None:
            token = await self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        log = logger.bind(method=method, path=path, correlation_id=headers["X-Correlation-ID"])
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.request(
                    method, url, params=params, json=json, headers=headers
                )
            except httpx.TimeoutException as e:
                log.warning("backend_request_timeout", timeout_seconds=self._timeout)
                raise NetworkError(f"Request timeout after {self._timeout}s") from e
            except httpx.RequestError as e:
                log.warning("backend_request_failed", error=str(e))
                raise NetworkError(f"Request failed: {e}") from e

        log.debug("backend_response", status_code=response.status_code)
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        """Decode a success body or raise the matching error.

        Raises:
            BadRequestError: 400, carrying the backend's message.
            UnauthorizedError: 401.
            InsufficientPermissionsError: 403 whose message mentions permission.
            ForbiddenError: Any other 403.
            NotFoundError: 404.
            ServerError: 5xx.
            DecodingError: Success status with a non-JSON body.
            EquiDutyApiError: Any other status.
        """
        status = response.status_code

        if 200 <= status < 300:
            if status == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise DecodingError(
                    "Response body is not valid JSON", status_code=status
                ) from e

        message = _error_message(response)

        if status == 400:
            raise BadRequestError(message or "Bad request")

        if status == 401:
            raise UnauthorizedError()

        if status == 403:
            if "permission" in message.lower():
                for listener in list(self._permission_denied_listeners):
                    listener()
                raise InsufficientPermissionsError(message)
            raise ForbiddenError(message or "Access denied")

        if status == 404:
            raise NotFoundError(message or "Not found")

        if 500 <= status < 600:
            raise ServerError(status, f"Server error: {status}")

        raise EquiDutyApiError(f"Unexpected status code: {status}", status_code=status)


def decode(model: type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` against a wire model.

    Raises:
        DecodingError: If the body does not match the model.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DecodingError(
            f"Unexpected {model.__name__} payload: {e.error_count()} validation errors"
        ) from e
