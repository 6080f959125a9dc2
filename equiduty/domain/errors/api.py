"""Backend collaborator errors.

Raised by the REST adapter when the backend refuses or cannot be reached.
They live in the domain so controllers can react to them without knowing
which adapter is wired in.

HTTP status mapping:
- 400: BadRequestError (message is user-facing)
- 401: UnauthorizedError
- 403: InsufficientPermissionsError if the message mentions permission,
       ForbiddenError otherwise
- 404: NotFoundError
- 5xx: ServerError
- transport failure or timeout: NetworkError
- undecodable response body: DecodingError
"""

from __future__ import annotations

from equiduty.domain.exceptions import EquiDutyError


class EquiDutyApiError(EquiDutyError):
    """Base error for backend calls.

    Attributes:
        status_code: HTTP status code, if a response was received.
    """

    def __init__(self, message: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class BadRequestError(EquiDutyApiError):
    """Backend rejected the request as invalid (400)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=400)


class UnauthorizedError(EquiDutyApiError):
    """Authentication is missing or expired (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, status_code=401)


class ForbiddenError(EquiDutyApiError):
    """Backend refused the action (403)."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message, status_code=403)


class InsufficientPermissionsError(ForbiddenError):
    """Backend refused the action for lack of an organization permission (403)."""


class NotFoundError(EquiDutyApiError):
    """Resource does not exist or is not visible to the caller (404)."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message, status_code=404)


class ServerError(EquiDutyApiError):
    """Backend failed (5xx)."""

    def __init__(self, status_code: int, message: str = "Server error") -> None:
        super().__init__(message, status_code=status_code)


class NetworkError(EquiDutyApiError):
    """Request never produced a response (connection failure, timeout)."""


class DecodingError(EquiDutyApiError):
    """Response body could not be decoded into the expected shape."""
