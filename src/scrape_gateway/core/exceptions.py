"""Gateway error taxonomy.

Every failure the gateway reports to a client is one of these exceptions.
They carry the HTTP status and any response headers; the application
exception handler renders them as ``{"success": false, "error": ...}``.
"""

from fastapi import status


class GatewayError(Exception):
    """Base class for client-visible gateway failures.

    Args:
        message: Sanitized, client-safe error description.
        status_code: HTTP status returned to the caller.
        headers: Extra response headers (rate-limit hints, auth challenges).
    """

    default_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status_code
        self.headers = dict(headers) if headers else {}
        super().__init__(message)


class Unauthenticated(GatewayError):
    """Missing, malformed, expired or revoked bearer credential."""

    default_status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(GatewayError):
    """Valid identity that lacks the required role."""

    default_status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Admin access required") -> None:
        super().__init__(message)


class InvalidArgument(GatewayError):
    """Missing or malformed request target or options."""

    default_status_code = status.HTTP_400_BAD_REQUEST


class RateLimited(GatewayError):
    """Per-user quota exhausted for the current window."""

    default_status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after: int, headers: dict[str, str] | None = None) -> None:
        self.retry_after = retry_after
        super().__init__("Rate limit exceeded. Please wait before making more requests.", headers=headers)


class UpstreamUnavailable(GatewayError):
    """Transport failure or non-2xx response from the scraping provider."""

    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StorageUnavailable(GatewayError):
    """The ledger or role store could not be read or written."""

    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Usage ledger unavailable") -> None:
        super().__init__(message)
