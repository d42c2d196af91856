"""Error types raised by the link core.

Each error carries the HTTP status the web layer answers with, so the
API can map every failure through a single exception handler.
"""

from fastapi import status


class LinklyError(Exception):
    """Base class for all link core errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LinklyError):
    """Missing or malformed input, e.g. an empty destination URL."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(LinklyError):
    """The requested alias (or id) already belongs to another link."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, alias: str, message: str | None = None) -> None:
        super().__init__(message or f"Alias '{alias}' is already in use")
        self.alias = alias


class NotFoundError(LinklyError):
    """Unknown, inactive or expired link."""

    status_code = status.HTTP_404_NOT_FOUND


class CapacityError(LinklyError):
    """Alias generation ran out of attempts."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class RateLimitExceeded(LinklyError):
    """A client used up its requests for the current window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, client_key: str) -> None:
        super().__init__("Rate limit exceeded")
        self.client_key = client_key
