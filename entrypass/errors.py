"""
Error taxonomy for the entry pass protocol.

Every failure path raises one of these; the API layer turns them into
`{ok: false, error, timestamp}` bodies with the matching status code.
"""

from typing import Any, Dict, Optional

from fastapi import status

INTERNAL_ERROR_MESSAGE = "An internal error occurred"


class EntryPassError(Exception):
    """Base class for all protocol errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    # Internal errors have their message replaced in production responses
    expose: bool = True

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        """Additional fields merged into the error body."""
        return {}


class ValidationError(EntryPassError):
    """Malformed input, rejected before any business logic runs."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")

    def extra(self) -> Dict[str, Any]:
        return {"field": self.field}


class InvalidTokenError(EntryPassError):
    """Bad signature, expired, or structurally malformed entry token."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class Unauthorized(EntryPassError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(EntryPassError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFound(EntryPassError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class AlreadyCheckedIn(EntryPassError):
    """Raised under the `reject` check-in policy on a second approval."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Already checked in"):
        super().__init__(message)


class RateLimited(EntryPassError):
    """Request or PIN throttling. Carries a back-off hint for the client."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        message: str = "Too many requests",
        retry_after: Optional[float] = None,
        locked_until: Optional[int] = None,
    ):
        self.retry_after = retry_after
        self.locked_until = locked_until
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.retry_after is not None:
            data["retryAfter"] = round(self.retry_after, 1)
        if self.locked_until is not None:
            data["lockedUntil"] = self.locked_until
        return data


class UpstreamError(EntryPassError):
    """Store, identity service or mail provider failure."""

    status_code = status.HTTP_502_BAD_GATEWAY
    expose = False


class ConfigError(EntryPassError):
    """A required secret or setting is missing."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    expose = False


class MethodNotAllowed(EntryPassError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED

    def __init__(self, message: str = "Method not allowed"):
        super().__init__(message)


class PayloadTooLarge(EntryPassError):
    status_code = 413

    def __init__(self, message: str = "Request too large"):
        super().__init__(message)
