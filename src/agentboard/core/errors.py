"""Error taxonomy shared by the services and the HTTP layer.

Services raise these; `agentboard.main` turns them into JSON bodies of the form
``{"error": reason, "detail": message}`` with the matching status code.
"""

from __future__ import annotations

from fastapi import status


class BoardError(Exception):
    """Base class for every error surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason: str = "server_error"

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason

    def to_dict(self) -> dict[str, object]:
        return {"error": self.reason, "detail": self.message}


class ValidationError(BoardError):
    status_code = status.HTTP_400_BAD_REQUEST
    reason = "invalid_request"


class AuthenticationError(BoardError):
    """Missing credentials (401) or an unknown secret (403)."""

    status_code = status.HTTP_401_UNAUTHORIZED
    reason = "missing_credentials"

    def __init__(self, message: str, *, invalid: bool = False) -> None:
        super().__init__(message, reason="invalid_api_key" if invalid else None)
        if invalid:
            self.status_code = status.HTTP_403_FORBIDDEN


class ModeratorAuthError(BoardError):
    status_code = status.HTTP_401_UNAUTHORIZED
    reason = "unauthorized"


class BannedError(BoardError):
    status_code = status.HTTP_403_FORBIDDEN
    reason = "ip_banned"

    def __init__(self) -> None:
        super().__init__("Your IP has been banned or timed out.")


class NotFoundError(BoardError):
    status_code = status.HTTP_404_NOT_FOUND
    reason = "not_found"


class ConflictError(BoardError):
    status_code = status.HTTP_409_CONFLICT
    reason = "conflict"

    def __init__(self, message: str, *, reason: str | None = None, current: object = None) -> None:
        super().__init__(message, reason=reason)
        self.current = current

    def to_dict(self) -> dict[str, object]:
        body = super().to_dict()
        if self.current is not None:
            body["current"] = self.current
        return body


class RateLimitedError(BoardError):
    """Raised once a fixed-window counter passes its limit."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    reason = "rate_limited"

    def __init__(self, message: str, *, limit: int, remaining: int, reset_at: int, retry_after: int) -> None:
        super().__init__(message)
        self.limit = limit
        self.remaining = remaining
        self.reset_at = reset_at
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, object]:
        body = super().to_dict()
        body["retry_after"] = self.retry_after
        return body

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


__all__ = [
    "AuthenticationError",
    "BannedError",
    "BoardError",
    "ConflictError",
    "ModeratorAuthError",
    "NotFoundError",
    "RateLimitedError",
    "ValidationError",
]
