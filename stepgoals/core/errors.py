from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for every error the client surfaces to its stores."""

    default_code = "app_error"

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class NetworkError(AppError):
    default_code = "network_error"

    def __init__(
        self,
        message: str = "Network error",
        *,
        is_no_connection: bool = False,
        is_timeout: bool = False,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.is_no_connection = is_no_connection
        self.is_timeout = is_timeout


class ServerError(AppError):
    default_code = "server_error"

    def __init__(
        self,
        message: str = "Server error",
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.status_code = status_code


class CacheError(AppError):
    default_code = "cache_error"

    def __init__(self, message: str = "Cache error", *, is_expired: bool = False, code: str | None = None) -> None:
        super().__init__(message, code=code)
        self.is_expired = is_expired


class ValidationError(AppError):
    default_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field_errors: dict[str, list[str]] | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.field_errors = field_errors or {}


class UnauthorizedError(AppError):
    default_code = "unauthorized"

    def __init__(
        self,
        message: str = "Unauthorized",
        *,
        is_token_expired: bool = False,
        is_permission_denied: bool = False,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.is_token_expired = is_token_expired
        self.is_permission_denied = is_permission_denied


class NotFoundError(AppError):
    default_code = "not_found"


class RateLimitError(AppError):
    default_code = "rate_limited"

    def __init__(self, message: str = "Too many requests", *, retry_after: float | None = None, code: str | None = None) -> None:
        super().__init__(message, code=code)
        self.retry_after = retry_after


class UnexpectedError(AppError):
    default_code = "unexpected_error"


class RealtimeError(AppError):
    default_code = "realtime_error"


GENERIC_MESSAGE = "An unexpected error occurred. Please try again."

MESSAGES: dict[str, str] = {
    "network.no_connection": "No internet connection. Please check your network settings.",
    "network.timeout": "Request timed out. Please check your connection and try again.",
    "network": "Network error. Please check your connection and try again.",
    "server.400": "Invalid request. Please check your input and try again.",
    "server.403": "Access denied. You do not have permission for this action.",
    "server.404": "The requested resource was not found.",
    "server": "Server error. Please try again later.",
    "auth.expired": "Your session has expired. Please log in again.",
    "auth.denied": "You do not have permission to perform this action.",
    "auth": "Authentication required. Please log in again.",
    "cache.expired": "Cached data has expired. Refreshing...",
    "cache": "Unable to access cached data. Please try again.",
    "not_found": "The requested resource was not found.",
    "rate_limited": "Too many requests. Please wait a moment and try again.",
    "realtime": "Live updates are unavailable right now.",
}


def _message_key(error: BaseException) -> str | None:
    if isinstance(error, NetworkError):
        if error.is_no_connection:
            return "network.no_connection"
        if error.is_timeout:
            return "network.timeout"
        return "network"
    if isinstance(error, ServerError):
        key = f"server.{error.status_code}"
        return key if key in MESSAGES else "server"
    if isinstance(error, UnauthorizedError):
        if error.is_token_expired:
            return "auth.expired"
        if error.is_permission_denied:
            return "auth.denied"
        return "auth"
    if isinstance(error, CacheError):
        return "cache.expired" if error.is_expired else "cache"
    if isinstance(error, NotFoundError):
        return "not_found"
    if isinstance(error, RateLimitError):
        return "rate_limited"
    if isinstance(error, RealtimeError):
        return "realtime"
    return None


def user_message(error: BaseException) -> str:
    """Map an error to the string shown to the user."""
    if isinstance(error, ValidationError):
        if error.field_errors:
            return ". ".join(msg for messages in error.field_errors.values() for msg in messages)
        return error.message
    key = _message_key(error)
    if key is None:
        return GENERIC_MESSAGE
    return MESSAGES[key]


def is_recoverable(error: BaseException) -> bool:
    if isinstance(error, NetworkError):
        return error.is_timeout
    if isinstance(error, ServerError):
        return error.status_code in (500, 502, 503)
    return isinstance(error, CacheError)


def should_logout(error: BaseException) -> bool:
    if isinstance(error, UnauthorizedError):
        return error.is_token_expired or error.code in ("INVALID_TOKEN", "UNAUTHENTICATED")
    return False
