"""Shared exceptions for the AgriChat API."""
from typing import Any, Dict, Optional


class AgriChatException(Exception):
    """Base exception for AgriChat API."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AgriChatException):
    """Raised when input validation fails."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(AgriChatException):
    """Raised when a resource is not found."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        message = f"{resource} not found"
        super().__init__(message, "NOT_FOUND", {"resource": resource, "identifier": str(identifier)})


class RateLimitExceededError(AgriChatException):
    """Raised when a client exceeds the write rate limit."""

    status_code = 429

    def __init__(self, client: str, retry_after: Optional[int] = None):
        message = "Too many requests from this IP, please try again later."
        super().__init__(
            message, "RATE_LIMIT_EXCEEDED", {"client": client, "retry_after": retry_after}
        )


class DatabaseError(AgriChatException):
    """Raised when database operations fail."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DATABASE_ERROR", details)
