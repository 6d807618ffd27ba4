# core/exceptions.py

"""
APPLICATION ERRORS

Centralized error hierarchy shared by every domain service.

Rules:
- Every error carries an HTTP status code and an optional details payload.
- Services raise these; views never build error responses by hand.
- core.api.exception_handler turns them into the JSON error envelope.
"""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base exception for all application failures."""

    status_code = 500
    default_message = "Internal server error"
    error_code = "app_error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"code": self.error_code, "status_code": self.status_code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    """Raised when caller input is missing or malformed."""

    status_code = 400
    default_message = "Validation failed"
    error_code = "validation_error"


class InvalidStateError(AppError):
    """Raised when an operation is not allowed in the document's current state."""

    status_code = 400
    default_message = "Operation not allowed in the current state"
    error_code = "invalid_state"


class InvalidTransitionError(InvalidStateError):
    """Raised on a status change that is not in the allow-list."""

    error_code = "invalid_transition"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication failed"
    error_code = "authentication_error"


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Access denied"
    error_code = "authorization_error"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"
    error_code = "not_found"

    def __init__(self, resource: str = "Resource", *, details: Any = None):
        super().__init__(f"{resource} not found", details=details)


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"
    error_code = "conflict"


class BusinessLogicError(AppError):
    status_code = 422
    default_message = "Business rule violated"
    error_code = "business_logic_error"


class RateLimitError(AppError):
    status_code = 429
    default_message = "Too many requests"
    error_code = "rate_limited"


class DatabaseError(AppError):
    status_code = 500
    default_message = "Database operation failed"
    error_code = "database_error"


class ExternalServiceError(AppError):
    status_code = 503
    default_message = "External service unavailable"
    error_code = "external_service_error"
