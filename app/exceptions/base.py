# ruff: noqa: D107
"""Base exception classes.

Every error a route can answer with is a ``BaseAppException``; the global
handler in ``app.main`` turns its ``detail`` into the JSON error body.
"""

from typing import Any

from fastapi import HTTPException


class BaseAppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={"message": message, "error_code": error_code, "details": details},
            headers=headers,
        )


class ValidationError(BaseAppException):
    """The request is well-formed but breaks a business rule (400)."""

    def __init__(
        self,
        message: str = "Validation failed",
        error_code: str = "VALIDATION_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code=400, error_code=error_code, details=details)


class AuthenticationError(BaseAppException):
    """Exception raised when a bearer token is missing or cannot be verified."""

    def __init__(
        self,
        message: str = "Invalid token",
        error_code: str = "INVALID_TOKEN",
        headers: dict[str, str] | None = None,
    ):
        super().__init__(
            message,
            status_code=401,
            error_code=error_code,
            headers=headers or {"WWW-Authenticate": "Bearer"},
        )


class AppPermissionError(BaseAppException):
    """The caller is authenticated but may not act on the resource (403)."""

    def __init__(self, message: str = "Permission denied", error_code: str = "PERMISSION_DENIED"):
        super().__init__(message, status_code=403, error_code=error_code)


class NotFoundError(BaseAppException):
    """The resource does not exist or is not visible to the caller (404)."""

    def __init__(self, message: str = "Resource not found", error_code: str = "NOT_FOUND"):
        super().__init__(message, status_code=404, error_code=error_code)
