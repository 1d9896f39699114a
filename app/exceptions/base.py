# ruff: noqa: D107
"""Base exception classes."""

from typing import Any

from fastapi import HTTPException


class BaseAppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Any = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details

        super().__init__(
            status_code=status_code,
            detail={"message": message, "error_code": error_code, "details": details},
        )


class ValidationError(BaseAppException):
    """Exception raised when a payload is malformed or violates a business rule."""

    def __init__(self, message: str = "Validation failed", details: Any = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class UnauthorizedError(BaseAppException):
    """Exception raised when authentication is missing or invalid."""

    def __init__(self, message: str = "Authentication required", details: Any = None):
        super().__init__(
            message=message,
            status_code=401,
            error_code="UNAUTHORIZED",
            details=details,
        )


class ForbiddenError(BaseAppException):
    """Exception raised when user doesn't have permission to access a resource."""

    def __init__(self, message: str = "Permission denied", details: Any = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="FORBIDDEN",
            details=details,
        )


class NotFoundError(BaseAppException):
    """Exception raised when a resource is not found."""

    def __init__(self, message: str = "Resource not found", details: Any = None):
        super().__init__(message=message, status_code=404, error_code="NOT_FOUND", details=details)


class ConflictError(BaseAppException):
    """Exception raised when a unique field is already taken."""

    def __init__(self, message: str = "Resource already exists", details: Any = None):
        super().__init__(message=message, status_code=409, error_code="CONFLICT", details=details)


class GoneError(BaseAppException):
    """Exception raised when a resource existed but is no longer available."""

    def __init__(self, message: str = "Resource is no longer available", details: Any = None):
        super().__init__(message=message, status_code=410, error_code="GONE", details=details)


class QuotaExceededError(BaseAppException):
    """Exception raised when a storage, item or collection limit would be exceeded."""

    def __init__(self, message: str = "Usage quota exceeded", details: Any = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="QUOTA_EXCEEDED",
            details=details,
        )


def format_validation_errors(errors) -> list[dict[str, Any]]:
    """Reduce pydantic error dicts to JSON-safe ``{field, message, type}`` entries."""
    formatted = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        formatted.append(
            {
                "field": ".".join(loc),
                "message": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
        )
    return formatted
