"""Shared link exceptions.

Public callers see the same message for revoked and expired links.
"""

from .base import GoneError, NotFoundError, UnauthorizedError, ValidationError


class SharedLinkNotFoundError(NotFoundError):
    """Raised when a share token or link id is unknown."""

    def __init__(self, message: str = "Share link not found"):
        super().__init__(message=message)


class SharedLinkUnavailableError(GoneError):
    """Raised when a link is revoked or expired."""

    def __init__(self, message: str = "This share link is unavailable"):
        super().__init__(message=message)


class SharedLinkPasswordError(UnauthorizedError):
    """Raised when a protected link is accessed without the right password."""

    def __init__(self, message: str = "Invalid or missing password for this share link"):
        super().__init__(message=message)


class SharedLinkRevokedError(ValidationError):
    """Raised when the owner tries to modify a revoked link."""

    def __init__(self, message: str = "Revoked share links cannot be modified"):
        super().__init__(message=message)
