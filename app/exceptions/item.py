"""Item-related exceptions."""

from .base import NotFoundError, QuotaExceededError, ValidationError


class ItemNotFoundError(NotFoundError):
    """Raised when an item is not found."""

    def __init__(self, message: str = "Item not found"):
        super().__init__(message=message)


class ItemFileNotFoundError(NotFoundError):
    """Raised when a file is not attached to the item."""

    def __init__(self, message: str = "File not found on this item"):
        super().__init__(message=message)


class InvalidItemPayloadError(ValidationError):
    """Raised when an item payload does not match its type."""

    def __init__(self, message: str = "Invalid item payload", details=None):
        super().__init__(message=message, details=details)


class StorageQuotaExceededError(QuotaExceededError):
    """Raised when uploads would exceed the user's storage limit."""

    def __init__(self, message: str = "Storage quota exceeded"):
        super().__init__(message=message)


class ItemQuotaExceededError(QuotaExceededError):
    """Raised when the user already owns the maximum number of items."""

    def __init__(self, message: str = "Item quota exceeded"):
        super().__init__(message=message)
