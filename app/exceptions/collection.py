"""Collection-related exceptions."""

from .base import ConflictError, NotFoundError, QuotaExceededError, ValidationError


class CollectionNotFoundError(NotFoundError):
    """Raised when a collection is not found."""

    def __init__(self, message: str = "Collection not found"):
        super().__init__(message=message)


class CollectionCycleError(ValidationError):
    """Raised when a move would place a collection under itself or a descendant."""

    def __init__(self, message: str = "A collection cannot be moved under itself or its descendants"):
        super().__init__(message=message)


class DuplicateSlugError(ConflictError):
    """Raised when a public slug is already used by another collection."""

    def __init__(self, message: str = "Public slug is already in use"):
        super().__init__(message=message)


class CollectionQuotaExceededError(QuotaExceededError):
    """Raised when the user already owns the maximum number of collections."""

    def __init__(self, message: str = "Collection quota exceeded"):
        super().__init__(message=message)
