"""Ownership checks shared by every domain service."""

from typing import Optional, TypeVar
from uuid import UUID

from app.exceptions.base import ForbiddenError, NotFoundError

T = TypeVar("T")


def ensure_owner(resource: T, user_id: UUID, message: str = "You do not have permission to access this resource") -> T:
    """Raise ``ForbiddenError`` unless ``resource`` belongs to ``user_id``."""
    if resource.user_id != user_id:
        raise ForbiddenError(message)
    return resource


def ensure_found_and_owned(
    resource: Optional[T],
    user_id: UUID,
    not_found: NotFoundError,
    forbidden_message: str = "You do not have permission to access this resource",
) -> T:
    """Raise ``not_found`` for a missing resource, then check ownership."""
    if resource is None:
        raise not_found
    return ensure_owner(resource, user_id, forbidden_message)
