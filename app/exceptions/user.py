"""User administration exceptions."""

from .base import ForbiddenError, NotFoundError


class UserNotFoundError(NotFoundError):
    """Raised when a user id is unknown."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message=message)


class SelfManagementError(ForbiddenError):
    """Raised when an administrator would lock themselves out."""

    def __init__(self, message: str = "You cannot perform this action on your own account"):
        super().__init__(message=message)
