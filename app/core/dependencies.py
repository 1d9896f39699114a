# app/core/dependencies.py
import logging
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import TokenAuthenticator
from app.database import get_db
from app.exceptions.base import ForbiddenError, UnauthorizedError
from models import User, UserRole

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)
auth = TokenAuthenticator()


async def validate_token(
    token: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """Validate and decode the bearer token.

    Returns:
        dict: Decoded token payload

    Raises:
        UnauthorizedError: If the token is missing, invalid or expired
    """
    if not token or not token.credentials:
        raise UnauthorizedError("Authentication token is required")

    return auth.verify_token(token.credentials)


async def get_current_user(
    request: Request,
    payload: dict = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from JWT payload.

    Returns:
        User: Current authenticated user

    Raises:
        UnauthorizedError: If the user is unknown or inactive
    """
    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError as e:
        raise UnauthorizedError("Invalid token payload") from e

    user = await db.get(User, user_id)
    if not user:
        raise UnauthorizedError("User not found")

    if not user.is_active:
        logger.info("Rejected token for inactive user %s", user_id)
        raise UnauthorizedError("User account is inactive")

    # Add user info to request state for logging
    request.state.user_id = user.id

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Allow only users with the ADMIN role."""
    if current_user.role != UserRole.ADMIN.value:
        raise ForbiddenError("Admin role required")
    return current_user
