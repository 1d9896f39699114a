# app/domains/admin/service.py
"""Account administration: listing, editing, suspending and removing users."""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import asc, delete, desc, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.domains.item.service import ItemService
from app.domains.user.service import UsageService, UserService
from app.exceptions.base import ValidationError
from app.exceptions.user import SelfManagementError, UserNotFoundError
from app.schemas.user import (
    AdminUserCreate,
    AdminUserFilter,
    AdminUserResponse,
    AdminUserUpdate,
    UsageResponse,
    UserResponse,
)
from app.services.storage_service import StorageBackend, delete_objects_quietly
from app.shared.pagination import PaginationParams, paginate
from models import Collection, CollectionItem, File, SharedLink, Tag, User, UserRole, UserUsage

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": User.created_at,
    "email": User.email,
    "name": User.name,
}

LIMIT_FIELDS = ("max_storage_bytes", "max_items", "max_collections")


class AdminUserService:
    def __init__(self, db: AsyncSession, storage: StorageBackend):
        self.db = db
        self.storage = storage
        self.usage = UsageService(db)

    async def list_users(
        self,
        filters: Optional[AdminUserFilter] = None,
        pagination: Optional[PaginationParams] = None,
    ) -> Dict[str, Any]:
        """Paginated user listing with search, role and status filters."""
        filters = filters or AdminUserFilter()
        stmt = select(User)

        if filters.search:
            search_term = f"%{filters.search}%"
            stmt = stmt.where(or_(User.email.ilike(search_term), User.name.ilike(search_term)))
        if filters.role:
            stmt = stmt.where(User.role == filters.role)
        if filters.is_active is not None:
            stmt = stmt.where(User.is_active.is_(filters.is_active))
        if filters.is_email_verified is not None:
            stmt = stmt.where(User.is_email_verified.is_(filters.is_email_verified))

        direction = asc if filters.sort_order == "asc" else desc
        stmt = stmt.order_by(direction(SORT_COLUMNS[filters.sort_by]), asc(User.id))

        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def get_user(self, user_id: UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def create_user(self, data: AdminUserCreate) -> User:
        """Create an account with an explicit role and status."""
        user = await UserService(self.db).create_user(
            data.email,
            data.password,
            name=data.name,
            role=data.role,
            is_active=data.is_active,
            is_email_verified=data.is_email_verified,
        )
        logger.info("User created by admin: %s", user.id)
        return user

    async def update_user(self, user_id: UUID, data: AdminUserUpdate, admin: User) -> User:
        """Update profile, role, status and usage limits.

        An administrator cannot demote or deactivate their own account.
        """
        user = await self.get_user(user_id)
        update_data = data.model_dump(exclude_unset=True)

        if user.id == admin.id:
            if update_data.get("role") not in (None, UserRole.ADMIN.value):
                raise SelfManagementError("You cannot remove your own admin role")
            if update_data.get("is_active") is False:
                raise SelfManagementError("You cannot deactivate your own account")

        if "name" in update_data:
            user.name = update_data["name"]
        if update_data.get("password") is not None:
            user.password_hash = hash_password(update_data["password"])
            user.refresh_token_hash = None
        for field in ("role", "is_active", "is_email_verified"):
            if update_data.get(field) is not None:
                setattr(user, field, update_data[field])
        if user.is_active is False:
            user.refresh_token_hash = None

        limits = {field: update_data[field] for field in LIMIT_FIELDS if update_data.get(field) is not None}
        if limits:
            usage = await self.usage.get_usage(user.id)
            for field, value in limits.items():
                setattr(usage, field, value)

        await self._commit("Failed to update user")
        await self.db.refresh(user)
        logger.info("User updated by admin: %s", user.id)
        return user

    async def toggle_status(self, user_id: UUID, admin: User) -> User:
        """Flip ``is_active``; deactivation also revokes the refresh token."""
        if user_id == admin.id:
            raise SelfManagementError("You cannot deactivate your own account")
        user = await self.get_user(user_id)
        user.is_active = not user.is_active
        if not user.is_active:
            user.refresh_token_hash = None

        await self._commit("Failed to update user status")
        await self.db.refresh(user)
        logger.info("User %s %s", user.id, "activated" if user.is_active else "deactivated")
        return user

    async def delete_user(self, user_id: UUID, admin: User) -> None:
        """Delete a user with all their items, collections, tags, links and files."""
        if user_id == admin.id:
            raise SelfManagementError("You cannot delete your own account")
        user = await self.get_user(user_id)
        user_id = user.id

        # Items go through the regular purge so shared files and usage stay consistent
        await ItemService(self.db, self.storage).delete_all_for_user(user_id)

        try:
            result = await self.db.execute(select(File.storage_key).where(File.user_id == user_id))
            keys: List[str] = list(result.scalars().all())

            await self.db.execute(delete(CollectionItem).where(CollectionItem.user_id == user_id))
            await self.db.execute(delete(SharedLink).where(SharedLink.user_id == user_id))
            await self.db.execute(delete(Collection).where(Collection.user_id == user_id))
            await self.db.execute(delete(Tag).where(Tag.user_id == user_id))
            await self.db.execute(delete(File).where(File.user_id == user_id))
            await self.db.execute(delete(UserUsage).where(UserUsage.user_id == user_id))
            await self.db.execute(delete(User).where(User.id == user_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to delete user") from e

        logger.info("User deleted by admin %s: %s", admin.id, user_id)
        await delete_objects_quietly(self.storage, keys)

    async def to_response(self, user: User) -> AdminUserResponse:
        usage = await self.usage.get_usage(user.id)
        return AdminUserResponse(
            **UserResponse.model_validate(user).model_dump(),
            usage=UsageResponse.model_validate(usage),
        )

    async def _commit(self, failure_message: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(failure_message) from e
