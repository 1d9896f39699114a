# app/domains/user/service.py
import logging
from typing import NamedTuple, Optional
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import REFRESH_TOKEN, TokenAuthenticator, hash_password, hash_token, verify_password
from app.exceptions.base import ConflictError, UnauthorizedError, ValidationError
from app.exceptions.collection import CollectionQuotaExceededError
from app.exceptions.item import ItemQuotaExceededError, StorageQuotaExceededError
from app.schemas.user import LoginRequest, RegisterRequest, UserUpdateRequest
from models import User, UserRole, UserUsage

logger = logging.getLogger(__name__)


class AuthTokens(NamedTuple):
    access_token: str
    refresh_token: str


class UserService:
    def __init__(self, db: AsyncSession, authenticator: Optional[TokenAuthenticator] = None):
        self.db = db
        self.auth = authenticator or TokenAuthenticator()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by (normalized) email."""
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def create_user(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        role: str = UserRole.USER.value,
        is_active: bool = True,
        is_email_verified: bool = False,
    ) -> User:
        """Create a user and its usage row with default limits, then commit."""
        email = email.strip().lower()
        if await self.get_user_by_email(email):
            raise ConflictError("A user with this email already exists")

        user = User(
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=role,
            is_active=is_active,
            is_email_verified=is_email_verified,
        )

        try:
            self.db.add(user)
            await self.db.flush()
            self.db.add(
                UserUsage(
                    user_id=user.id,
                    used_storage_bytes=0,
                    max_storage_bytes=settings.default_max_storage_bytes,
                    item_count=0,
                    max_items=settings.default_max_items,
                    collection_count=0,
                    max_collections=settings.default_max_collections,
                )
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("A user with this email already exists") from e
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        return user

    async def register(self, data: RegisterRequest) -> tuple[User, AuthTokens]:
        """Create a user with default quotas and sign it in.

        Emails listed in ``ADMIN_EMAILS`` register with the ADMIN role.
        """
        role = UserRole.USER.value
        if data.email.strip().lower() in settings.admin_emails_list:
            role = UserRole.ADMIN.value

        user = await self.create_user(data.email, data.password, name=data.name, role=role)
        logger.info("User registered: %s", user.id)
        return user, await self.issue_tokens(user)

    async def login(self, data: LoginRequest) -> tuple[User, AuthTokens]:
        """Check credentials and return the user with a fresh token pair."""
        user = await self.get_user_by_email(data.email)

        # Same message for every failure so callers cannot tell which accounts exist
        if not user or not verify_password(data.password, user.password_hash):
            raise UnauthorizedError("Invalid email or password")
        if not user.is_active:
            raise UnauthorizedError("User account is inactive")

        logger.info("User logged in: %s", user.id)
        return user, await self.issue_tokens(user)

    async def issue_tokens(self, user: User) -> AuthTokens:
        """Create an access/refresh pair; only the new refresh token stays valid."""
        tokens = AuthTokens(
            access_token=self.auth.create_access_token(str(user.id)),
            refresh_token=self.auth.create_refresh_token(str(user.id)),
        )
        user.refresh_token_hash = hash_token(tokens.refresh_token)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to issue tokens") from e
        return tokens

    async def refresh(self, refresh_token: str) -> tuple[User, AuthTokens]:
        """Exchange a refresh token for a new pair, rotating the refresh token."""
        payload = self.auth.verify_token(refresh_token, token_type=REFRESH_TOKEN)
        try:
            user_id = UUID(str(payload.get("sub")))
        except ValueError as e:
            raise UnauthorizedError("Invalid refresh token") from e

        user = await self.get_user_by_id(user_id)
        if not user or user.refresh_token_hash != hash_token(refresh_token):
            raise UnauthorizedError("Invalid refresh token")
        if not user.is_active:
            raise UnauthorizedError("User account is inactive")

        logger.info("Tokens refreshed: %s", user.id)
        return user, await self.issue_tokens(user)

    async def logout(self, user: User) -> None:
        """Revoke the user's refresh token."""
        user.refresh_token_hash = None
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to log out") from e
        logger.info("User logged out: %s", user.id)

    async def update_user(self, user: User, data: UserUpdateRequest) -> User:
        """Update the current user's name and/or password."""
        update_data = data.model_dump(exclude_unset=True)
        if "name" in update_data:
            user.name = update_data["name"]
        if update_data.get("password") is not None:
            user.password_hash = hash_password(update_data["password"])
            user.refresh_token_hash = None

        try:
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to update user") from e


class UsageService:
    """Reads and adjusts a user's quota counters.

    Adjustments are SQL-side increments and are left uncommitted so they
    land in the caller's transaction together with the rows they count.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_usage(self, user_id: UUID) -> UserUsage:
        """Return the usage row, creating it with default limits if missing."""
        result = await self.db.execute(
            select(UserUsage)
            .where(UserUsage.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        usage = result.scalar_one_or_none()
        if usage is None:
            usage = UserUsage(
                user_id=user_id,
                used_storage_bytes=0,
                max_storage_bytes=settings.default_max_storage_bytes,
                item_count=0,
                max_items=settings.default_max_items,
                collection_count=0,
                max_collections=settings.default_max_collections,
            )
            self.db.add(usage)
            await self.db.flush()
        return usage

    async def ensure_can_create_item(self, user_id: UUID) -> None:
        usage = await self.get_usage(user_id)
        if usage.item_count >= usage.max_items:
            raise ItemQuotaExceededError()

    async def ensure_storage_available(self, user_id: UUID, additional_bytes: int) -> None:
        usage = await self.get_usage(user_id)
        if usage.used_storage_bytes + additional_bytes > usage.max_storage_bytes:
            raise StorageQuotaExceededError()

    async def ensure_can_create_collection(self, user_id: UUID) -> None:
        usage = await self.get_usage(user_id)
        if usage.collection_count >= usage.max_collections:
            raise CollectionQuotaExceededError()

    async def adjust(
        self,
        user_id: UUID,
        items: int = 0,
        storage_bytes: int = 0,
        collections: int = 0,
    ) -> None:
        """Apply deltas to the counters; never lets a counter go below zero."""
        if not (items or storage_bytes or collections):
            return
        # Make sure the row exists before the UPDATE
        await self.get_usage(user_id)

        values = {}
        if items:
            values["item_count"] = _clamped(UserUsage.item_count, items)
        if storage_bytes:
            values["used_storage_bytes"] = _clamped(UserUsage.used_storage_bytes, storage_bytes)
        if collections:
            values["collection_count"] = _clamped(UserUsage.collection_count, collections)

        await self.db.execute(
            update(UserUsage)
            .where(UserUsage.user_id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )


def _clamped(column, delta: int):
    new_value = column + delta
    return case((new_value < 0, 0), else_=new_value)
