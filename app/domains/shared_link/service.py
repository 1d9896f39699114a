"""Shared link service: creation, owner management and public access.

A link moves only forward, from active to revoked or to deleted. Public
callers get the same "unavailable" error for revoked and expired links;
owners see the difference through ``status`` in their listing.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import asc, delete, desc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.authorization import ensure_found_and_owned
from app.core.config import settings
from app.core.security import hash_password, verify_password
from app.exceptions.base import ValidationError
from app.exceptions.item import ItemNotFoundError
from app.exceptions.shared_link import (
    SharedLinkNotFoundError,
    SharedLinkPasswordError,
    SharedLinkRevokedError,
    SharedLinkUnavailableError,
)
from app.schemas.item import item_to_public_view
from app.schemas.shared_link import (
    PublicLinkInfo,
    PublicSharedLinkView,
    SharedLinkCreate,
    SharedLinkUpdate,
)
from app.services.storage_service import StorageBackend
from app.shared.pagination import PaginationParams, paginate
from models import Item, ItemFile, ItemTag, SharedLink, utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def share_url(token: str) -> str:
    """Frontend URL at which a token is opened."""
    return f"{settings.app_url}/s/{token}"


def link_status(link: SharedLink) -> str:
    """Owner-facing state of a link."""
    if link.revoked:
        return "REVOKED"
    if utcnow() > link.expires_at:
        return "EXPIRED"
    return "ACTIVE"


def _mask(token: str) -> str:
    return f"{token[:6]}..."


class SharedLinkService:
    """Service class for shared link business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_link(self, link_data: SharedLinkCreate, user_id: UUID) -> SharedLink:
        """Create a link to one of the user's items."""

        item = await self._load_item(link_data.item_id)
        ensure_found_and_owned(
            item, user_id, ItemNotFoundError(), "You do not have permission to share this item"
        )

        link = SharedLink(
            user_id=user_id,
            item_id=item.id,
            token=await self._generate_unique_token(),
            password_hash=hash_password(link_data.password) if link_data.password else None,
            expires_at=utcnow() + timedelta(hours=link_data.expires_in),
            revoked=False,
            access_count=0,
        )

        try:
            self.db.add(link)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to create share link") from e

        logger.info("Share link created: %s for item %s", link.id, item.id)
        return await self._load_link(link.id)

    async def get_link(self, link_id: UUID, user_id: UUID) -> SharedLink:
        link = await self._load_link(link_id)
        return ensure_found_and_owned(
            link, user_id, SharedLinkNotFoundError(), "You do not have permission to manage this link"
        )

    async def get_links_list(
        self,
        user_id: UUID,
        item_id: Optional[UUID] = None,
        revoked: Optional[bool] = None,
        pagination: Optional[PaginationParams] = None,
    ) -> Dict[str, Any]:
        """The owner's links, newest first."""
        stmt = select(SharedLink).where(SharedLink.user_id == user_id)
        if item_id is not None:
            stmt = stmt.where(SharedLink.item_id == item_id)
        if revoked is not None:
            stmt = stmt.where(SharedLink.revoked.is_(revoked))
        stmt = stmt.order_by(desc(SharedLink.created_at), asc(SharedLink.id)).execution_options(
            populate_existing=True
        )
        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def update_link(self, link_id: UUID, link_data: SharedLinkUpdate, user_id: UUID) -> SharedLink:
        """
        Extend the expiry and/or change the password of an active link.

        ``password: null`` removes the password. Revoked links cannot be
        updated and are never reactivated.
        """
        link = await self.get_link(link_id, user_id)
        if link.revoked:
            raise SharedLinkRevokedError()

        fields_set = link_data.model_fields_set
        if "expires_in" in fields_set and link_data.expires_in is not None:
            link.expires_at = utcnow() + timedelta(hours=link_data.expires_in)
        if "password" in fields_set:
            link.password_hash = hash_password(link_data.password) if link_data.password else None

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to update share link") from e

        logger.info("Share link updated: %s", link.id)
        return await self._load_link(link.id)

    async def revoke_link(self, link_id: UUID, user_id: UUID) -> SharedLink:
        """Revoke a link. Revoking twice is a no-op."""
        link = await self.get_link(link_id, user_id)
        if not link.revoked:
            link.revoked = True
            try:
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                raise ValidationError("Failed to revoke share link") from e
            logger.info("Share link revoked: %s", link.id)
        return link

    async def permanently_delete_link(self, link_id: UUID, user_id: UUID) -> None:
        link = await self.get_link(link_id, user_id)
        try:
            await self.db.execute(delete(SharedLink).where(SharedLink.id == link.id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to delete share link") from e
        logger.info("Share link permanently deleted: %s", link_id)

    async def access_link(
        self, token: str, password: Optional[str], storage: StorageBackend
    ) -> PublicSharedLinkView:
        """
        Resolve a token for an anonymous visitor.

        Order of checks: unknown token (404), revoked or expired (410, one
        message for both), wrong or missing password (401, count unchanged).
        Only a successful access increments ``access_count``.
        """
        result = await self.db.execute(
            select(SharedLink)
            .where(SharedLink.token == token)
            .execution_options(populate_existing=True)
        )
        link = result.scalar_one_or_none()
        if link is None:
            raise SharedLinkNotFoundError()

        if link.revoked or utcnow() > link.expires_at:
            raise SharedLinkUnavailableError()

        item = await self._load_item(link.item_id)
        if item is None or item.is_trashed:
            raise SharedLinkUnavailableError()

        if link.password_hash:
            if not password or not verify_password(password, link.password_hash):
                logger.info("Share link %s: rejected password", _mask(token))
                raise SharedLinkPasswordError()

        try:
            await self.db.execute(
                update(SharedLink)
                .where(SharedLink.id == link.id)
                .values(access_count=SharedLink.access_count + 1)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to record access") from e

        result = await self.db.execute(
            select(SharedLink.access_count).where(SharedLink.id == link.id)
        )
        access_count = result.scalar_one()
        logger.info("Share link %s accessed (count: %d)", _mask(token), access_count)

        return PublicSharedLinkView(
            item=item_to_public_view(item, storage.public_url),
            link=PublicLinkInfo(expires_at=link.expires_at, access_count=access_count),
        )

    # Private helper methods
    async def _load_link(self, link_id: UUID) -> Optional[SharedLink]:
        result = await self.db.execute(
            select(SharedLink)
            .where(SharedLink.id == link_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _load_item(self, item_id: UUID) -> Optional[Item]:
        result = await self.db.execute(
            select(Item)
            .options(
                selectinload(Item.files).selectinload(ItemFile.file),
                selectinload(Item.item_tags).selectinload(ItemTag.tag),
            )
            .where(Item.id == item_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _generate_unique_token(self) -> str:
        while True:
            token = secrets.token_hex(TOKEN_BYTES)
            result = await self.db.execute(select(SharedLink.id).where(SharedLink.token == token))
            if result.scalar_one_or_none() is None:
                return token
