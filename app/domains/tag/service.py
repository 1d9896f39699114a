"""Tag service layer with business logic."""

import logging
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import ensure_found_and_owned
from app.exceptions.base import ConflictError, NotFoundError, ValidationError
from app.schemas.item import NewTagInput
from app.schemas.tag import TagCreate, TagUpdate
from models import DEFAULT_TAG_COLOR, Item, ItemTag, Tag

logger = logging.getLogger(__name__)


class TagService:
    """Service class for tag business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_tag(self, tag_data: TagCreate, user_id: UUID) -> Tag:
        """Create a tag. Names are unique per user, compared literally."""

        if await self._get_tag_by_name_and_user(tag_data.name, user_id):
            raise ConflictError(f"Tag '{tag_data.name}' already exists")

        tag = Tag(user_id=user_id, name=tag_data.name, color=tag_data.color or DEFAULT_TAG_COLOR)

        try:
            self.db.add(tag)
            await self.db.commit()
            await self.db.refresh(tag)
            return tag
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(f"Tag '{tag_data.name}' already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to create tag") from e

    async def get_tag(self, tag_id: UUID, user_id: UUID) -> Tag:
        """Get a tag, checking ownership."""
        result = await self.db.execute(
            select(Tag).where(Tag.id == tag_id).execution_options(populate_existing=True)
        )
        tag = result.scalar_one_or_none()
        return ensure_found_and_owned(
            tag, user_id, NotFoundError("Tag not found"), "You do not have permission to access this tag"
        )

    async def get_tags_list(self, user_id: UUID, search: Optional[str] = None) -> List[Tuple[Tag, int]]:
        """List the user's tags alphabetically with the number of items carrying each."""

        item_count = func.count(ItemTag.id).label("item_count")
        stmt = (
            select(Tag, item_count)
            .outerjoin(ItemTag, ItemTag.tag_id == Tag.id)
            .where(Tag.user_id == user_id)
            .group_by(Tag.id)
            .order_by(Tag.name.asc())
        )
        if search:
            stmt = stmt.where(Tag.name.ilike(f"%{search}%"))

        result = await self.db.execute(stmt)
        return [(tag, count) for tag, count in result.all()]

    async def count_items(self, tag_id: UUID) -> int:
        result = await self.db.execute(select(func.count(ItemTag.id)).where(ItemTag.tag_id == tag_id))
        return result.scalar() or 0

    async def update_tag(self, tag_id: UUID, tag_data: TagUpdate, user_id: UUID) -> Tag:
        """Rename or recolor a tag."""

        tag = await self.get_tag(tag_id, user_id)

        renamed = tag_data.name is not None and tag_data.name != tag.name
        if renamed and await self._get_tag_by_name_and_user(tag_data.name, user_id):
            raise ConflictError(f"Tag '{tag_data.name}' already exists")

        if tag_data.name is not None:
            tag.name = tag_data.name
        if tag_data.color is not None:
            tag.color = tag_data.color

        try:
            await self.db.flush()
            if renamed:
                await self.refresh_tags_text(await self._item_ids_for_tag(tag.id))
            await self.db.commit()
            await self.db.refresh(tag)
            return tag
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(f"Tag '{tag_data.name}' already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to update tag") from e

    async def delete_tag(self, tag_id: UUID, user_id: UUID) -> None:
        """Delete a tag. Items keep existing and just lose the tag."""

        tag = await self.get_tag(tag_id, user_id)

        try:
            item_ids = await self._item_ids_for_tag(tag.id)
            await self.db.execute(delete(ItemTag).where(ItemTag.tag_id == tag.id))
            await self.db.execute(delete(Tag).where(Tag.id == tag.id))
            await self.refresh_tags_text(item_ids)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to delete tag") from e

        logger.info("Tag deleted: %s (%d items untagged)", tag_id, len(item_ids))

    # Helpers used while saving items; they never commit

    async def resolve_tags(
        self,
        user_id: UUID,
        tag_ids: Iterable[UUID],
        new_tags: Iterable[NewTagInput],
    ) -> List[Tag]:
        """
        Return the tags to attach to an item.

        ``tag_ids`` must all belong to ``user_id``. Each entry of ``new_tags``
        reuses an existing tag whose name matches case-insensitively, otherwise
        a new tag is created. The result contains no duplicates.
        """
        tags: Dict[UUID, Tag] = {}

        tag_ids = list(dict.fromkeys(tag_ids))
        if tag_ids:
            result = await self.db.execute(
                select(Tag).where(and_(Tag.id.in_(tag_ids), Tag.user_id == user_id))
            )
            found = {tag.id: tag for tag in result.scalars().all()}
            missing = [str(tag_id) for tag_id in tag_ids if tag_id not in found]
            if missing:
                raise ValidationError("Unknown tag ids", details={"tagIds": missing})
            for tag_id in tag_ids:
                tags[tag_id] = found[tag_id]

        new_tags = list(new_tags)
        if new_tags:
            # Fold names in Python; SQLite's lower() only handles ASCII
            by_name: Dict[str, Tag] = {}
            result = await self.db.execute(
                select(Tag)
                .where(Tag.user_id == user_id)
                .order_by(Tag.created_at.asc(), Tag.id.asc())
            )
            for existing in result.scalars().all():
                by_name.setdefault(existing.name.casefold(), existing)

            for new_tag in new_tags:
                key = new_tag.name.casefold()
                tag = by_name.get(key)
                if tag is None:
                    tag = Tag(
                        user_id=user_id, name=new_tag.name, color=new_tag.color or DEFAULT_TAG_COLOR
                    )
                    self.db.add(tag)
                    await self.db.flush()
                    by_name[key] = tag
                tags.setdefault(tag.id, tag)

        return list(tags.values())

    async def refresh_tags_text(self, item_ids: Iterable[UUID]) -> None:
        """Recompute the denormalized ``tags_text`` of each item."""
        for item_id in set(item_ids):
            result = await self.db.execute(
                select(Tag.name)
                .join(ItemTag, ItemTag.tag_id == Tag.id)
                .where(ItemTag.item_id == item_id)
                .order_by(Tag.name.asc())
            )
            names = list(result.scalars().all())
            await self.db.execute(
                update(Item)
                .where(Item.id == item_id)
                .values(tags_text=", ".join(names) if names else None)
                .execution_options(synchronize_session=False)
            )

    # Private helper methods
    async def _get_tag_by_name_and_user(self, name: str, user_id: UUID) -> Optional[Tag]:
        stmt = select(Tag).where(and_(Tag.name == name, Tag.user_id == user_id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _item_ids_for_tag(self, tag_id: UUID) -> List[UUID]:
        result = await self.db.execute(select(ItemTag.item_id).where(ItemTag.tag_id == tag_id))
        return list(result.scalars().all())
