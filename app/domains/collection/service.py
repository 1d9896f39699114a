"""Collection service layer with business logic."""

import logging
import re
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, asc, delete, desc, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import ensure_found_and_owned
from app.domains.user.service import UsageService
from app.exceptions.base import ValidationError
from app.exceptions.collection import (
    CollectionCycleError,
    CollectionNotFoundError,
    DuplicateSlugError,
)
from app.schemas.collection import (
    CollectionCreate,
    CollectionFilter,
    CollectionResponse,
    CollectionSummary,
    CollectionUpdate,
)
from app.shared.pagination import PaginationParams, paginate
from models import Collection, CollectionItem, Item

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "name": Collection.name,
    "createdAt": Collection.created_at,
    "updatedAt": Collection.updated_at,
}


def slugify(name: str) -> str:
    """Lower-case, hyphen-separated ASCII slug of ``name``."""
    slug = name.lower().strip()
    slug = re.sub(r"[^a-z0-9\s_-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")
    return slug or "collection"


class CollectionService:
    """Service class for collection business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.usage = UsageService(db)

    async def create_collection(self, collection_data: CollectionCreate, user_id: UUID) -> Collection:
        """Create a collection, optionally nested and optionally public."""

        await self.usage.ensure_can_create_collection(user_id)

        if collection_data.parent_id is not None:
            await self.get_collection(collection_data.parent_id, user_id)

        slug = collection_data.slug_public
        if slug:
            await self._ensure_slug_available(slug)
        elif collection_data.is_public:
            slug = await self._generate_unique_slug(collection_data.name)

        collection = Collection(
            user_id=user_id,
            name=collection_data.name,
            description=collection_data.description,
            cover_image=collection_data.cover_image,
            is_public=collection_data.is_public,
            slug_public=slug,
            parent_id=collection_data.parent_id,
        )

        try:
            self.db.add(collection)
            await self.db.flush()
            await self.usage.adjust(user_id, collections=1)
            await self.db.commit()
            await self.db.refresh(collection)
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateSlugError() from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to create collection") from e

        logger.info("Collection created: %s by user %s", collection.id, user_id)
        return collection

    async def get_collection(self, collection_id: UUID, user_id: UUID) -> Collection:
        """Get a collection by ID, checking ownership."""
        result = await self.db.execute(
            select(Collection)
            .where(Collection.id == collection_id)
            .execution_options(populate_existing=True)
        )
        return ensure_found_and_owned(
            result.scalar_one_or_none(),
            user_id,
            CollectionNotFoundError(),
            "You do not have permission to access this collection",
        )

    async def get_collections_list(
        self,
        user_id: UUID,
        filters: Optional[CollectionFilter] = None,
        pagination: Optional[PaginationParams] = None,
    ) -> Dict[str, Any]:
        """Get paginated list of collections with optional filters."""

        filters = filters or CollectionFilter()
        stmt = select(Collection).where(Collection.user_id == user_id)

        if filters.search:
            search_term = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    Collection.name.ilike(search_term),
                    Collection.description.ilike(search_term),
                )
            )
        if filters.is_public is not None:
            stmt = stmt.where(Collection.is_public.is_(filters.is_public))
        if filters.parent_id:
            if filters.parent_id == "root":
                stmt = stmt.where(Collection.parent_id.is_(None))
            else:
                try:
                    parent_id = UUID(filters.parent_id)
                except ValueError as e:
                    raise ValidationError("parentId must be a UUID or 'root'") from e
                stmt = stmt.where(Collection.parent_id == parent_id)

        direction = asc if filters.sort_order == "asc" else desc
        stmt = stmt.order_by(direction(SORT_COLUMNS[filters.sort_by]), asc(Collection.id))
        stmt = stmt.execution_options(populate_existing=True)

        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def update_collection(
        self, collection_id: UUID, collection_data: CollectionUpdate, user_id: UUID
    ) -> Collection:
        """Update name, description, cover image, visibility or slug."""

        collection = await self.get_collection(collection_id, user_id)
        update_data = collection_data.model_dump(exclude_unset=True)

        new_slug = update_data.get("slug_public")
        if new_slug and new_slug != collection.slug_public:
            await self._ensure_slug_available(new_slug, exclude_id=collection.id)

        for field in ("name", "description", "cover_image", "is_public", "slug_public"):
            if field in update_data:
                if field in ("name", "is_public") and update_data[field] is None:
                    continue
                setattr(collection, field, update_data[field])

        if collection.is_public and not collection.slug_public:
            collection.slug_public = await self._generate_unique_slug(
                collection.name, exclude_id=collection.id
            )

        try:
            await self.db.commit()
            await self.db.refresh(collection)
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateSlugError() from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to update collection") from e

        return collection

    async def delete_collection(self, collection_id: UUID, user_id: UUID) -> int:
        """Delete a collection with all its sub-collections. Items survive.

        Returns the number of collections deleted.
        """
        collection = await self.get_collection(collection_id, user_id)
        ids = [collection.id] + await self._descendant_ids(collection.id)

        try:
            await self.db.execute(delete(CollectionItem).where(CollectionItem.collection_id.in_(ids)))
            await self.db.execute(delete(Collection).where(Collection.id.in_(ids)))
            await self.usage.adjust(user_id, collections=-len(ids))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to delete collection") from e

        logger.info("Collection deleted: %s (%d collections removed)", collection_id, len(ids))
        return len(ids)

    async def move_collection(
        self, collection_id: UUID, new_parent_id: Optional[UUID], user_id: UUID
    ) -> Collection:
        """Move a collection under ``new_parent_id`` (``None`` = top level).

        Raises:
            CollectionCycleError: If the target is the collection itself or one of its descendants
        """
        collection = await self.get_collection(collection_id, user_id)

        if new_parent_id is not None:
            if new_parent_id == collection.id:
                raise CollectionCycleError()
            parent = await self.get_collection(new_parent_id, user_id)
            if await self._is_descendant(parent, collection.id):
                raise CollectionCycleError()

        old_parent_id = collection.parent_id
        collection.parent_id = new_parent_id

        try:
            await self.db.commit()
            await self.db.refresh(collection)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to move collection") from e

        logger.info(
            "Collection moved: %s from %s to %s", collection.id, old_parent_id, new_parent_id
        )
        return collection

    async def add_items(self, collection_id: UUID, item_ids: List[UUID], user_id: UUID) -> int:
        """Add items; ids already present are no-ops. Returns how many were added."""

        collection = await self.get_collection(collection_id, user_id)
        item_ids = list(dict.fromkeys(item_ids))

        result = await self.db.execute(
            select(Item.id).where(and_(Item.id.in_(item_ids), Item.user_id == user_id))
        )
        owned = set(result.scalars().all())
        missing = [str(item_id) for item_id in item_ids if item_id not in owned]
        if missing:
            raise ValidationError("Unknown item ids", details={"itemIds": missing})

        result = await self.db.execute(
            select(CollectionItem.item_id).where(
                and_(
                    CollectionItem.collection_id == collection.id,
                    CollectionItem.item_id.in_(item_ids),
                )
            )
        )
        present = set(result.scalars().all())
        to_add = [item_id for item_id in item_ids if item_id not in present]

        try:
            for item_id in to_add:
                self.db.add(
                    CollectionItem(user_id=user_id, collection_id=collection.id, item_id=item_id)
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to add items to collection") from e

        return len(to_add)

    async def remove_items(self, collection_id: UUID, item_ids: List[UUID], user_id: UUID) -> int:
        """Remove items; ids not present are no-ops. Returns how many were removed."""

        collection = await self.get_collection(collection_id, user_id)
        item_ids = list(dict.fromkeys(item_ids))
        condition = and_(
            CollectionItem.collection_id == collection.id,
            CollectionItem.item_id.in_(item_ids),
        )

        try:
            result = await self.db.execute(select(func.count(CollectionItem.id)).where(condition))
            removed = result.scalar() or 0
            if removed:
                await self.db.execute(delete(CollectionItem).where(condition))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to remove items from collection") from e

        return removed

    async def get_children(self, collection_id: UUID, user_id: UUID) -> List[Collection]:
        """Direct sub-collections, alphabetically."""
        collection = await self.get_collection(collection_id, user_id)
        result = await self.db.execute(
            select(Collection)
            .where(Collection.parent_id == collection.id)
            .order_by(asc(Collection.name), asc(Collection.id))
        )
        return list(result.scalars().all())

    async def get_breadcrumb(self, collection_id: UUID, user_id: UUID) -> List[Collection]:
        """Path from the top-level ancestor down to the collection itself."""
        collection = await self.get_collection(collection_id, user_id)
        path = [collection]
        seen = {collection.id}
        current = collection
        while current.parent_id is not None and current.parent_id not in seen:
            current = await self.db.get(Collection, current.parent_id)
            if current is None:
                break
            seen.add(current.id)
            path.append(current)
        path.reverse()
        return path

    async def get_collection_items(
        self, collection_id: UUID, user_id: UUID, pagination: Optional[PaginationParams] = None
    ) -> Dict[str, Any]:
        """Page through the non-trashed items of a collection, newest membership first."""
        collection = await self.get_collection(collection_id, user_id)
        stmt = (
            select(Item)
            .join(CollectionItem, CollectionItem.item_id == Item.id)
            .where(
                and_(
                    CollectionItem.collection_id == collection.id,
                    Item.is_trashed.is_(False),
                )
            )
            .order_by(desc(CollectionItem.created_at), asc(Item.id))
            .execution_options(populate_existing=True)
        )
        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def to_responses(self, collections: List[Collection]) -> List[CollectionResponse]:
        """Attach item/children counts and parent summaries to ``collections``."""
        if not collections:
            return []
        ids = [c.id for c in collections]

        result = await self.db.execute(
            select(CollectionItem.collection_id, func.count(CollectionItem.id))
            .join(Item, Item.id == CollectionItem.item_id)
            .where(and_(CollectionItem.collection_id.in_(ids), Item.is_trashed.is_(False)))
            .group_by(CollectionItem.collection_id)
        )
        item_counts = dict(result.all())

        result = await self.db.execute(
            select(Collection.parent_id, func.count(Collection.id))
            .where(Collection.parent_id.in_(ids))
            .group_by(Collection.parent_id)
        )
        children_counts = dict(result.all())

        parent_ids = {c.parent_id for c in collections if c.parent_id is not None}
        parents = {}
        if parent_ids:
            result = await self.db.execute(
                select(Collection.id, Collection.name).where(Collection.id.in_(list(parent_ids)))
            )
            parents = {pid: CollectionSummary(id=pid, name=name) for pid, name in result.all()}

        responses = []
        for collection in collections:
            response = CollectionResponse.model_validate(collection)
            response.item_count = item_counts.get(collection.id, 0)
            response.children_count = children_counts.get(collection.id, 0)
            response.parent = parents.get(collection.parent_id)
            responses.append(response)
        return responses

    async def to_response(self, collection: Collection) -> CollectionResponse:
        return (await self.to_responses([collection]))[0]

    # Private helper methods
    async def _ensure_slug_available(self, slug: str, exclude_id: Optional[UUID] = None) -> None:
        stmt = select(Collection.id).where(Collection.slug_public == slug)
        if exclude_id is not None:
            stmt = stmt.where(Collection.id != exclude_id)
        result = await self.db.execute(stmt.limit(1))
        if result.scalar_one_or_none() is not None:
            raise DuplicateSlugError(f"Public slug '{slug}' is already in use")

    async def _generate_unique_slug(self, name: str, exclude_id: Optional[UUID] = None) -> str:
        base = slugify(name)
        candidate = base
        counter = 1
        while True:
            stmt = select(Collection.id).where(Collection.slug_public == candidate)
            if exclude_id is not None:
                stmt = stmt.where(Collection.id != exclude_id)
            result = await self.db.execute(stmt.limit(1))
            if result.scalar_one_or_none() is None:
                return candidate
            candidate = f"{base}-{counter}"
            counter += 1

    async def _is_descendant(self, candidate: Collection, ancestor_id: UUID) -> bool:
        """Whether ``candidate`` sits somewhere below ``ancestor_id``."""
        seen = set()
        parent_id = candidate.parent_id
        while parent_id is not None and parent_id not in seen:
            if parent_id == ancestor_id:
                return True
            seen.add(parent_id)
            result = await self.db.execute(
                select(Collection.parent_id).where(Collection.id == parent_id)
            )
            parent_id = result.scalar_one_or_none()
        return False

    async def _descendant_ids(self, collection_id: UUID) -> List[UUID]:
        descendants: List[UUID] = []
        frontier = [collection_id]
        seen = {collection_id}
        while frontier:
            result = await self.db.execute(
                select(Collection.id).where(Collection.parent_id.in_(frontier))
            )
            children = [cid for cid in result.scalars().all() if cid not in seen]
            seen.update(children)
            descendants.extend(children)
            frontier = children
        return descendants
