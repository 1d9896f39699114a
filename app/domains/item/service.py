"""Item service layer with business logic."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import and_, asc, case, delete, desc, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.authorization import ensure_found_and_owned
from app.core.config import settings
from app.domains.tag.service import TagService
from app.domains.user.service import UsageService
from app.exceptions.base import BaseAppException, ValidationError
from app.exceptions.item import (
    InvalidItemPayloadError,
    ItemFileNotFoundError,
    ItemNotFoundError,
)
from app.schemas.item import (
    FileItemCreate,
    ItemFilter,
    ItemUpdate,
    LinkItemCreate,
    NoteItemCreate,
    extract_domain,
)
from app.services.storage_service import (
    StorageBackend,
    StoredObject,
    delete_objects_quietly,
)
from app.shared.pagination import PaginationParams, paginate
from models import (
    IMPORTANCE_RANK,
    CollectionItem,
    File,
    Item,
    ItemFile,
    ItemTag,
    ItemType,
    SharedLink,
    utcnow,
)

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": Item.created_at,
    "updatedAt": Item.updated_at,
    "title": Item.title,
}


@dataclass
class IncomingFile:
    """An uploaded file, fully read into memory."""

    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def check_upload_limits(files: Sequence[Any]) -> None:
    """Reject a request carrying too many or too large files.

    Accepts anything with ``filename`` and ``size``, so uploads can be checked
    before their bodies are read. An unknown size (``None``) is skipped.
    """
    if len(files) > settings.max_files_per_item:
        raise ValidationError(
            f"Too many files: at most {settings.max_files_per_item} files per request"
        )
    for incoming in files:
        if incoming.size is not None and incoming.size > settings.max_file_size:
            raise ValidationError(
                f"File '{incoming.filename or 'file'}' exceeds the maximum size of {settings.max_file_size} bytes"
            )


class ItemService:
    """Service class for item business logic."""

    def __init__(self, db: AsyncSession, storage: StorageBackend):
        self.db = db
        self.storage = storage
        self.tags = TagService(db)
        self.usage = UsageService(db)

    # Create

    async def create_item(
        self,
        item_data: FileItemCreate | LinkItemCreate | NoteItemCreate,
        user_id: UUID,
        files: Sequence[IncomingFile] = (),
    ) -> Item:
        """
        Create an item with its files and tags in one transaction.

        Uploaded blobs are stored first; if the database work fails they are
        deleted again.
        """
        files = list(files)
        self._validate_create_payload(item_data, files)
        check_upload_limits(files)

        total_bytes = sum(f.size for f in files)
        await self.usage.ensure_can_create_item(user_id)
        if total_bytes:
            await self.usage.ensure_storage_available(user_id, total_bytes)

        stored = await self._store_files(files)

        try:
            item = Item(
                user_id=user_id,
                type=item_data.type,
                title=item_data.title,
                description=item_data.description,
                category=item_data.category,
                project=item_data.project,
                importance=item_data.importance.value,
                is_pinned=item_data.is_pinned,
            )
            if isinstance(item_data, LinkItemCreate):
                item.url = item_data.url
                item.domain = extract_domain(item_data.url)
            elif isinstance(item_data, NoteItemCreate):
                item.content = item_data.content

            self.db.add(item)
            await self.db.flush()

            primary_index = 0
            if isinstance(item_data, FileItemCreate) and item_data.primary_file_index is not None:
                primary_index = item_data.primary_file_index
            await self._attach_files(item.id, user_id, files, stored, start=0, primary_index=primary_index)

            tags = await self.tags.resolve_tags(user_id, item_data.tag_ids, item_data.new_tags)
            for tag in tags:
                self.db.add(ItemTag(item_id=item.id, tag_id=tag.id))
            await self.db.flush()
            await self.tags.refresh_tags_text([item.id])

            await self.usage.adjust(user_id, items=1, storage_bytes=total_bytes)
            await self.db.commit()
        except BaseAppException:
            await self._abort(stored)
            raise
        except SQLAlchemyError as e:
            await self._abort(stored)
            raise ValidationError("Failed to create item") from e

        logger.info("Item created: %s (%s) by user %s", item.id, item.type, user_id)
        return await self._load_item(item.id)

    # Read

    async def get_item(self, item_id: UUID, user_id: UUID) -> Item:
        """Get an item with ordered files and tags, checking ownership."""
        item = await self._load_item(item_id)
        return ensure_found_and_owned(
            item, user_id, ItemNotFoundError(), "You do not have permission to access this item"
        )

    async def get_items_list(
        self,
        user_id: UUID,
        filters: Optional[ItemFilter] = None,
        pagination: Optional[PaginationParams] = None,
    ) -> Dict[str, Any]:
        """Get a page of the user's non-trashed items."""

        filters = filters or ItemFilter()
        pagination = pagination or PaginationParams()

        stmt = select(Item).where(and_(Item.user_id == user_id, Item.is_trashed.is_(False)))

        if filters.type:
            stmt = stmt.where(Item.type == filters.type.value)
        if filters.category:
            stmt = stmt.where(Item.category == filters.category)
        if filters.project:
            stmt = stmt.where(Item.project == filters.project)
        if filters.domain:
            stmt = stmt.where(Item.domain == filters.domain.lower())
        if filters.importance:
            stmt = stmt.where(Item.importance == filters.importance.value)
        if filters.is_pinned is not None:
            stmt = stmt.where(Item.is_pinned.is_(filters.is_pinned))

        # AND semantics: the item must carry every listed tag
        for tag_id in dict.fromkeys(filters.tag_ids):
            stmt = stmt.where(
                Item.id.in_(select(ItemTag.item_id).where(ItemTag.tag_id == tag_id))
            )

        if filters.search and filters.search.strip():
            search_term = f"%{filters.search.strip()}%"
            stmt = stmt.where(
                or_(
                    Item.title.ilike(search_term),
                    Item.description.ilike(search_term),
                    Item.tags_text.ilike(search_term),
                )
            )

        stmt = stmt.order_by(*self._ordering(filters.sort_by, filters.sort_order))
        stmt = stmt.execution_options(populate_existing=True)

        return await paginate(self.db, stmt, pagination)

    # Update

    async def update_item(
        self,
        item_id: UUID,
        item_data: ItemUpdate,
        user_id: UUID,
        files: Sequence[IncomingFile] = (),
    ) -> Item:
        """
        Apply a partial update.

        Supports field changes, removing attachments by file id, appending new
        files and replacing the tag set. Positions stay contiguous and a FILE
        item always keeps a primary file.
        """
        item = await self.get_item(item_id, user_id)
        files = list(files)
        fields_set = item_data.model_fields_set

        self._validate_update_payload(item, item_data, files)
        check_upload_limits(files)

        current = sorted(item.files, key=lambda f: f.position)
        attached_ids = {f.file_id for f in current}
        remove_ids = set(item_data.remove_file_ids)
        unknown = [str(fid) for fid in item_data.remove_file_ids if fid not in attached_ids]
        if unknown:
            raise ValidationError("Files are not attached to this item", details={"fileIds": unknown})

        remaining = [f for f in current if f.file_id not in remove_ids]
        if item.type == ItemType.FILE.value and not remaining and not files:
            raise InvalidItemPayloadError("A FILE item must keep at least one file")

        new_bytes = sum(f.size for f in files)
        if new_bytes:
            await self.usage.ensure_storage_available(user_id, new_bytes)

        stored = await self._store_files(files)
        orphan_keys: List[str] = []

        try:
            for field in ("title", "description", "category", "project"):
                if field in fields_set:
                    setattr(item, field, getattr(item_data, field))
            if "importance" in fields_set and item_data.importance is not None:
                item.importance = item_data.importance.value
            if "is_pinned" in fields_set and item_data.is_pinned is not None:
                item.is_pinned = item_data.is_pinned
            if "url" in fields_set:
                item.url = item_data.url
                item.domain = extract_domain(item_data.url)
            if "content" in fields_set:
                item.content = item_data.content

            freed_bytes = 0
            if remove_ids:
                await self.db.execute(
                    delete(ItemFile).where(
                        and_(ItemFile.item_id == item.id, ItemFile.file_id.in_(list(remove_ids)))
                    )
                )
                orphan_keys, freed_bytes = await self._delete_orphan_files(remove_ids)

            if remove_ids or files:
                await self._renumber(remaining)
                await self._attach_files(
                    item.id,
                    user_id,
                    files,
                    stored,
                    start=len(remaining),
                    primary_index=None if remaining else 0,
                )

            if item_data.tag_ids is not None or item_data.new_tags:
                await self._replace_tags(item, item_data.tag_ids, item_data.new_tags, user_id)

            item.updated_at = utcnow()
            await self.usage.adjust(user_id, storage_bytes=new_bytes - freed_bytes)
            await self.db.commit()
        except BaseAppException:
            await self._abort(stored)
            raise
        except SQLAlchemyError as e:
            await self._abort(stored)
            raise ValidationError("Failed to update item") from e

        await delete_objects_quietly(self.storage, orphan_keys)
        logger.info("Item updated: %s by user %s", item.id, user_id)
        return await self._load_item(item.id)

    async def toggle_pin(self, item_id: UUID, user_id: UUID) -> Item:
        """Flip ``is_pinned``."""
        item = await self.get_item(item_id, user_id)
        item.is_pinned = not item.is_pinned
        await self._commit("Failed to update item")
        return await self._load_item(item.id)

    async def set_primary_file(self, item_id: UUID, file_id: UUID, user_id: UUID) -> Item:
        """Make ``file_id`` the item's only primary file."""
        item = await self.get_item(item_id, user_id)
        if not any(f.file_id == file_id for f in item.files):
            raise ItemFileNotFoundError()

        for item_file in item.files:
            item_file.is_primary = item_file.file_id == file_id
        item.updated_at = utcnow()
        await self._commit("Failed to set primary file")
        return await self._load_item(item.id)

    async def reorder_files(self, item_id: UUID, file_ids: List[UUID], user_id: UUID) -> Item:
        """
        Reorder an item's files.

        ``file_ids`` must be exactly the set of the item's file ids, each once;
        partial reorders are rejected.
        """
        item = await self.get_item(item_id, user_id)
        by_file_id = {f.file_id: f for f in item.files}

        if len(file_ids) != len(set(file_ids)) or set(file_ids) != set(by_file_id):
            raise ValidationError(
                "Reorder must list every file of the item exactly once",
                details={"expected": len(by_file_id), "received": len(file_ids)},
            )

        try:
            await self._renumber([by_file_id[fid] for fid in file_ids])
            item.updated_at = utcnow()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to reorder files") from e

        return await self._load_item(item.id)

    # Delete and trash

    async def delete_item(self, item_id: UUID, user_id: UUID) -> None:
        """Delete an item, its join rows and any file no other item references."""
        item = await self.get_item(item_id, user_id)
        await self._purge([item])

    async def move_to_trash(self, item_id: UUID, user_id: UUID) -> Item:
        item = await self.get_item(item_id, user_id)
        if not item.is_trashed:
            item.is_trashed = True
            item.trashed_at = utcnow()
            await self._commit("Failed to move item to trash")
            logger.info("Item moved to trash: %s", item.id)
        return await self._load_item(item.id)

    async def restore_from_trash(self, item_id: UUID, user_id: UUID) -> Item:
        item = await self.get_item(item_id, user_id)
        if not item.is_trashed:
            raise ValidationError("Item is not in trash")
        item.is_trashed = False
        item.trashed_at = None
        await self._commit("Failed to restore item")
        logger.info("Item restored from trash: %s", item.id)
        return await self._load_item(item.id)

    async def get_trashed_items(
        self, user_id: UUID, pagination: Optional[PaginationParams] = None
    ) -> Dict[str, Any]:
        """Page through the user's trash, most recently trashed first."""
        stmt = (
            select(Item)
            .where(and_(Item.user_id == user_id, Item.is_trashed.is_(True)))
            .order_by(desc(Item.trashed_at), asc(Item.id))
            .execution_options(populate_existing=True)
        )
        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def permanently_delete(self, item_id: UUID, user_id: UUID) -> None:
        """Delete an item that is already in the trash."""
        item = await self.get_item(item_id, user_id)
        if not item.is_trashed:
            raise ValidationError("Only items in trash can be permanently deleted")
        await self._purge([item])

    async def empty_trash(self, user_id: UUID) -> int:
        """Permanently delete every trashed item of the user."""
        result = await self.db.execute(
            select(Item).where(and_(Item.user_id == user_id, Item.is_trashed.is_(True)))
        )
        items = list(result.scalars().all())
        if items:
            await self._purge(items)
        return len(items)

    async def cleanup_expired_trash(self, retention_days: Optional[int] = None) -> int:
        """Permanently delete items trashed more than ``retention_days`` ago, for all users."""
        if retention_days is None:
            retention_days = settings.trash_retention_days
        cutoff = utcnow() - timedelta(days=retention_days)
        result = await self.db.execute(
            select(Item).where(and_(Item.is_trashed.is_(True), Item.trashed_at < cutoff))
        )
        items = list(result.scalars().all())
        if items:
            await self._purge(items)
        logger.info("Purged %d expired trash items (retention %d days)", len(items), retention_days)
        return len(items)

    async def delete_all_for_user(self, user_id: UUID) -> int:
        """Permanently delete every item of the user, trashed or not."""
        result = await self.db.execute(select(Item).where(Item.user_id == user_id))
        items = list(result.scalars().all())
        if items:
            await self._purge(items)
        return len(items)

    # Private helper methods

    @staticmethod
    def _ordering(sort_by: str, sort_order: str) -> list:
        if sort_by == "importance":
            column = case(IMPORTANCE_RANK, value=Item.importance, else_=1)
        else:
            column = SORT_COLUMNS.get(sort_by, Item.created_at)
        direction = asc if sort_order == "asc" else desc
        return [desc(Item.is_pinned), direction(column), asc(Item.id)]

    @staticmethod
    def _validate_create_payload(item_data, files: List[IncomingFile]) -> None:
        if item_data.type == ItemType.FILE.value:
            if not files:
                raise InvalidItemPayloadError("A FILE item requires at least one file")
            index = item_data.primary_file_index
            if index is not None and index >= len(files):
                raise InvalidItemPayloadError("primaryFileIndex is out of range")
        elif files:
            raise InvalidItemPayloadError(f"A {item_data.type} item cannot carry files")

    @staticmethod
    def _validate_update_payload(item: Item, item_data: ItemUpdate, files: List[IncomingFile]) -> None:
        fields_set = item_data.model_fields_set
        if "url" in fields_set:
            if item.type != ItemType.LINK.value:
                raise InvalidItemPayloadError("url is only allowed on LINK items")
            if not item_data.url:
                raise InvalidItemPayloadError("A LINK item requires a url")
        if "content" in fields_set:
            if item.type != ItemType.NOTE.value:
                raise InvalidItemPayloadError("content is only allowed on NOTE items")
            if not item_data.content:
                raise InvalidItemPayloadError("A NOTE item requires content")
        if (files or item_data.remove_file_ids) and item.type != ItemType.FILE.value:
            raise InvalidItemPayloadError("Only FILE items have files")
        if "title" in fields_set and not item_data.title:
            raise InvalidItemPayloadError("Title cannot be empty")

    async def _load_item(self, item_id: UUID) -> Optional[Item]:
        stmt = (
            select(Item)
            .options(
                selectinload(Item.files).selectinload(ItemFile.file),
                selectinload(Item.item_tags).selectinload(ItemTag.tag),
            )
            .where(Item.id == item_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _store_files(self, files: Iterable[IncomingFile]) -> List[StoredObject]:
        stored: List[StoredObject] = []
        try:
            for incoming in files:
                stored.append(await self.storage.save(incoming.data, incoming.filename))
        except Exception:
            await delete_objects_quietly(self.storage, [obj.key for obj in stored])
            raise
        return stored

    async def _attach_files(
        self,
        item_id: UUID,
        user_id: UUID,
        files: List[IncomingFile],
        stored: List[StoredObject],
        start: int,
        primary_index: Optional[int],
    ) -> None:
        for offset, (incoming, obj) in enumerate(zip(files, stored)):
            file_row = File(
                user_id=user_id,
                storage_key=obj.key,
                original_name=incoming.filename or "file",
                mime_type=incoming.content_type or "application/octet-stream",
                size=obj.size,
                checksum=obj.checksum,
            )
            self.db.add(file_row)
            await self.db.flush()
            self.db.add(
                ItemFile(
                    item_id=item_id,
                    file_id=file_row.id,
                    position=start + offset,
                    is_primary=offset == primary_index,
                )
            )
        await self.db.flush()

    async def _renumber(self, ordered: List[ItemFile]) -> None:
        """Give ``ordered`` positions 0..n-1 and make sure one of them is primary.

        Positions go through negative values first so the per-item unique
        constraint holds after every flush.
        """
        for index, item_file in enumerate(ordered):
            item_file.position = -(index + 1)
        await self.db.flush()

        for index, item_file in enumerate(ordered):
            item_file.position = index
        if ordered and not any(f.is_primary for f in ordered):
            ordered[0].is_primary = True
        await self.db.flush()

    async def _replace_tags(
        self, item: Item, tag_ids: Optional[List[UUID]], new_tags, user_id: UUID
    ) -> None:
        current_ids = [it.tag_id for it in item.item_tags]
        base_ids = tag_ids if tag_ids is not None else current_ids
        tags = await self.tags.resolve_tags(user_id, base_ids, new_tags)
        wanted = {tag.id for tag in tags}

        stale = set(current_ids) - wanted
        if stale:
            await self.db.execute(
                delete(ItemTag).where(and_(ItemTag.item_id == item.id, ItemTag.tag_id.in_(list(stale))))
            )
        for tag_id in wanted - set(current_ids):
            self.db.add(ItemTag(item_id=item.id, tag_id=tag_id))
        await self.db.flush()
        await self.tags.refresh_tags_text([item.id])

    async def _delete_orphan_files(self, file_ids: Iterable[UUID]) -> Tuple[List[str], int]:
        """Delete File rows no ItemFile references any more; return their keys and total size."""
        file_ids = list(file_ids)
        if not file_ids:
            return [], 0

        still_used = select(ItemFile.file_id).where(ItemFile.file_id.in_(list(file_ids)))
        result = await self.db.execute(
            select(File).where(and_(File.id.in_(list(file_ids)), File.id.not_in(still_used)))
        )
        orphans = list(result.scalars().all())
        if not orphans:
            return [], 0

        await self.db.execute(delete(File).where(File.id.in_([f.id for f in orphans])))
        return [f.storage_key for f in orphans], sum(f.size for f in orphans)

    async def _purge(self, items: List[Item]) -> None:
        """Delete ``items`` and everything hanging off them in one transaction.

        Storage objects are removed only after the commit, best effort.
        """
        item_ids = [item.id for item in items]
        file_ids = {f.file_id for item in items for f in item.files}
        owners: Dict[UUID, int] = {}
        for item in items:
            owners[item.user_id] = owners.get(item.user_id, 0) + 1

        try:
            await self.db.execute(delete(ItemTag).where(ItemTag.item_id.in_(item_ids)))
            await self.db.execute(delete(CollectionItem).where(CollectionItem.item_id.in_(item_ids)))
            await self.db.execute(delete(SharedLink).where(SharedLink.item_id.in_(item_ids)))
            await self.db.execute(delete(ItemFile).where(ItemFile.item_id.in_(item_ids)))

            freed: Dict[UUID, int] = {}
            orphan_keys: List[str] = []
            if file_ids:
                still_used = select(ItemFile.file_id).where(ItemFile.file_id.in_(list(file_ids)))
                result = await self.db.execute(
                    select(File).where(and_(File.id.in_(list(file_ids)), File.id.not_in(still_used)))
                )
                orphans = list(result.scalars().all())
                for file_row in orphans:
                    freed[file_row.user_id] = freed.get(file_row.user_id, 0) + file_row.size
                    orphan_keys.append(file_row.storage_key)
                if orphans:
                    await self.db.execute(delete(File).where(File.id.in_([f.id for f in orphans])))

            await self.db.execute(delete(Item).where(Item.id.in_(item_ids)))

            for owner_id in set(owners) | set(freed):
                await self.usage.adjust(
                    owner_id,
                    items=-owners.get(owner_id, 0),
                    storage_bytes=-freed.get(owner_id, 0),
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError("Failed to delete item") from e

        for item_id in item_ids:
            logger.info("Item deleted: %s", item_id)
        await delete_objects_quietly(self.storage, orphan_keys)

    async def _commit(self, failure_message: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(failure_message) from e

    async def _abort(self, stored: List[StoredObject]) -> None:
        """Roll back and remove blobs written for the failed transaction."""
        await self.db.rollback()
        if stored:
            logger.warning("Rolling back; deleting %d freshly stored objects", len(stored))
            await delete_objects_quietly(self.storage, [obj.key for obj in stored])
