"""Item API controller with FastAPI endpoints."""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from app.core.config import settings
from app.core.dependencies import get_current_user, get_db, validate_token
from app.domains.item.service import IncomingFile, ItemService, check_upload_limits
from app.exceptions.base import ValidationError, format_validation_errors
from app.schemas.base import ResponseSchema, dump
from app.schemas.item import (
    ItemFilter,
    ItemUpdate,
    ReorderFilesRequest,
    SortField,
    SortOrder,
    item_create_adapter,
    item_to_response,
)
from app.services.storage_service import StorageBackend, get_storage
from app.shared.pagination import PaginationParams
from models.item import Importance, ItemType
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/items",
    tags=["items"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)

# Form fields that carry lists, sent either repeated or as one JSON array
LIST_FIELDS = {"tagIds", "tag_ids", "removeFileIds", "remove_file_ids"}
JSON_FIELDS = {"newTags", "new_tags"}


async def read_item_payload(request: Request) -> Tuple[Dict[str, Any], List[IncomingFile]]:
    """Read an item body sent as JSON or as multipart form data.

    In multipart bodies every ``files`` part is an upload; list fields may be
    repeated or given as a JSON array string, and ``newTags`` is a JSON string.
    """
    content_type = request.headers.get("content-type", "")

    if not content_type.startswith("multipart/form-data"):
        try:
            data = await request.json()
        except ValueError as e:
            raise ValidationError("Request body must be valid JSON") from e
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data, []

    form = await request.form()
    data: Dict[str, Any] = {}
    uploads: List[UploadFile] = []

    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key != "files":
                raise ValidationError(f"Unexpected file field '{key}'")
            uploads.append(value)
            continue

        if key in LIST_FIELDS:
            values = data.setdefault(key, [])
            if value.strip().startswith("["):
                values.extend(_load_json(key, value))
            elif value.strip():
                values.extend(part.strip() for part in value.split(",") if part.strip())
        elif key in JSON_FIELDS:
            data[key] = _load_json(key, value) if value.strip() else []
        else:
            data[key] = value

    # Caps are checked before any upload body is read
    check_upload_limits(uploads)
    files = [await _read_upload(upload) for upload in uploads]
    return data, files


async def _read_upload(upload: UploadFile) -> IncomingFile:
    """Read one upload, never more than one byte past the size cap."""
    incoming = IncomingFile(
        filename=upload.filename or "file",
        content_type=upload.content_type,
        data=await upload.read(settings.max_file_size + 1),
    )
    check_upload_limits([incoming])
    return incoming


def _load_json(field: str, value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError as e:
        raise ValidationError(f"Field '{field}' must be valid JSON") from e


def _parse_uuid_list(values: Optional[List[str]], field: str) -> List[UUID]:
    """Accept repeated query values and comma-separated lists."""
    parsed = []
    for value in values or []:
        for part in value.split(","):
            if not part.strip():
                continue
            try:
                parsed.append(UUID(part.strip()))
            except ValueError as e:
                raise ValidationError(f"'{field}' must contain UUIDs") from e
    return parsed


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_item(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Create a new item. FILE items are sent as multipart with ``files`` parts."""
    data, files = await read_item_payload(request)
    try:
        item_data = item_create_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid item payload", details=format_validation_errors(e.errors())
        ) from e

    service = ItemService(db, storage)
    item = await service.create_item(item_data, user_id=current_user.id, files=files)

    return ResponseSchema(
        status="success",
        message="Item created successfully",
        data=dump(item_to_response(item, storage.public_url)),
    )


@router.get("")
async def get_items(
    type: Optional[ItemType] = Query(None),
    category: Optional[str] = Query(None),
    project: Optional[str] = Query(None),
    domain: Optional[str] = Query(None),
    importance: Optional[Importance] = Query(None),
    is_pinned: Optional[bool] = Query(None, alias="isPinned"),
    tag_ids: Optional[List[str]] = Query(None, alias="tagIds"),
    search: Optional[str] = Query(None),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    page: int = Query(1),
    limit: int = Query(20),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Get paginated list of items with optional filters."""
    filters = ItemFilter(
        type=type,
        category=category,
        project=project,
        domain=domain,
        importance=importance,
        is_pinned=is_pinned,
        tag_ids=_parse_uuid_list(tag_ids, "tagIds"),
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    pagination = PaginationParams(page=page, limit=limit)

    service = ItemService(db, storage)
    result = await service.get_items_list(current_user.id, filters=filters, pagination=pagination)

    return {
        "data": [dump(item_to_response(item, storage.public_url)) for item in result["items"]],
        "meta": result["meta"],
    }


@router.get("/trash")
async def get_trash(
    page: int = Query(1),
    limit: int = Query(20),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Get paginated list of trashed items."""
    service = ItemService(db, storage)
    result = await service.get_trashed_items(
        current_user.id, pagination=PaginationParams(page=page, limit=limit)
    )
    return {
        "data": [dump(item_to_response(item, storage.public_url)) for item in result["items"]],
        "meta": result["meta"],
    }


@router.delete("/trash", response_model=ResponseSchema)
async def empty_trash(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Permanently delete every item in the trash."""
    service = ItemService(db, storage)
    deleted = await service.empty_trash(current_user.id)
    return ResponseSchema(
        status="success",
        message="Trash emptied successfully",
        data={"deleted": deleted},
    )


@router.delete("/trash/{item_id}", response_model=ResponseSchema)
async def delete_trashed_item(
    item_id: UUID = Path(..., description="Item ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Permanently delete one trashed item."""
    service = ItemService(db, storage)
    await service.permanently_delete(item_id, current_user.id)
    return ResponseSchema(status="success", message="Item permanently deleted", data=None)


@router.get("/{item_id}", response_model=ResponseSchema)
async def get_item(
    item_id: UUID = Path(..., description="Item ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Get a specific item by ID."""
    service = ItemService(db, storage)
    item = await service.get_item(item_id, current_user.id)
    return ResponseSchema(
        status="success",
        message="Item retrieved successfully",
        data=dump(item_to_response(item, storage.public_url)),
    )


@router.patch("/{item_id}", response_model=ResponseSchema)
async def update_item(
    request: Request,
    item_id: UUID = Path(..., description="Item ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Update a specific item. New files may be appended with multipart ``files`` parts."""
    data, files = await read_item_payload(request)
    try:
        item_data = ItemUpdate.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid item payload", details=format_validation_errors(e.errors())
        ) from e

    service = ItemService(db, storage)
    item = await service.update_item(item_id, item_data, current_user.id, files=files)

    return ResponseSchema(
        status="success",
        message="Item updated successfully",
        data=dump(item_to_response(item, storage.public_url)),
    )


@router.delete("/{item_id}", response_model=ResponseSchema)
async def delete_item(
    item_id: UUID = Path(..., description="Item ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Delete a specific item."""
    service = ItemService(db, storage)
    await service.delete_item(item_id, current_user.id)
    return ResponseSchema(status="success", message="Item deleted successfully", data=None)


@router.patch("/{item_id}/pin", response_model=ResponseSchema)
async def toggle_pin(
    item_id: UUID = Path(..., description="Item ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Pin or unpin an item."""
    service = ItemService(db, storage)
    item = await service.toggle_pin(item_id, current_user.id)
    return ResponseSchema(
        status="success",
        message="Item pinned" if item.is_pinned else "Item unpinned",
        data=dump(item_to_response(item, storage.public_url)),
    )


@router.patch("/{item_id}/files/reorder", response_model=ResponseSchema)
async def reorder_files(
    reorder_data: ReorderFilesRequest,
    item_id: UUID = Path(..., description="Item ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Reorder all files of an item."""
    service = ItemService(db, storage)
    item = await service.reorder_files(item_id, reorder_data.file_ids, current_user.id)
    return ResponseSchema(
        status="success",
        message="Files reordered successfully",
        data=dump(item_to_response(item, storage.public_url)),
    )


@router.patch("/{item_id}/files/{file_id}/primary", response_model=ResponseSchema)
async def set_primary_file(
    item_id: UUID = Path(..., description="Item ID"),
    file_id: UUID = Path(..., description="File ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Mark one of the item's files as primary."""
    service = ItemService(db, storage)
    item = await service.set_primary_file(item_id, file_id, current_user.id)
    return ResponseSchema(
        status="success",
        message="Primary file updated",
        data=dump(item_to_response(item, storage.public_url)),
    )


@router.patch("/{item_id}/trash", response_model=ResponseSchema)
async def move_to_trash(
    item_id: UUID = Path(..., description="Item ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Move an item to the trash."""
    service = ItemService(db, storage)
    item = await service.move_to_trash(item_id, current_user.id)
    return ResponseSchema(
        status="success",
        message="Item moved to trash",
        data=dump(item_to_response(item, storage.public_url)),
    )


@router.patch("/{item_id}/restore", response_model=ResponseSchema)
async def restore_from_trash(
    item_id: UUID = Path(..., description="Item ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Restore an item from the trash."""
    service = ItemService(db, storage)
    item = await service.restore_from_trash(item_id, current_user.id)
    return ResponseSchema(
        status="success",
        message="Item restored from trash",
        data=dump(item_to_response(item, storage.public_url)),
    )
