"""Collection API controller with FastAPI endpoints."""

import logging
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, validate_token
from app.domains.collection.service import CollectionService
from app.schemas.base import ResponseSchema, dump
from app.schemas.collection import (
    BreadcrumbEntry,
    CollectionCreate,
    CollectionFilter,
    CollectionItemsRequest,
    CollectionMove,
    CollectionUpdate,
    MembershipChangeResponse,
)
from app.schemas.item import item_to_response
from app.services.storage_service import StorageBackend, get_storage
from app.shared.pagination import PaginationParams
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/collections",
    tags=["collections"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_collection(
    collection_data: CollectionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new collection."""
    service = CollectionService(db)
    collection = await service.create_collection(collection_data, current_user.id)

    return ResponseSchema(
        status="success",
        message="Collection created successfully",
        data=dump(await service.to_response(collection)),
    )


@router.get("")
async def get_collections(
    search: Optional[str] = Query(None),
    is_public: Optional[bool] = Query(None, alias="isPublic"),
    parent_id: Optional[str] = Query(None, alias="parentId"),
    sort_by: Literal["name", "createdAt", "updatedAt"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    page: int = Query(1),
    limit: int = Query(20),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get paginated list of collections with optional filters."""
    filters = CollectionFilter(
        search=search,
        is_public=is_public,
        parent_id=parent_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    service = CollectionService(db)
    result = await service.get_collections_list(
        current_user.id, filters=filters, pagination=PaginationParams(page=page, limit=limit)
    )

    return {
        "data": [dump(r) for r in await service.to_responses(list(result["items"]))],
        "meta": result["meta"],
    }


@router.get("/{collection_id}", response_model=ResponseSchema)
async def get_collection(
    collection_id: UUID = Path(..., description="Collection ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a specific collection by ID."""
    service = CollectionService(db)
    collection = await service.get_collection(collection_id, current_user.id)

    return ResponseSchema(
        status="success",
        message="Collection retrieved successfully",
        data=dump(await service.to_response(collection)),
    )


@router.patch("/{collection_id}", response_model=ResponseSchema)
async def update_collection(
    collection_id: UUID = Path(..., description="Collection ID"),
    collection_data: CollectionUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a specific collection."""
    service = CollectionService(db)
    collection = await service.update_collection(collection_id, collection_data, current_user.id)

    return ResponseSchema(
        status="success",
        message="Collection updated successfully",
        data=dump(await service.to_response(collection)),
    )


@router.delete("/{collection_id}", response_model=ResponseSchema)
async def delete_collection(
    collection_id: UUID = Path(..., description="Collection ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a collection and its sub-collections."""
    service = CollectionService(db)
    deleted = await service.delete_collection(collection_id, current_user.id)

    return ResponseSchema(
        status="success",
        message="Collection deleted successfully",
        data={"deleted": deleted},
    )


@router.patch("/{collection_id}/move", response_model=ResponseSchema)
async def move_collection(
    collection_id: UUID = Path(..., description="Collection ID"),
    move_data: CollectionMove = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Move a collection under another parent, or to the top level."""
    service = CollectionService(db)
    collection = await service.move_collection(collection_id, move_data.parent_id, current_user.id)

    return ResponseSchema(
        status="success",
        message="Collection moved successfully",
        data=dump(await service.to_response(collection)),
    )


@router.post("/{collection_id}/items", response_model=ResponseSchema)
async def add_items(
    collection_id: UUID = Path(..., description="Collection ID"),
    items_data: CollectionItemsRequest = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Add items to a collection."""
    service = CollectionService(db)
    added = await service.add_items(collection_id, items_data.item_ids, current_user.id)

    return ResponseSchema(
        status="success",
        message=f"{added} item(s) added to collection",
        data=dump(MembershipChangeResponse(added=added)),
    )


@router.delete("/{collection_id}/items", response_model=ResponseSchema)
async def remove_items(
    collection_id: UUID = Path(..., description="Collection ID"),
    items_data: CollectionItemsRequest = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Remove items from a collection."""
    service = CollectionService(db)
    removed = await service.remove_items(collection_id, items_data.item_ids, current_user.id)

    return ResponseSchema(
        status="success",
        message=f"{removed} item(s) removed from collection",
        data=dump(MembershipChangeResponse(removed=removed)),
    )


@router.get("/{collection_id}/items")
async def get_collection_items(
    collection_id: UUID = Path(..., description="Collection ID"),
    page: int = Query(1),
    limit: int = Query(20),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Get paginated list of the items in a collection."""
    service = CollectionService(db)
    result = await service.get_collection_items(
        collection_id, current_user.id, pagination=PaginationParams(page=page, limit=limit)
    )

    return {
        "data": [dump(item_to_response(item, storage.public_url)) for item in result["items"]],
        "meta": result["meta"],
    }


@router.get("/{collection_id}/children", response_model=ResponseSchema)
async def get_children(
    collection_id: UUID = Path(..., description="Collection ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the direct sub-collections of a collection."""
    service = CollectionService(db)
    children = await service.get_children(collection_id, current_user.id)

    return ResponseSchema(
        status="success",
        message="Collection children retrieved successfully",
        data=[dump(r) for r in await service.to_responses(children)],
    )


@router.get("/{collection_id}/breadcrumb", response_model=ResponseSchema)
async def get_breadcrumb(
    collection_id: UUID = Path(..., description="Collection ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the path from the top-level ancestor to the collection."""
    service = CollectionService(db)
    path = await service.get_breadcrumb(collection_id, current_user.id)

    return ResponseSchema(
        status="success",
        message="Collection breadcrumb retrieved successfully",
        data=[dump(BreadcrumbEntry(id=c.id, name=c.name)) for c in path],
    )
