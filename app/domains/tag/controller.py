"""Tag API controller with FastAPI endpoints."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, validate_token
from app.domains.tag.service import TagService
from app.schemas.base import ResponseSchema, dump
from app.schemas.tag import TagCreate, TagResponse, TagUpdate
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tags",
    tags=["tags"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


def _tag_response(tag, item_count: int = 0) -> dict:
    response = TagResponse.model_validate(tag)
    response.item_count = item_count
    return dump(response)


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_tag(
    tag_data: TagCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new tag."""
    service = TagService(db)
    tag = await service.create_tag(tag_data, current_user.id)

    return ResponseSchema(
        status="success",
        message="Tag created successfully",
        data=_tag_response(tag),
    )


@router.get("", response_model=ResponseSchema)
async def get_tags(
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get all tags of the current user with their item counts."""
    service = TagService(db)
    tags = await service.get_tags_list(current_user.id, search=search)

    return ResponseSchema(
        status="success",
        message="Tags retrieved successfully",
        data=[_tag_response(tag, count) for tag, count in tags],
    )


@router.get("/{tag_id}", response_model=ResponseSchema)
async def get_tag(
    tag_id: UUID = Path(..., description="Tag ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a specific tag by ID."""
    service = TagService(db)
    tag = await service.get_tag(tag_id, current_user.id)

    return ResponseSchema(
        status="success",
        message="Tag retrieved successfully",
        data=_tag_response(tag, await service.count_items(tag.id)),
    )


@router.patch("/{tag_id}", response_model=ResponseSchema)
async def update_tag(
    tag_id: UUID = Path(..., description="Tag ID"),
    tag_data: TagUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Rename or recolor a tag."""
    service = TagService(db)
    tag = await service.update_tag(tag_id, tag_data, current_user.id)

    return ResponseSchema(
        status="success",
        message="Tag updated successfully",
        data=_tag_response(tag, await service.count_items(tag.id)),
    )


@router.delete("/{tag_id}", response_model=ResponseSchema)
async def delete_tag(
    tag_id: UUID = Path(..., description="Tag ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a tag; items keep existing without it."""
    service = TagService(db)
    await service.delete_tag(tag_id, current_user.id)

    return ResponseSchema(status="success", message="Tag deleted successfully", data=None)
