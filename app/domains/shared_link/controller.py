"""Shared link API controllers: owner management and public access."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, validate_token
from app.domains.shared_link.service import SharedLinkService, link_status, share_url
from app.schemas.base import ResponseSchema, dump
from app.schemas.shared_link import (
    SharedLinkAccessRequest,
    SharedLinkCreate,
    SharedLinkCreated,
    SharedLinkItemSummary,
    SharedLinkResponse,
    SharedLinkUpdate,
)
from app.services.storage_service import StorageBackend, get_storage
from app.shared.pagination import PaginationParams
from models import SharedLink, utcnow
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/shared-links",
    tags=["shared-links"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)

# Unauthenticated
public_router = APIRouter(prefix="/api/public/shared-links", tags=["public"])


def _owner_view(link: SharedLink) -> dict:
    return dump(
        SharedLinkResponse(
            id=link.id,
            token=link.token,
            url=share_url(link.token),
            expires_at=link.expires_at,
            revoked=link.revoked,
            has_password=bool(link.password_hash),
            access_count=link.access_count,
            is_expired=utcnow() > link.expires_at,
            status=link_status(link),
            item=SharedLinkItemSummary.model_validate(link.item),
            created_at=link.created_at,
            updated_at=link.updated_at,
        )
    )


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_shared_link(
    link_data: SharedLinkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a share link for one of the user's items."""
    service = SharedLinkService(db)
    link = await service.create_link(link_data, current_user.id)

    return ResponseSchema(
        status="success",
        message="Share link created successfully",
        data=dump(
            SharedLinkCreated(
                id=link.id,
                token=link.token,
                url=share_url(link.token),
                expires_at=link.expires_at,
                has_password=bool(link.password_hash),
                item=SharedLinkItemSummary.model_validate(link.item),
                created_at=link.created_at,
            )
        ),
    )


@router.get("")
async def get_shared_links(
    item_id: Optional[UUID] = Query(None, alias="itemId"),
    revoked: Optional[bool] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get paginated list of the user's share links."""
    service = SharedLinkService(db)
    result = await service.get_links_list(
        current_user.id,
        item_id=item_id,
        revoked=revoked,
        pagination=PaginationParams(page=page, limit=limit),
    )

    return {"data": [_owner_view(link) for link in result["items"]], "meta": result["meta"]}


@router.patch("/{link_id}", response_model=ResponseSchema)
async def update_shared_link(
    link_id: UUID = Path(..., description="Share link ID"),
    link_data: SharedLinkUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Extend the expiry or change the password of an active link."""
    service = SharedLinkService(db)
    link = await service.update_link(link_id, link_data, current_user.id)

    return ResponseSchema(
        status="success",
        message="Share link updated successfully",
        data=_owner_view(link),
    )


@router.delete("/{link_id}", response_model=ResponseSchema)
async def revoke_shared_link(
    link_id: UUID = Path(..., description="Share link ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Revoke a share link."""
    service = SharedLinkService(db)
    link = await service.revoke_link(link_id, current_user.id)

    return ResponseSchema(
        status="success",
        message="Share link revoked successfully",
        data=_owner_view(link),
    )


@router.delete("/{link_id}/permanent", response_model=ResponseSchema)
async def delete_shared_link(
    link_id: UUID = Path(..., description="Share link ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Permanently delete a share link."""
    service = SharedLinkService(db)
    await service.permanently_delete_link(link_id, current_user.id)

    return ResponseSchema(status="success", message="Share link permanently deleted", data=None)


@public_router.post("/{token}/access")
async def access_shared_link(
    token: str = Path(..., max_length=128),
    access_data: Optional[SharedLinkAccessRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Open a share link, supplying the password if it has one."""
    service = SharedLinkService(db)
    view = await service.access_link(
        token, access_data.password if access_data else None, storage
    )
    return dump(view)


@public_router.get("/{token}")
async def open_shared_link(
    token: str = Path(..., max_length=128),
    password: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Open a share link with a GET; protected links need ``?password=``."""
    service = SharedLinkService(db)
    view = await service.access_link(token, password, storage)
    return dump(view)
