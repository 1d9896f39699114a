"""Admin user management endpoints."""

import logging
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_db, require_admin, validate_token
from app.domains.admin.service import AdminUserService
from app.schemas.base import ResponseSchema, dump
from app.schemas.user import AdminUserCreate, AdminUserFilter, AdminUserUpdate, UserResponse
from app.services.storage_service import StorageBackend, get_storage
from app.shared.pagination import PaginationParams
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users",
    tags=["admin"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


@router.get("")
async def get_users(
    search: Optional[str] = Query(None),
    role: Optional[Literal["USER", "ADMIN"]] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    is_email_verified: Optional[bool] = Query(None, alias="isEmailVerified"),
    sort_by: Literal["createdAt", "email", "name"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    page: int = Query(1),
    limit: int = Query(20),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Get paginated list of users with optional filters."""
    filters = AdminUserFilter(
        search=search,
        role=role,
        is_active=is_active,
        is_email_verified=is_email_verified,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    service = AdminUserService(db, storage)
    result = await service.list_users(filters=filters, pagination=PaginationParams(page=page, limit=limit))

    return {
        "data": [dump(UserResponse.model_validate(user)) for user in result["items"]],
        "meta": result["meta"],
    }


@router.get("/{user_id}", response_model=ResponseSchema)
async def get_user(
    user_id: UUID = Path(..., description="User ID"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Get a user with their usage."""
    service = AdminUserService(db, storage)
    user = await service.get_user(user_id)

    return ResponseSchema(
        status="success",
        message="User retrieved successfully",
        data=dump(await service.to_response(user)),
    )


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_user(
    user_data: AdminUserCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Create an account with an explicit role and status."""
    service = AdminUserService(db, storage)
    user = await service.create_user(user_data)

    return ResponseSchema(
        status="success",
        message="User created successfully",
        data=dump(await service.to_response(user)),
    )


@router.patch("/{user_id}", response_model=ResponseSchema)
async def update_user(
    user_id: UUID = Path(..., description="User ID"),
    update_data: AdminUserUpdate = Body(...),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Update a user's profile, role, status or limits."""
    service = AdminUserService(db, storage)
    user = await service.update_user(user_id, update_data, admin)

    return ResponseSchema(
        status="success",
        message="User updated successfully",
        data=dump(await service.to_response(user)),
    )


@router.patch("/{user_id}/toggle-status", response_model=ResponseSchema)
async def toggle_user_status(
    user_id: UUID = Path(..., description="User ID"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Activate or deactivate a user."""
    service = AdminUserService(db, storage)
    user = await service.toggle_status(user_id, admin)

    return ResponseSchema(
        status="success",
        message="User activated" if user.is_active else "User deactivated",
        data=dump(UserResponse.model_validate(user)),
    )


@router.delete("/{user_id}", response_model=ResponseSchema)
async def delete_user(
    user_id: UUID = Path(..., description="User ID"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Delete a user and everything they own."""
    service = AdminUserService(db, storage)
    await service.delete_user(user_id, admin)

    return ResponseSchema(
        status="success",
        message="User deleted successfully",
        data={"deleted": True},
    )
