"""User and authentication schemas for request/response validation."""

from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from .base import BaseModelSchema, BaseSchema


class RegisterRequest(BaseSchema):
    """Schema for user registration."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=8, max_length=128, description="Plain-text password")
    name: Optional[str] = Field(None, max_length=100, description="Display name")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(BaseSchema):
    """Schema for user login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserUpdateRequest(BaseSchema):
    """Schema for updating the current user's profile."""

    name: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=8, max_length=128)


class UserResponse(BaseModelSchema):
    """Schema for user response data."""

    email: str
    name: Optional[str] = None
    role: str
    is_active: bool
    is_email_verified: bool


class TokenResponse(BaseSchema):
    """Schema returned by register, login and refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RefreshRequest(BaseSchema):
    refresh_token: str = Field(..., min_length=1)


class UsageResponse(BaseSchema):
    """Storage and count usage with the user's limits."""

    used_storage_bytes: int
    max_storage_bytes: int
    item_count: int
    max_items: int
    collection_count: int
    max_collections: int


class AdminUserCreate(RegisterRequest):
    """Schema for an administrator creating an account."""

    role: Literal["USER", "ADMIN"] = "USER"
    is_active: bool = True
    is_email_verified: bool = False


class AdminUserUpdate(BaseSchema):
    """Schema for an administrator updating an account and its limits."""

    name: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    role: Optional[Literal["USER", "ADMIN"]] = None
    is_active: Optional[bool] = None
    is_email_verified: Optional[bool] = None
    max_storage_bytes: Optional[int] = Field(None, ge=0)
    max_items: Optional[int] = Field(None, ge=0)
    max_collections: Optional[int] = Field(None, ge=0)


class AdminUserFilter(BaseSchema):
    """Query filters for the admin user listing."""

    search: Optional[str] = None
    role: Optional[Literal["USER", "ADMIN"]] = None
    is_active: Optional[bool] = None
    is_email_verified: Optional[bool] = None
    sort_by: Literal["createdAt", "email", "name"] = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"


class AdminUserResponse(UserResponse):
    """User as administrators see it, with usage when loaded."""

    usage: Optional[UsageResponse] = None
