"""Shared link schemas for request/response validation."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field

from .base import BaseSchema
from .item import PublicItemView

# One year
MAX_EXPIRES_IN_HOURS = 24 * 365

LinkStatus = Literal["ACTIVE", "EXPIRED", "REVOKED"]


class SharedLinkCreate(BaseSchema):
    """Schema for creating a share link."""

    item_id: UUID
    expires_in: int = Field(..., ge=1, le=MAX_EXPIRES_IN_HOURS, description="Hours until expiry")
    password: Optional[str] = Field(None, min_length=1, max_length=128)


class SharedLinkUpdate(BaseSchema):
    """Schema for updating a share link.

    Send ``password: null`` to remove the password; omit it to keep it.
    """

    expires_in: Optional[int] = Field(None, ge=1, le=MAX_EXPIRES_IN_HOURS)
    password: Optional[str] = Field(None, min_length=1, max_length=128)


class SharedLinkAccessRequest(BaseSchema):
    password: Optional[str] = None


class SharedLinkItemSummary(BaseSchema):
    id: UUID
    title: str
    type: str


class SharedLinkCreated(BaseSchema):
    """Returned once, right after creation."""

    id: UUID
    token: str
    url: str
    expires_at: datetime
    has_password: bool
    item: SharedLinkItemSummary
    created_at: datetime


class SharedLinkResponse(BaseSchema):
    """Owner view of a share link."""

    id: UUID
    token: str
    url: str
    expires_at: datetime
    revoked: bool
    has_password: bool
    access_count: int
    is_expired: bool
    status: LinkStatus
    item: SharedLinkItemSummary
    created_at: datetime
    updated_at: datetime


class PublicLinkInfo(BaseSchema):
    expires_at: datetime
    access_count: int


class PublicSharedLinkView(BaseSchema):
    """What an anonymous visitor receives for a valid link."""

    item: PublicItemView
    link: PublicLinkInfo
