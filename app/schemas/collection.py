"""Collection-related Pydantic schemas for request/response validation."""

from typing import List, Literal, Optional
from uuid import UUID

from pydantic import Field, field_validator

from .base import BaseModelSchema, BaseSchema

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class CollectionCreate(BaseSchema):
    """Schema for creating a collection."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    cover_image: Optional[str] = Field(None, max_length=500)
    is_public: bool = False
    slug_public: Optional[str] = Field(None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    parent_id: Optional[UUID] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Collection name cannot be empty")
        return v


class CollectionUpdate(BaseSchema):
    """Schema for updating a collection. Moving is a separate operation."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    cover_image: Optional[str] = Field(None, max_length=500)
    is_public: Optional[bool] = None
    slug_public: Optional[str] = Field(None, min_length=1, max_length=255, pattern=SLUG_PATTERN)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Collection name cannot be empty")
        return v


class CollectionMove(BaseSchema):
    """Target parent of a move; ``null`` moves the collection to the top level."""

    parent_id: Optional[UUID] = None


class CollectionItemsRequest(BaseSchema):
    """Item ids to add to or remove from a collection."""

    item_ids: List[UUID] = Field(..., min_length=1)


class CollectionFilter(BaseSchema):
    """Query filters for collection listing."""

    search: Optional[str] = None
    is_public: Optional[bool] = None
    parent_id: Optional[str] = None  # a UUID, or "root" for top-level only
    sort_by: Literal["name", "createdAt", "updatedAt"] = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"


class CollectionSummary(BaseSchema):
    id: UUID
    name: str


class CollectionResponse(BaseModelSchema):
    """Schema for collection response data."""

    name: str
    description: Optional[str] = None
    cover_image: Optional[str] = None
    is_public: bool
    slug_public: Optional[str] = None
    parent_id: Optional[UUID] = None
    item_count: int = 0
    children_count: int = 0
    parent: Optional[CollectionSummary] = None


class MembershipChangeResponse(BaseSchema):
    """Result of adding or removing items."""

    added: Optional[int] = None
    removed: Optional[int] = None


class BreadcrumbEntry(BaseSchema):
    id: UUID
    name: str
