"""Tag-related Pydantic schemas for request/response validation."""

from typing import Optional

from pydantic import Field, field_validator

from .base import BaseModelSchema, BaseSchema

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class TagCreate(BaseSchema):
    """Schema for creating a tag."""

    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Tag name cannot be empty")
        return v


class TagUpdate(BaseSchema):
    """Schema for updating a tag."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Tag name cannot be empty")
        return v


class TagResponse(BaseModelSchema):
    """Schema for tag response data."""

    name: str
    color: str
    item_count: int = 0
