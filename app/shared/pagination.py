"""Pagination utilities."""

import math
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import Select

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PaginationParams(BaseModel):
    """Pagination parameters.

    Out-of-range values are clamped rather than rejected: ``page`` is at
    least 1 and ``limit`` is between 1 and 100.
    """

    page: int = Field(default=1, description="Page number (1-based)")
    limit: int = Field(default=DEFAULT_PAGE_SIZE, description="Page size")

    @field_validator("page", mode="before")
    @classmethod
    def clamp_page(cls, v: Any) -> int:
        if v is None:
            return 1
        return max(1, int(v))

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, v: Any) -> int:
        if v is None:
            return DEFAULT_PAGE_SIZE
        return min(MAX_PAGE_SIZE, max(1, int(v)))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageMeta(BaseModel):
    """Pagination metadata."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int
    page: int
    limit: int
    total_pages: int


def build_meta(total: int, pagination: PaginationParams) -> Dict[str, int]:
    """Build the ``meta`` block for a page of ``total`` results."""
    meta = PageMeta(
        total=total,
        page=pagination.page,
        limit=pagination.limit,
        total_pages=math.ceil(total / pagination.limit) if total else 0,
    )
    return meta.model_dump(by_alias=True)


async def paginate(db: AsyncSession, query: Select, pagination: PaginationParams) -> Dict[str, Any]:
    """
    Paginate a SQLAlchemy query.

    Args:
        db: Database session
        query: SQLAlchemy select query, already ordered
        pagination: Pagination parameters

    Returns:
        Dictionary with ``items`` (ORM objects) and ``meta``
    """

    # Count over the unordered, unpaginated query
    subquery = query.order_by(None).subquery()
    count_query = select(func.count()).select_from(subquery)
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Apply pagination to query
    paginated_query = query.offset(pagination.offset).limit(pagination.limit)

    result = await db.execute(paginated_query)
    items = result.scalars().unique().all()

    return {"items": items, "meta": build_meta(total, pagination)}
