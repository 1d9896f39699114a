"""Item-related Pydantic schemas for request/response validation.

Create payloads are a tagged union on ``type``: each variant only accepts
the fields that make sense for it, so a LINK payload with ``content`` or a
NOTE payload with ``url`` is rejected at validation time.
"""

from datetime import datetime
from typing import Annotated, Callable, List, Literal, Optional, Union
from urllib.parse import urlparse
from uuid import UUID

from pydantic import ConfigDict, Field, TypeAdapter, field_validator, model_validator

from models.item import Importance, Item, ItemType

from .base import BaseSchema

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"

SortField = Literal["createdAt", "updatedAt", "title", "importance"]
SortOrder = Literal["asc", "desc"]


def _dedupe(values: List[UUID]) -> List[UUID]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _validate_url(v: str) -> str:
    v = v.strip()
    parsed = urlparse(v)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("URL must be an absolute http(s) URL")
    return v


def extract_domain(url: str) -> Optional[str]:
    """Return the lower-cased hostname of ``url``."""
    hostname = urlparse(url).hostname
    return hostname.lower() if hostname else None


class NewTagInput(BaseSchema):
    """A tag to create (or reuse, matching names case-insensitively) while saving an item."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Tag name cannot be empty")
        return v


class ItemCreateBase(BaseSchema):
    """Fields shared by every item kind."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=100)
    project: Optional[str] = Field(None, max_length=100)
    importance: Importance = Importance.MEDIUM
    is_pinned: bool = False
    tag_ids: List[UUID] = Field(default_factory=list)
    new_tags: List[NewTagInput] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("tag_ids")
    @classmethod
    def dedupe_tag_ids(cls, v: List[UUID]) -> List[UUID]:
        return _dedupe(v)


class FileItemCreate(ItemCreateBase):
    """Payload for a FILE item. The files themselves arrive as multipart parts."""

    type: Literal["FILE"]
    primary_file_index: Optional[int] = Field(None, ge=0)


class LinkItemCreate(ItemCreateBase):
    """Payload for a LINK item."""

    type: Literal["LINK"]
    url: str = Field(..., min_length=1, max_length=2048)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _validate_url(v)


class NoteItemCreate(ItemCreateBase):
    """Payload for a NOTE item."""

    type: Literal["NOTE"]
    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Content cannot be empty")
        return v


ItemCreate = Annotated[
    Union[FileItemCreate, LinkItemCreate, NoteItemCreate],
    Field(discriminator="type"),
]

item_create_adapter = TypeAdapter(ItemCreate)


class ItemUpdate(BaseSchema):
    """Partial update of an item.

    ``tag_ids`` replaces the tag set when given (an empty list clears it);
    ``new_tags`` are added on top. ``url`` and ``content`` are only accepted
    for LINK and NOTE items respectively.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=100)
    project: Optional[str] = Field(None, max_length=100)
    importance: Optional[Importance] = None
    is_pinned: Optional[bool] = None
    url: Optional[str] = Field(None, min_length=1, max_length=2048)
    content: Optional[str] = Field(None, min_length=1)
    tag_ids: Optional[List[UUID]] = None
    new_tags: List[NewTagInput] = Field(default_factory=list)
    remove_file_ids: List[UUID] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def reject_type_change(cls, data):
        if isinstance(data, dict) and "type" in data:
            raise ValueError("Item type cannot be changed")
        return data

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        return _validate_url(v) if v is not None else v

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Content cannot be empty")
        return v

    @field_validator("tag_ids")
    @classmethod
    def dedupe_tag_ids(cls, v: Optional[List[UUID]]) -> Optional[List[UUID]]:
        return _dedupe(v) if v is not None else v

    @field_validator("remove_file_ids")
    @classmethod
    def dedupe_remove_file_ids(cls, v: List[UUID]) -> List[UUID]:
        return _dedupe(v)


class ReorderFilesRequest(BaseSchema):
    """The complete, ordered set of file ids of an item."""

    file_ids: List[UUID] = Field(..., min_length=1)


class ItemFilter(BaseSchema):
    """Query filters for item listing."""

    type: Optional[ItemType] = None
    category: Optional[str] = None
    project: Optional[str] = None
    domain: Optional[str] = None
    importance: Optional[Importance] = None
    is_pinned: Optional[bool] = None
    tag_ids: List[UUID] = Field(default_factory=list)
    search: Optional[str] = None
    sort_by: SortField = "createdAt"
    sort_order: SortOrder = "desc"


# Responses


class TagSummary(BaseSchema):
    """Tag as embedded in an item."""

    id: UUID
    name: str
    color: str


class ItemFileResponse(BaseSchema):
    """A file attached to an item, in display order."""

    id: UUID
    original_name: str
    mime_type: str
    size: int
    checksum: Optional[str] = None
    url: str
    is_primary: bool
    position: int


class ItemResponseBase(BaseSchema):
    """Fields common to every item response."""

    id: UUID
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    project: Optional[str] = None
    importance: Importance
    is_pinned: bool
    tags: List[TagSummary] = Field(default_factory=list)
    is_trashed: bool = False
    trashed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class FileItemResponse(ItemResponseBase):
    type: Literal["FILE"] = "FILE"
    files: List[ItemFileResponse] = Field(default_factory=list)


class LinkItemResponse(ItemResponseBase):
    type: Literal["LINK"] = "LINK"
    url: str
    domain: Optional[str] = None


class NoteItemResponse(ItemResponseBase):
    type: Literal["NOTE"] = "NOTE"
    content: str


ItemResponse = Union[FileItemResponse, LinkItemResponse, NoteItemResponse]


def _tag_summaries(item: Item) -> List[TagSummary]:
    tags = [item_tag.tag for item_tag in item.item_tags]
    tags.sort(key=lambda tag: tag.name)
    return [TagSummary.model_validate(tag) for tag in tags]


def _file_responses(item: Item, url_for: Callable[[str], str]) -> List[ItemFileResponse]:
    return [
        ItemFileResponse(
            id=item_file.file.id,
            original_name=item_file.file.original_name,
            mime_type=item_file.file.mime_type,
            size=item_file.file.size,
            checksum=item_file.file.checksum,
            url=url_for(item_file.file.storage_key),
            is_primary=item_file.is_primary,
            position=item_file.position,
        )
        for item_file in sorted(item.files, key=lambda f: f.position)
    ]


def item_to_response(item: Item, url_for: Callable[[str], str]) -> ItemResponse:
    """Build the response variant matching ``item.type``.

    ``item`` must have ``files`` and ``item_tags`` loaded.
    """
    common = {
        "id": item.id,
        "title": item.title,
        "description": item.description,
        "category": item.category,
        "project": item.project,
        "importance": item.importance,
        "is_pinned": item.is_pinned,
        "tags": _tag_summaries(item),
        "is_trashed": item.is_trashed,
        "trashed_at": item.trashed_at,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }
    if item.type == ItemType.FILE.value:
        return FileItemResponse(files=_file_responses(item, url_for), **common)
    if item.type == ItemType.LINK.value:
        return LinkItemResponse(url=item.url, domain=item.domain, **common)
    return NoteItemResponse(content=item.content, **common)


# Sanitized public views: no ids, owner or internal timestamps


class PublicFileView(BaseSchema):
    original_name: str
    mime_type: str
    size: int
    url: str
    is_primary: bool


class PublicTagView(BaseSchema):
    name: str
    color: str


class PublicItemView(BaseSchema):
    """Item as shown to an anonymous share-link visitor."""

    type: ItemType
    title: str
    description: Optional[str] = None
    url: Optional[str] = None
    content: Optional[str] = None
    domain: Optional[str] = None
    category: Optional[str] = None
    project: Optional[str] = None
    importance: Importance
    files: List[PublicFileView] = Field(default_factory=list)
    tags: List[PublicTagView] = Field(default_factory=list)


def item_to_public_view(item: Item, url_for: Callable[[str], str]) -> PublicItemView:
    """Build the sanitized view of ``item``."""
    return PublicItemView(
        type=item.type,
        title=item.title,
        description=item.description,
        url=item.url,
        content=item.content,
        domain=item.domain,
        category=item.category,
        project=item.project,
        importance=item.importance,
        files=[
            PublicFileView(
                original_name=f.original_name,
                mime_type=f.mime_type,
                size=f.size,
                url=f.url,
                is_primary=f.is_primary,
            )
            for f in _file_responses(item, url_for)
        ],
        tags=[PublicTagView(name=t.name, color=t.color) for t in _tag_summaries(item)],
    )
