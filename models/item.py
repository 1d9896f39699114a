"""
Item models: the user's unit of saved content and its file attachments.

An Item is one of three kinds, selected by ``type``:

* ``FILE`` items own one or more attachments through ``ItemFile`` rows.
* ``LINK`` items carry a ``url`` and the ``domain`` derived from it.
* ``NOTE`` items carry free-form ``content``.

The kind is fixed at creation. Tags attach through ``ItemTag``; ``tags_text``
mirrors the attached tag names so search can match them without a join.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class ItemType(str, enum.Enum):
    """Item kind enumeration."""

    FILE = "FILE"
    LINK = "LINK"
    NOTE = "NOTE"


class Importance(str, enum.Enum):
    """Importance levels, lowest first."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


# Explicit rank used when sorting by importance
IMPORTANCE_RANK = {
    Importance.LOW.value: 0,
    Importance.MEDIUM.value: 1,
    Importance.HIGH.value: 2,
    Importance.URGENT.value: 3,
}


class Item(BaseModel):
    """
    Represents a saved file, link or note.
    """

    __tablename__ = "items"
    __table_args__ = (Index("idx_items_user_trashed_created", "user_id", "is_trashed", "created_at"),)

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(10), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    category = Column(String(100))
    project = Column(String(100))
    importance = Column(String(10), default=Importance.MEDIUM.value, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)

    url = Column(Text)  # LINK only
    domain = Column(String(255))  # derived from url
    content = Column(Text)  # NOTE only

    tags_text = Column(Text)

    is_trashed = Column(Boolean, default=False, nullable=False)
    trashed_at = Column(DateTime)

    # Relationships
    files = relationship(
        "ItemFile",
        back_populates="item",
        order_by="ItemFile.position",
        lazy="selectin",
    )
    item_tags = relationship("ItemTag", back_populates="item", lazy="selectin")


class ItemFile(BaseModel):
    """
    Join row between an Item and a File.

    ``position`` is unique per item and defines display order; exactly one
    row per item carries ``is_primary``.
    """

    __tablename__ = "item_files"
    __table_args__ = (
        UniqueConstraint("item_id", "position", name="uq_item_files_item_position"),
        UniqueConstraint("item_id", "file_id", name="uq_item_files_item_file"),
    )

    item_id = Column(UUID(), ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    file_id = Column(UUID(), ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, nullable=False)

    # Relationships
    item = relationship("Item", back_populates="files")
    file = relationship("File", back_populates="item_files", lazy="selectin")
