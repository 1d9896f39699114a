"""
Tag models for labelling items.
"""

from sqlalchemy import Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel

DEFAULT_TAG_COLOR = "#6366f1"


class Tag(BaseModel):
    """
    Represents a user-defined label. Names are unique per user, compared literally.
    """

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_tags_user_name"),)

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(20), default=DEFAULT_TAG_COLOR, nullable=False)

    # Relationships
    item_tags = relationship("ItemTag", back_populates="tag")


class ItemTag(BaseModel):
    """
    Join row between an Item and a Tag.
    """

    __tablename__ = "item_tags"
    __table_args__ = (UniqueConstraint("item_id", "tag_id", name="uq_item_tags_item_tag"),)

    item_id = Column(UUID(), ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id = Column(UUID(), ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    item = relationship("Item", back_populates="item_tags")
    tag = relationship("Tag", back_populates="item_tags", lazy="selectin")
