"""
Collection models for grouping items.

Collections form an optional tree through ``parent_id``; the service layer
refuses moves that would create a cycle.
"""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text, UniqueConstraint

from .base import UUID, BaseModel


class Collection(BaseModel):
    """
    Represents a named, optionally public, optionally nested group of items.

    :ivar slug_public: Public slug, unique across all collections when set.
    :type slug_public: str
    :ivar parent_id: Parent collection, ``None`` for top-level collections.
    :type parent_id: UUID
    """

    __tablename__ = "collections"

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    cover_image = Column(String(500))
    is_public = Column(Boolean, default=False, nullable=False)
    slug_public = Column(String(255), unique=True)
    parent_id = Column(UUID(), ForeignKey("collections.id", ondelete="CASCADE"), index=True)


class CollectionItem(BaseModel):
    """
    Membership row between a Collection and an Item.
    """

    __tablename__ = "collection_items"
    __table_args__ = (
        UniqueConstraint("collection_id", "item_id", name="uq_collection_items_collection_item"),
    )

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    collection_id = Column(
        UUID(), ForeignKey("collections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id = Column(UUID(), ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
