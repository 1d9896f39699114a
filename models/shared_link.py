"""
Shared link model for public, token-addressed access to a single item.

A link only moves forward: ACTIVE to REVOKED (soft, row kept) or ACTIVE to
deleted (row removed). ``token`` is generated once and never changes;
``access_count`` only grows.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class SharedLink(BaseModel):
    """
    Represents a time-limited, optionally password-protected public link.

    :ivar token: Unguessable URL token.
    :type token: str
    :ivar password_hash: bcrypt hash of the access password, if any.
    :type password_hash: str
    :ivar expires_at: Naive UTC expiry timestamp.
    :type expires_at: datetime
    """

    __tablename__ = "shared_links"

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(UUID(), ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), nullable=False, unique=True)
    password_hash = Column(String(255))
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)
    access_count = Column(Integer, default=0, nullable=False)

    # Relationships
    item = relationship("Item", lazy="selectin")
