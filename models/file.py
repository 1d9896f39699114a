"""
File model for stored objects.
"""

from sqlalchemy import BigInteger, CheckConstraint, Column, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class File(BaseModel):
    """
    Represents a stored object uploaded by a user.

    ``storage_key`` addresses the object in the storage backend and never
    changes once the row exists.
    """

    __tablename__ = "files"
    __table_args__ = (CheckConstraint("size >= 0", name="ck_files_size_non_negative"),)

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    storage_key = Column(String(500), nullable=False, unique=True)
    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False, default="application/octet-stream")
    size = Column(BigInteger, nullable=False, default=0)
    checksum = Column(String(64))

    # Relationships
    item_files = relationship("ItemFile", back_populates="file")
