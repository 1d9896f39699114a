"""
Provides the User and UserUsage models for the application's database schema.

The User model owns every other entity in the library: files, items, tags,
collections and shared links. UserUsage holds the per-user quota counters and
limits and is kept in step with the rows it counts.

Attributes
----------
email : sqlalchemy.Column
    The email address of the user, stored lower-cased and unique.
password_hash : sqlalchemy.Column
    bcrypt hash of the user's password.
role : sqlalchemy.Column
    ``USER`` or ``ADMIN``.
is_active : sqlalchemy.Column
    Inactive users cannot authenticate.
refresh_token_hash : sqlalchemy.Column
    Digest of the one refresh token currently valid for the user.
"""

import enum

from sqlalchemy import BigInteger, Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class UserRole(str, enum.Enum):
    """User role enumeration."""

    USER = "USER"
    ADMIN = "ADMIN"


class User(BaseModel):
    """
    Represents a user entity in the application.

    :ivar email: Email address of the user. It must be unique.
    :type email: str
    :ivar name: Display name of the user. This is optional.
    :type name: str
    :ivar is_active: Indicates whether the user account is active.
    :type is_active: bool
    :ivar is_email_verified: Indicates whether the email was verified.
    :type is_email_verified: bool
    """

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100))
    role = Column(String(20), default=UserRole.USER.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    # SHA-256 of the current refresh token; cleared on logout and deactivation
    refresh_token_hash = Column(String(64))

    # Relationships
    usage = relationship("UserUsage", back_populates="user", uselist=False)


class UserUsage(BaseModel):
    """
    Quota counters and limits for a single user (one-to-one with User).

    ``used_storage_bytes`` is updated in the same transaction as the File rows
    it accounts for.
    """

    __tablename__ = "user_usage"

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    used_storage_bytes = Column(BigInteger, default=0, nullable=False)
    max_storage_bytes = Column(BigInteger, nullable=False)
    item_count = Column(Integer, default=0, nullable=False)
    max_items = Column(Integer, nullable=False)
    collection_count = Column(Integer, default=0, nullable=False)
    max_collections = Column(Integer, nullable=False)

    # Relationship
    user = relationship("User", back_populates="usage")
