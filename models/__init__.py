"""
Models package initialization.
"""

from .base import Base, BaseModel, utcnow
from .collection import Collection, CollectionItem
from .file import File
from .item import IMPORTANCE_RANK, Importance, Item, ItemFile, ItemType
from .shared_link import SharedLink
from .tag import DEFAULT_TAG_COLOR, ItemTag, Tag
from .user import User, UserRole, UserUsage

__all__ = [
    "Base",
    "BaseModel",
    "utcnow",
    "User",
    "UserRole",
    "UserUsage",
    "File",
    "Item",
    "ItemFile",
    "ItemType",
    "Importance",
    "IMPORTANCE_RANK",
    "Tag",
    "ItemTag",
    "DEFAULT_TAG_COLOR",
    # Collection models
    "Collection",
    "CollectionItem",
    "SharedLink",
]
