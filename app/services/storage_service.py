"""Object storage adapter.

Items never talk to the filesystem directly: they hand bytes to a
``StorageBackend`` and keep the returned key. The default backend stores
objects under ``settings.storage_path``; the application serves that
directory under ``/files``.
"""

import hashlib
import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

import aiofiles
import aiofiles.os

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredObject:
    """Result of persisting one blob."""

    key: str
    url: str
    size: int
    checksum: str


def compute_checksum(data: bytes) -> str:
    """SHA-256 hex digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def sanitize_key(key: str) -> str:
    """
    Validate a storage key and return its normalized form.

    Raises:
        ValueError: If the key is empty, absolute or escapes the storage root
    """
    if not key or not key.strip():
        raise ValueError("Storage key cannot be empty")

    normalized = os.path.normpath(key).replace("\\", "/")
    if normalized.startswith("/") or os.path.isabs(normalized):
        raise ValueError("Absolute storage keys are not allowed")
    if len(normalized) >= 2 and normalized[1] == ":":
        raise ValueError("Absolute storage keys are not allowed")
    if ".." in PurePosixPath(normalized).parts:
        raise ValueError("Storage keys cannot contain '..'")

    return normalized


def build_key(original_name: str, folder: str = "items") -> str:
    """Generate a fresh key of the form ``<folder>/<uuid><ext>``."""
    ext = PurePosixPath(original_name or "").suffix.lower()
    # Keep only short, simple extensions
    if len(ext) > 10 or not ext[1:].isalnum():
        ext = ""
    return f"{folder}/{uuid.uuid4().hex}{ext}"


class StorageBackend(ABC):
    """Interface every storage adapter implements."""

    @abstractmethod
    async def save(self, data: bytes, original_name: str, folder: str = "items") -> StoredObject:
        """Persist ``data`` under a newly generated key."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete the object at ``key``. Returns False if it did not exist."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Public URL at which the object can be downloaded."""


class LocalStorageBackend(StorageBackend):
    """Stores objects as files under a local root directory."""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or settings.storage_path)
        self.base_url = (base_url or settings.storage_public_base_url).rstrip("/")

    def _path_for(self, key: str) -> Path:
        return self.root / sanitize_key(key)

    async def save(self, data: bytes, original_name: str, folder: str = "items") -> StoredObject:
        key = build_key(original_name, folder)
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

        logger.debug("Stored object %s (%d bytes)", key, len(data))
        return StoredObject(
            key=key,
            url=self.public_url(key),
            size=len(data),
            checksum=compute_checksum(data),
        )

    async def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return False
        logger.debug("Deleted object %s", key)
        return True

    async def exists(self, key: str) -> bool:
        return await aiofiles.os.path.exists(self._path_for(key))

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{sanitize_key(key)}"


async def delete_objects_quietly(storage: StorageBackend, keys) -> int:
    """Delete ``keys`` one by one, logging failures instead of raising.

    Used after the owning database rows are already gone; a failure leaves
    an orphan object behind, never a dangling row.
    """
    deleted = 0
    for key in keys:
        try:
            if await storage.delete(key):
                deleted += 1
        except Exception:
            logger.exception("Failed to delete storage object %s", key)
    return deleted


_default_storage: Optional[StorageBackend] = None


def get_storage() -> StorageBackend:
    """FastAPI dependency returning the configured storage backend."""
    global _default_storage
    if _default_storage is None:
        _default_storage = LocalStorageBackend()
    return _default_storage
