"""Base storage backend definitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class StorageObject:
    """Represents a stored object's metadata."""

    key: str
    size: Optional[int] = None
    checksum: Optional[str] = None
    content_type: Optional[str] = None
    location: Optional[str] = None


class StorageError(RuntimeError):
    """Raised when storage operations fail."""


class StorageBackend:
    """Abstract interface for storage backends."""

    kind = "base"

    def put_bytes(self, key: str, data: bytes, content_type: Optional[str] = None) -> StorageObject:
        raise NotImplementedError

    def describe(self) -> str:
        return self.kind
