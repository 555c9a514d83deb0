"""Filesystem-backed storage backend."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

from .base import StorageBackend, StorageError, StorageObject


class LocalStorageBackend(StorageBackend):
    """Store files on the local filesystem under a base directory.

    The directory is created lazily on first write so that constructing the
    backend never touches a read-only filesystem.
    """

    kind = "local"

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = Path(base_dir).resolve()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _resolve(self, key: str) -> Path:
        target = (self._base_dir / key).resolve()
        if self._base_dir not in target.parents:
            raise StorageError(f"Key '{key}' escapes the output directory")
        target.parent.mkdir(parents=True, exist_ok=True)
        return target

    def put_bytes(self, key: str, data: bytes, content_type: Optional[str] = None) -> StorageObject:
        target = self._resolve(key)
        target.write_bytes(data)
        return StorageObject(
            key=key,
            size=len(data),
            checksum=hashlib.sha256(data).hexdigest(),
            content_type=content_type,
            location=str(target),
        )

    def describe(self) -> str:
        return f"local:{self._base_dir}"
