"""Storage backend abstractions."""

from .base import StorageBackend, StorageError, StorageObject
from .local import LocalStorageBackend
from .upload import UploadUrlBackend

__all__ = [
    "StorageBackend",
    "StorageError",
    "StorageObject",
    "LocalStorageBackend",
    "UploadUrlBackend",
]
