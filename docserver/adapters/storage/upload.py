"""Upload to a pre-authorized storage URL."""

from __future__ import annotations

import hashlib
from typing import Optional
from urllib.parse import urlparse

import httpx

from .base import StorageBackend, StorageError, StorageObject


class UploadUrlBackend(StorageBackend):
    """Send bytes in one request to a URL issued by the storage service.

    The service answers with ``{"storageId": "..."}``; that identifier becomes
    the object's key. Each upload URL accepts a single transfer, so a backend
    instance is bound to exactly one target.
    """

    kind = "remote"

    def __init__(
        self,
        upload_url: str,
        *,
        method: str = "POST",
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not upload_url:
            raise StorageError("Upload URL is not configured")
        self._upload_url = upload_url
        self._method = method.upper()
        self._timeout = timeout
        self._transport = transport

    def put_bytes(self, key: str, data: bytes, content_type: Optional[str] = None) -> StorageObject:
        headers = {"content-type": content_type} if content_type else None
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.request(self._method, self._upload_url, content=data, headers=headers)
        except httpx.HTTPError as exc:
            raise StorageError(f"Failed to upload '{key}': {exc}") from exc

        if response.status_code >= 400:
            raise StorageError(
                f"Failed to upload '{key}': {response.status_code} {response.reason_phrase}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise StorageError(f"Upload of '{key}' returned a non-JSON response") from exc

        storage_id = body.get("storageId") if isinstance(body, dict) else None
        if not storage_id:
            raise StorageError(f"Upload of '{key}' did not return a storageId")

        return StorageObject(
            key=str(storage_id),
            size=len(data),
            checksum=hashlib.sha256(data).hexdigest(),
            content_type=content_type,
            location=str(storage_id),
        )

    def describe(self) -> str:
        parsed = urlparse(self._upload_url)
        # Upload URLs embed a one-time token in the query string.
        return f"remote:{parsed.scheme}://{parsed.netloc}{parsed.path}"
