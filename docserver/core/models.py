"""Value objects flowing through the PDF pipeline."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from urllib.parse import quote, urlparse

from .errors import ValidationError


class DocumentKind(str, Enum):
    QUOTE = "quote"
    INVOICE = "invoice"


def _require_http_url(value: str, param: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationError(f"Invalid {param}. Must be an absolute http(s) URL")
    return value


def _validate_document_id(document_id: Optional[str]) -> str:
    did = (document_id or "").strip()
    if not did:
        raise ValidationError("Document id cannot be empty")
    if any(sep in did for sep in ("/", "\\")):
        raise ValidationError("Document id must not contain path separators")
    if did in {".", ".."}:
        raise ValidationError("Document id cannot be '.' or '..'")
    return did


@dataclass(frozen=True)
class RenderRequest:
    document_kind: DocumentKind
    document_id: str
    source_url: Optional[str] = None
    upload_target: Optional[str] = None

    @classmethod
    def from_params(
        cls,
        document_id: Optional[str],
        kind: Optional[str],
        url: Optional[str] = None,
        upload_url: Optional[str] = None,
    ) -> "RenderRequest":
        """Build a request from raw query parameters, rejecting bad input."""

        try:
            document_kind = DocumentKind((kind or "").strip().lower())
        except ValueError:
            raise ValidationError("Invalid type. Must be 'quote' or 'invoice'") from None

        return cls(
            document_kind=document_kind,
            document_id=_validate_document_id(document_id),
            source_url=_require_http_url(url, "url") if url else None,
            upload_target=_require_http_url(upload_url, "uploadUrl") if upload_url else None,
        )

    def default_source_path(self) -> str:
        return f"/doc-preview/{self.document_kind.value}/{quote(self.document_id, safe='')}"


@dataclass(frozen=True)
class StorageLocator:
    kind: str
    path: Optional[str] = None
    storage_id: Optional[str] = None

    @classmethod
    def local(cls, path: str) -> "StorageLocator":
        return cls(kind="local", path=path)

    @classmethod
    def remote(cls, storage_id: str) -> "StorageLocator":
        return cls(kind="remote", storage_id=storage_id)


@dataclass
class RenderedArtifact:
    content: bytes
    filename: str
    source_url: str
    locators: List[StorageLocator] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def filepath(self) -> Optional[str]:
        return next((loc.path for loc in self.locators if loc.kind == "local"), None)

    @property
    def storage_id(self) -> Optional[str]:
        return next((loc.storage_id for loc in self.locators if loc.kind == "remote"), None)


def build_filename(kind: DocumentKind, document_id: str, timestamp_ms: Optional[int] = None) -> str:
    """Return ``{kind}-{id}-{epoch_ms}-{nonce}.pdf``.

    The random suffix keeps names distinct when two generations of the same
    document land in the same millisecond.
    """

    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    safe_id = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in document_id)
    return f"{kind.value}-{safe_id}-{stamp}-{secrets.token_hex(4)}.pdf"


__all__ = [
    "DocumentKind",
    "RenderRequest",
    "StorageLocator",
    "RenderedArtifact",
    "build_filename",
]
