"""Client for triggering PDF generation on a running document service.

Mirrors what the document database's scheduled action does after it has issued
an upload URL: call the PDF endpoint, then record the returned storage id
against the quote or invoice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from docserver.core.models import DocumentKind

logger = logging.getLogger(__name__)


class DocumentClientError(RuntimeError):
    """Raised when the PDF service answers with a failure."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


@dataclass
class DocumentPdfResult:
    filename: str
    url: str
    filepath: Optional[str] = None
    storage_id: Optional[str] = None
    message: Optional[str] = None


class DocumentPdfClient:
    """Thin httpx wrapper around ``GET /api/documents/{id}/pdf``."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 120.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not base_url:
            raise DocumentClientError("Document service base URL is not configured")
        self._client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "DocumentPdfClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def request_pdf(
        self,
        kind: DocumentKind | str,
        document_id: str,
        *,
        upload_url: Optional[str] = None,
        url: Optional[str] = None,
    ) -> DocumentPdfResult:
        doc_kind = DocumentKind(kind)
        params = {"type": doc_kind.value}
        if upload_url:
            params["uploadUrl"] = upload_url
        if url:
            params["url"] = url

        try:
            response = self._client.get(f"/api/documents/{quote(document_id, safe='')}/pdf", params=params)
        except httpx.HTTPError as exc:
            raise DocumentClientError(f"Failed to reach document service: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code >= 400 or not body.get("success"):
            detail = body.get("message") or body.get("error") or response.reason_phrase
            raise DocumentClientError(
                f"Failed to generate PDF for {doc_kind.value} {document_id}: {detail}",
                status_code=response.status_code,
                payload=body,
            )

        logger.info("Generated %s for %s %s", body.get("filename"), doc_kind.value, document_id)
        return DocumentPdfResult(
            filename=body["filename"],
            url=body.get("url", ""),
            filepath=body.get("filepath"),
            storage_id=body.get("storageId"),
            message=body.get("message"),
        )
