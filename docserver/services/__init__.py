"""Application service helpers."""

from .document_client import DocumentClientError, DocumentPdfClient, DocumentPdfResult

__all__ = [
    "DocumentClientError",
    "DocumentPdfClient",
    "DocumentPdfResult",
]
