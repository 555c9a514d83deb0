"""Tests for the service client used by callers that own upload URLs."""

import httpx
import pytest

from docserver.services import DocumentClientError, DocumentPdfClient


def _client(handler):
    return DocumentPdfClient("https://docs.test/", transport=httpx.MockTransport(handler))


def test_request_pdf_returns_storage_id():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "success": True,
                "message": "PDF generated successfully",
                "filename": "invoice-I1-1700000000000-0a1b2c3d.pdf",
                "url": "https://sleads.nl/doc-preview/invoice/I1",
                "storageId": "kg0042",
            },
        )

    with _client(handler) as client:
        result = client.request_pdf("invoice", "I1", upload_url="https://storage.test/upload?token=t")

    assert result.storage_id == "kg0042"
    assert result.filepath is None
    request = seen[0]
    assert request.url.path == "/api/documents/I1/pdf"
    assert request.url.params["type"] == "invoice"
    assert request.url.params["uploadUrl"] == "https://storage.test/upload?token=t"


def test_request_pdf_raises_with_payload():
    payload = {
        "error": "Failed to generate PDF",
        "message": "Chrome not found",
        "platform": "linux",
        "isVercel": False,
        "isProduction": False,
    }

    with _client(lambda request: httpx.Response(500, json=payload)) as client:
        with pytest.raises(DocumentClientError) as excinfo:
            client.request_pdf("quote", "Q1")

    assert excinfo.value.status_code == 500
    assert excinfo.value.payload == payload
    assert "Chrome not found" in str(excinfo.value)


def test_request_pdf_non_json_failure():
    with _client(lambda request: httpx.Response(502, text="Bad Gateway")) as client:
        with pytest.raises(DocumentClientError) as excinfo:
            client.request_pdf("quote", "Q1")

    assert excinfo.value.status_code == 502


def test_request_pdf_unreachable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with _client(handler) as client:
        with pytest.raises(DocumentClientError):
            client.request_pdf("quote", "Q1")


def test_request_pdf_rejects_unknown_kind():
    with _client(lambda request: httpx.Response(200)) as client:
        with pytest.raises(ValueError):
            client.request_pdf("receipt", "Q1")


def test_client_requires_base_url():
    with pytest.raises(DocumentClientError):
        DocumentPdfClient("")
