"""PDF generation endpoint for quotes and invoices."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..core.environment import EnvironmentProfile
from ..core.errors import PipelineError, ValidationError
from ..core.models import RenderedArtifact, RenderRequest
from ..core.pipeline import DocumentPipeline
from ..dependencies import get_environment, get_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


class DocumentPdfResponse(BaseModel):
    success: bool = True
    message: str = "PDF generated successfully"
    filename: str
    url: str
    filepath: Optional[str] = None
    storageId: Optional[str] = None


class DocumentPdfError(BaseModel):
    error: str
    message: str
    platform: str
    isVercel: bool
    isProduction: bool


def failure_payload(error: PipelineError, profile: EnvironmentProfile) -> Dict[str, Any]:
    return DocumentPdfError(
        error=error.label,
        message=error.message,
        platform=profile.platform,
        isVercel=profile.is_vercel,
        isProduction=profile.is_production,
    ).model_dump()


def success_payload(artifact: RenderedArtifact) -> Dict[str, Any]:
    return DocumentPdfResponse(
        filename=artifact.filename,
        url=artifact.source_url,
        filepath=artifact.filepath,
        storageId=artifact.storage_id,
    ).model_dump(exclude_none=True)


def failure_response(error: PipelineError, profile: EnvironmentProfile) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=failure_payload(error, profile))


@router.get(
    "/{document_id}/pdf",
    response_model=DocumentPdfResponse,
    response_model_exclude_none=True,
    responses={400: {"model": DocumentPdfError}, 500: {"model": DocumentPdfError}},
)
async def generate_document_pdf(
    document_id: str,
    kind: Optional[str] = Query(None, alias="type"),
    url: Optional[str] = Query(None),
    upload_url: Optional[str] = Query(None, alias="uploadUrl"),
    pipeline: DocumentPipeline = Depends(get_pipeline),
    profile: EnvironmentProfile = Depends(get_environment),
):
    """Render the document's preview page to PDF and deliver it to storage."""

    try:
        request = RenderRequest.from_params(document_id, kind, url=url, upload_url=upload_url)
    except ValidationError as exc:
        logger.info("Rejected PDF request for %s: %s", document_id, exc.message)
        return failure_response(exc, profile)

    result = await pipeline.run(request, profile)
    if not result.ok or result.artifact is None:
        return failure_response(result.error or PipelineError("Unknown pipeline failure"), profile)

    return JSONResponse(status_code=200, content=success_payload(result.artifact))
