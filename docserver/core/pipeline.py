"""Pipeline orchestrator: request in, delivered PDF (or classified failure) out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from . import config
from .browser import BrowserProvisioner
from .environment import EnvironmentProfile, detect_environment
from .errors import (
    PipelineError,
    ProvisioningError,
    RenderError,
    UploadError,
)
from .models import RenderedArtifact, RenderRequest, build_filename
from .renderer import PageRenderer
from .sink import ArtifactSink

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    PROVISIONING = "provisioning"
    RENDERING = "rendering"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


# Unexpected exceptions are classified by the stage they escaped from.
_STAGE_ERRORS = {
    PipelineState.PROVISIONING: ProvisioningError,
    PipelineState.RENDERING: RenderError,
    PipelineState.PERSISTING: UploadError,
}


@dataclass
class PipelineResult:
    request: RenderRequest
    profile: EnvironmentProfile
    source_url: str
    state: PipelineState = PipelineState.IDLE
    artifact: Optional[RenderedArtifact] = None
    error: Optional[PipelineError] = None
    transitions: List[PipelineState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.DONE


def resolve_base_url(profile: EnvironmentProfile, override: Optional[str] = None) -> str:
    if override:
        return override.rstrip("/")
    if config.PUBLIC_BASE_URL:
        return config.PUBLIC_BASE_URL
    return config.PRODUCTION_BASE_URL if profile.read_only else config.LOCAL_BASE_URL


def _classify(state: PipelineState, exc: Exception) -> PipelineError:
    if state is PipelineState.PROVISIONING:
        return ProvisioningError(f"Unexpected provisioning failure: {exc}", strategy="unknown")
    error_cls = _STAGE_ERRORS.get(state, PipelineError)
    return error_cls(f"Unexpected {state.value} failure: {exc}")


class DocumentPipeline:
    """Provision → render → persist, with the browser released on every path."""

    def __init__(
        self,
        *,
        provisioner: Optional[BrowserProvisioner] = None,
        renderer: Optional[PageRenderer] = None,
        sink: Optional[ArtifactSink] = None,
        base_url: Optional[str] = None,
        environment_detector: Callable[[], EnvironmentProfile] = detect_environment,
    ) -> None:
        self.provisioner = provisioner or BrowserProvisioner()
        self.renderer = renderer or PageRenderer()
        self.sink = sink or ArtifactSink()
        self.base_url = base_url
        self._detect_environment = environment_detector

    def source_url_for(self, request: RenderRequest, profile: EnvironmentProfile) -> str:
        if request.source_url:
            return request.source_url
        return resolve_base_url(profile, self.base_url) + request.default_source_path()

    async def run(
        self,
        request: RenderRequest,
        profile: Optional[EnvironmentProfile] = None,
    ) -> PipelineResult:
        """Execute one request. Pipeline errors are returned, not raised."""

        profile = profile or self._detect_environment()
        result = PipelineResult(
            request=request,
            profile=profile,
            source_url=self.source_url_for(request, profile),
        )

        def _enter(state: PipelineState) -> None:
            result.state = state
            result.transitions.append(state)

        _enter(PipelineState.IDLE)
        logger.info("Generating PDF for: %s (%s)", result.source_url, profile.runtime.value)

        try:
            # Fails fast on a read-only runtime without an upload target.
            self.sink.plan(profile, request.upload_target)

            _enter(PipelineState.PROVISIONING)
            async with self.provisioner.session(profile) as handle:
                _enter(PipelineState.RENDERING)
                pdf = await self.renderer.render(handle, result.source_url)

                _enter(PipelineState.PERSISTING)
                filename = build_filename(request.document_kind, request.document_id)
                locators = await self.sink.persist(pdf, filename, profile, request.upload_target)

            result.artifact = RenderedArtifact(
                content=pdf,
                filename=filename,
                source_url=result.source_url,
                locators=locators,
            )
            _enter(PipelineState.DONE)
        except PipelineError as exc:
            logger.error("PDF pipeline failed during %s: %s", result.state.value, exc.message)
            result.error = exc
            _enter(PipelineState.FAILED)
        except Exception as exc:
            logger.exception("Unexpected error during %s", result.state.value)
            error = _classify(result.state, exc)
            error.__cause__ = exc
            result.error = error
            _enter(PipelineState.FAILED)

        return result


__all__ = ["DocumentPipeline", "PipelineResult", "PipelineState", "resolve_base_url"]
