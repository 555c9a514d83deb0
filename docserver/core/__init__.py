"""Document rendering and delivery pipeline."""

from .environment import EnvironmentProfile, RuntimeKind, detect_environment
from .errors import (
    LocalPersistError,
    PipelineError,
    ProvisioningError,
    RenderError,
    UploadError,
    UploadTargetRequiredError,
    ValidationError,
)
from .models import DocumentKind, RenderedArtifact, RenderRequest, StorageLocator
from .pipeline import DocumentPipeline, PipelineResult, PipelineState

__all__ = [
    "EnvironmentProfile",
    "RuntimeKind",
    "detect_environment",
    "PipelineError",
    "ValidationError",
    "UploadTargetRequiredError",
    "ProvisioningError",
    "RenderError",
    "UploadError",
    "LocalPersistError",
    "DocumentKind",
    "RenderRequest",
    "RenderedArtifact",
    "StorageLocator",
    "DocumentPipeline",
    "PipelineResult",
    "PipelineState",
]
