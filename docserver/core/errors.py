"""Error taxonomy for the PDF rendering pipeline.

Every stage failure is a :class:`PipelineError`. The orchestrator never lets
anything else escape; the HTTP layer maps ``status_code`` and ``label`` onto the
response payload.
"""

from __future__ import annotations

from typing import Optional, Sequence


class PipelineError(RuntimeError):
    """Base class for classified pipeline failures."""

    stage = "pipeline"
    status_code = 500
    label = "Failed to generate PDF"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PipelineError):
    """Raised when request parameters are missing or malformed."""

    stage = "validation"
    status_code = 400

    def __init__(self, message: str, *, label: Optional[str] = None) -> None:
        super().__init__(message)
        self.label = label or message


class UploadTargetRequiredError(ValidationError):
    """A read-only runtime was asked to render without an upload target.

    The request itself is well formed; the environment cannot honour it, so the
    failure is reported as a server error.
    """

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message, label="Upload target required")


class ProvisioningError(PipelineError):
    """Raised when no browser could be resolved or launched."""

    stage = "provisioning"

    def __init__(
        self,
        message: str,
        *,
        strategy: str,
        searched_paths: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.strategy = strategy
        self.searched_paths = list(searched_paths)


class RenderError(PipelineError):
    """Raised when navigation or PDF capture fails."""

    stage = "rendering"

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class UploadError(PipelineError):
    """Raised when the remote transfer fails. Always fatal."""

    stage = "persisting"


class LocalPersistError(PipelineError):
    """Raised when writing to local disk fails.

    Non-fatal while a remote locator is still achievable.
    """

    stage = "persisting"


__all__ = [
    "PipelineError",
    "ValidationError",
    "UploadTargetRequiredError",
    "ProvisioningError",
    "RenderError",
    "UploadError",
    "LocalPersistError",
]
