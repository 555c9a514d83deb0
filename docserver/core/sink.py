"""Decide where rendered bytes go and deliver them there."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from fastapi.concurrency import run_in_threadpool

from docserver.adapters.storage import (
    LocalStorageBackend,
    StorageBackend,
    StorageError,
    UploadUrlBackend,
)

from . import config
from .environment import EnvironmentProfile
from .errors import LocalPersistError, PipelineError, UploadError, UploadTargetRequiredError
from .models import StorageLocator

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass
class SinkPlan:
    """Strategies legal for one request. ``None`` means the strategy is skipped."""

    local: Optional[StorageBackend] = None
    remote: Optional[StorageBackend] = None

    def describe(self) -> dict:
        return {
            "local": self.local.describe() if self.local else None,
            "remote": self.remote.describe() if self.remote else None,
        }


def _default_upload_backend(upload_target: str) -> StorageBackend:
    return UploadUrlBackend(
        upload_target,
        method=config.PDF_UPLOAD_METHOD,
        timeout=config.PDF_UPLOAD_TIMEOUT_SECONDS,
    )


class ArtifactSink:
    """Persist PDF bytes to local disk and/or a pre-authorized upload target.

    Policy:

    * read-only runtime: remote only, and an upload target is mandatory;
    * interactive runtime: local always, remote when a target was supplied.

    A remote failure is always fatal. A local failure is tolerated when the
    remote upload succeeds, and fatal when it was the only strategy.
    """

    def __init__(
        self,
        *,
        output_dir: Optional[Path] = None,
        upload_backend_factory: Callable[[str], StorageBackend] = _default_upload_backend,
    ) -> None:
        self.output_dir = Path(output_dir) if output_dir else config.PDF_OUTPUT_DIR
        self._upload_backend_factory = upload_backend_factory

    def plan(self, profile: EnvironmentProfile, upload_target: Optional[str] = None) -> SinkPlan:
        if profile.read_only:
            if not upload_target:
                raise UploadTargetRequiredError(
                    "uploadUrl is required in a serverless environment. "
                    "Cannot save files to a read-only filesystem."
                )
            return SinkPlan(remote=self._upload_backend_factory(upload_target))

        remote = self._upload_backend_factory(upload_target) if upload_target else None
        return SinkPlan(local=LocalStorageBackend(self.output_dir), remote=remote)

    async def persist(
        self,
        data: bytes,
        filename: str,
        profile: EnvironmentProfile,
        upload_target: Optional[str] = None,
    ) -> List[StorageLocator]:
        plan = self.plan(profile, upload_target)
        locators: List[StorageLocator] = []
        local_error: Optional[LocalPersistError] = None

        if plan.local is not None:
            try:
                stored = await run_in_threadpool(plan.local.put_bytes, filename, data, PDF_CONTENT_TYPE)
            except (OSError, StorageError) as exc:
                local_error = LocalPersistError(f"Failed to save PDF locally: {exc}")
                logger.warning("%s", local_error.message)
            else:
                logger.info("PDF saved to: %s", stored.location)
                locators.append(StorageLocator.local(stored.location or filename))

        if plan.remote is not None:
            logger.info("Uploading %s to %s", filename, plan.remote.describe())
            try:
                stored = await run_in_threadpool(plan.remote.put_bytes, filename, data, PDF_CONTENT_TYPE)
            except StorageError as exc:
                raise UploadError(f"PDF generated but upload failed: {exc}") from exc
            logger.info("PDF uploaded to storage: %s", stored.key)
            locators.append(StorageLocator.remote(stored.key))

        if not locators:
            if local_error is not None:
                raise local_error
            raise PipelineError("No storage strategy produced a locator")
        return locators


__all__ = ["ArtifactSink", "SinkPlan", "PDF_CONTENT_TYPE"]
