"""System and diagnostics endpoints."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, status

from docserver.core import config
from docserver.core.browser import LocalBrowserStrategy, ServerlessBrowserStrategy, select_browser_strategy
from docserver.core.environment import EnvironmentProfile
from docserver.core.pipeline import DocumentPipeline, resolve_base_url
from docserver.core.errors import ProvisioningError, ValidationError

from ..dependencies import get_environment, get_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/status", status_code=status.HTTP_204_NO_CONTENT)
async def noop() -> None:
    """Simple smoke endpoint that can be used by load balancers."""
    return None


@router.get("/environment")
async def environment_report(
    profile: EnvironmentProfile = Depends(get_environment),
    pipeline: DocumentPipeline = Depends(get_pipeline),
) -> Dict[str, object]:
    """Report how a PDF request would be handled right now."""

    info: Dict[str, object] = {"profile": profile.to_dict()}

    strategy = select_browser_strategy(profile)
    browser: Dict[str, object] = {"strategy": strategy.name}
    if isinstance(strategy, LocalBrowserStrategy):
        candidates = strategy.candidate_paths()
        browser["searchedPaths"] = candidates
        try:
            browser["executable"] = str(strategy.resolve_executable())
            browser["status"] = "ok"
        except ProvisioningError as exc:
            browser["status"] = "error"
            browser["detail"] = str(exc)
    elif isinstance(strategy, ServerlessBrowserStrategy):
        browser["packUrl"] = strategy.pack_url
        browser["cacheDir"] = str(strategy.cache_dir)
        browser["materialized"] = strategy.is_materialized()
    info["browser"] = browser

    try:
        info["sinks"] = pipeline.sink.plan(profile).describe()
    except ValidationError as exc:
        info["sinks"] = {"local": None, "remote": None, "detail": exc.message}

    info["rendering"] = {
        "baseUrl": resolve_base_url(profile, pipeline.base_url),
        "navigationTimeoutMs": pipeline.renderer.timeout_ms,
        "graceDelayMs": pipeline.renderer.grace_delay_ms,
    }
    info["upload"] = {"method": config.PDF_UPLOAD_METHOD.upper()}
    return info
