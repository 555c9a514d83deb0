"""FastAPI dependencies common across routes."""

from __future__ import annotations

from functools import lru_cache

from .core.environment import EnvironmentProfile, detect_environment
from .core.pipeline import DocumentPipeline


@lru_cache(maxsize=1)
def _pipeline() -> DocumentPipeline:
    # Stateless between requests: every run gets its own browser process.
    return DocumentPipeline()


def get_pipeline() -> DocumentPipeline:
    return _pipeline()


def get_environment() -> EnvironmentProfile:
    # Recomputed per request.
    return detect_environment()
