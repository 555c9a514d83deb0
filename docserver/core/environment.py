"""Execution environment classification."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional

_LAMBDA_MARKERS = ("AWS_LAMBDA_FUNCTION_NAME", "AWS_EXECUTION_ENV", "LAMBDA_TASK_ROOT")


class RuntimeKind(str, Enum):
    INTERACTIVE_LOCAL = "interactive-local"
    SERVERLESS_READONLY = "serverless-readonly"


@dataclass(frozen=True)
class EnvironmentProfile:
    """Read-only view of where the current request is executing."""

    runtime: RuntimeKind
    platform: str
    is_vercel: bool = False
    is_production: bool = False

    @property
    def read_only(self) -> bool:
        return self.runtime is RuntimeKind.SERVERLESS_READONLY

    def to_dict(self) -> Dict[str, object]:
        return {
            "runtime": self.runtime.value,
            "platform": self.platform,
            "isVercel": self.is_vercel,
            "isProduction": self.is_production,
            "readOnly": self.read_only,
        }


def _flag(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def detect_environment(
    environ: Optional[Mapping[str, str]] = None,
    platform: Optional[str] = None,
) -> EnvironmentProfile:
    """Classify the current process.

    Called once per request: pooled serverless workers may see a different
    environment between invocations, so the result is never cached.
    """

    env = os.environ if environ is None else environ
    os_family = platform or sys.platform

    is_vercel = _flag(env.get("VERCEL"))
    app_env = (env.get("APP_ENV") or env.get("NODE_ENV") or "").strip().lower()
    is_production = app_env == "production"

    forced = (env.get("PDF_RUNTIME") or "").strip().lower()
    if forced == "serverless":
        runtime = RuntimeKind.SERVERLESS_READONLY
    elif forced == "local":
        runtime = RuntimeKind.INTERACTIVE_LOCAL
    elif (
        is_vercel
        or any(_flag(env.get(marker)) for marker in _LAMBDA_MARKERS)
        or (is_production and os_family.startswith("linux"))
    ):
        runtime = RuntimeKind.SERVERLESS_READONLY
    else:
        runtime = RuntimeKind.INTERACTIVE_LOCAL

    return EnvironmentProfile(
        runtime=runtime,
        platform=os_family,
        is_vercel=is_vercel,
        is_production=is_production,
    )


__all__ = ["EnvironmentProfile", "RuntimeKind", "detect_environment"]
