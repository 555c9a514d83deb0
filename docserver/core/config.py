"""Configuration management for the document PDF service."""

import os
import tempfile
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project paths (two levels up from docserver/core/ -> repository root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _resolve_path(env_name: str, default: Path) -> Path:
    value = os.getenv(env_name)
    if value:
        return Path(value).expanduser().resolve()
    return default.resolve()


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return []
    values = []
    for item in raw.split(","):
        cleaned = item.strip()
        if cleaned:
            values.append(cleaned)
    # Preserve order while removing duplicates
    seen = set()
    unique: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_choice(name: str, default: str, allowed: Tuple[str, ...]) -> str:
    value = os.getenv(name, default)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized not in allowed:
        return default
    return normalized


# Page source: the web app serving printable doc-preview pages
PUBLIC_BASE_URL = (os.getenv("PUBLIC_BASE_URL") or "").rstrip("/") or None
PRODUCTION_BASE_URL = "https://sleads.nl"
LOCAL_BASE_URL = "http://localhost:3000"

# Serverless Chromium pack (pinned; brotli-compressed members inside a tar)
CHROMIUM_PACK_URL = os.getenv(
    "CHROMIUM_PACK_URL",
    "https://github.com/Sparticuz/chromium/releases/download/v121.0.0/chromium-v121.0.0-pack.tar",
)
CHROMIUM_CACHE_DIR = _resolve_path("CHROMIUM_CACHE_DIR", Path(tempfile.gettempdir()) / "chromium")
CHROMIUM_FETCH_TIMEOUT_SECONDS = float(os.getenv("CHROMIUM_FETCH_TIMEOUT_SECONDS", "120"))
CHROME_EXECUTABLE_PATH = os.getenv("CHROME_EXECUTABLE_PATH") or None

# Rendering
PDF_NAVIGATION_TIMEOUT_MS = int(os.getenv("PDF_NAVIGATION_TIMEOUT_MS", "30000"))
# Fixed wait after network quiescence for client-side content to paint.
PDF_RENDER_GRACE_MS = int(os.getenv("PDF_RENDER_GRACE_MS", "5000"))
PDF_VIEWPORT_WIDTH = int(os.getenv("PDF_VIEWPORT_WIDTH", "1920"))
PDF_VIEWPORT_HEIGHT = int(os.getenv("PDF_VIEWPORT_HEIGHT", "1080"))

# Delivery
PDF_OUTPUT_DIR = _resolve_path("PDF_OUTPUT_DIR", PROJECT_ROOT / "pdfs")
PDF_UPLOAD_METHOD = _env_choice("PDF_UPLOAD_METHOD", "post", ("post", "put"))
PDF_UPLOAD_TIMEOUT_SECONDS = float(os.getenv("PDF_UPLOAD_TIMEOUT_SECONDS", "60"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()


_default_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
CORS_ALLOW_ORIGINS = _env_list("CORS_ALLOW_ORIGINS") or _default_cors_origins
CORS_ALLOW_CREDENTIALS = _env_flag("CORS_ALLOW_CREDENTIALS", "true")
