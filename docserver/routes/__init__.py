"""API routers for the FastAPI backend."""

from .documents import router as documents_router
from .system import router as system_router

__all__ = [
    "documents_router",
    "system_router",
]
