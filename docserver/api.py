"""FastAPI application factory and global middleware registration."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from docserver.core.config import (
    CORS_ALLOW_CREDENTIALS,
    CORS_ALLOW_ORIGINS,
    LOG_LEVEL,
)

from .routes import documents_router, system_router

# Basic logging config (stdout) if not already configured by the host.
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

logger = logging.getLogger("docserver.api")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Document PDF Service",
        version="0.1.0",
        description="Renders quote and invoice preview pages to PDF and delivers them to storage.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_credentials=CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(documents_router)
    app.include_router(system_router)

    @app.middleware("http")
    async def error_logging_middleware(request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except Exception:
            logger.exception("Unhandled exception during request")
            raise

    @app.get("/health", tags=["system"])
    async def healthcheck() -> Dict[str, str]:
        """Simple healthcheck endpoint for orchestration probes."""

        return {"status": "ok"}

    return app


app = create_app()
