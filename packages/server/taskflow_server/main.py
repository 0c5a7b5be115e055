"""
TaskFlow API Server

Entry point for the FastAPI application.
"""

from __future__ import annotations

from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskflow_server.api.v1 import router as api_v1_router
from taskflow_server.core.config import Settings, get_settings
from taskflow_server.core.errors import register_error_handlers
from taskflow_server.core.logging_setup import configure_logging
from taskflow_server.core.middleware import RequestContextMiddleware
from taskflow_server.core.persistence import build_store
from taskflow_server.services.tasks import TaskStore

log = structlog.get_logger()


def create_app(
    store: Optional[TaskStore] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``store`` is injected as-is when given (tests, embedding); otherwise one is
    built from ``settings``: snapshot file, demo seed, or empty.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="TaskFlow",
        description="Kanban task store with dense per-column ordering.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        debug=settings.debug,
    )
    app.state.store = store if store is not None else build_store(settings)

    # Middleware (last added runs outermost)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    register_error_handlers(app)

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        return {"status": "ready", "tasks": len(app.state.store)}

    log.info("taskflow.app_created", tasks=len(app.state.store), snapshot=settings.snapshot_path)
    return app


def run() -> None:
    """CLI entry point: serve the API with uvicorn.

    Equivalent to ``uvicorn --factory taskflow_server.main:create_app``.
    Importing this module builds no store.
    """
    settings = get_settings()
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    run()
