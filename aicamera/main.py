"""
FastAPI application entrypoint for the AI camera service.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from aicamera.api.routes import router as api_router
from aicamera.core.config import get_settings
from aicamera.core.logging import configure_logging
from aicamera.dependencies import get_orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Resume in-flight generation jobs on startup and stop all work on shutdown."""
    resolve = app.dependency_overrides.get(get_orchestrator, get_orchestrator)
    orchestrator = resolve()
    await orchestrator.start()
    try:
        yield
    finally:
        await orchestrator.shutdown()


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="AI Camera Orchestrator",
        version="0.1.0",
        description="Live scene inspiration and AI generation for camera clients.",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
