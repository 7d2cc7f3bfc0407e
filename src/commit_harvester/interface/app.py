"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from commit_harvester.infrastructure.config import Settings, get_settings
from commit_harvester.interface.dependencies import shutdown, startup
from commit_harvester.interface.error_handlers import register_error_handlers
from commit_harvester.interface.routes import router


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup / shutdown of shared resources."""
    await startup(app)
    try:
        yield
    finally:
        await shutdown(app)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and wire the FastAPI application."""
    app = FastAPI(
        title="Commit Harvester",
        version="1.0.0",
        description=(
            "Periodically collects projects, repositories, branches and commits "
            "from a code-hosting service and serves per-developer statistics."
        ),
        lifespan=_lifespan,
    )
    app.state.settings = settings or get_settings()

    register_error_handlers(app)
    app.include_router(router)

    # ── Health check (simple liveness probe) ────────────────────────────

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
