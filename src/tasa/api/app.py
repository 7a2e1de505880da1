"""FastAPI application factory."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from tasa.api.routes import cron, rates


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        FastAPI application with the cron and rates routers registered.
        Route handlers read their dependencies (ingestor, rate_store,
        history_file, settings) from app.state.
    """
    app = FastAPI(title="Tasa Exchange Rates", lifespan=lifespan)

    app.state.ingestor = None
    app.state.rate_store = None
    app.state.history_file = None
    app.state.settings = None

    @app.get("/health")
    async def health() -> dict:
        return {"ok": True}

    app.include_router(cron.router, prefix="/api/cron")
    app.include_router(rates.router, prefix="/api")

    return app
