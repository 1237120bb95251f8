"""FastAPI application factory for the vulnsync web API."""

from __future__ import annotations

from fastapi import FastAPI

from vulnsync.web.routes import health_router, router


def create_app(database_path: str, lifespan=None) -> FastAPI:
    """Build and return a configured FastAPI application."""
    app = FastAPI(title="vulnsync", docs_url="/api/docs", lifespan=lifespan)
    app.state.database_path = database_path
    app.include_router(health_router)
    app.include_router(router, prefix="/api/v1")
    return app
