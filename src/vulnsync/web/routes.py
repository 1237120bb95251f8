"""API route handlers for the vulnsync web API."""

from __future__ import annotations

import logging
import sqlite3

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from vulnsync.storage.connection import get_connection
from vulnsync.web.models import UpdaterListResponse, UpdaterStatus
from vulnsync.web.queries import list_updater_status

logger = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter()


@health_router.get("/health")
def health(request: Request) -> JSONResponse:
    """Check database connectivity and return health status."""
    database_path = request.app.state.database_path
    try:
        with get_connection(database_path) as conn:
            conn.execute("SELECT 1")
        return JSONResponse({"status": "healthy", "database": "ok"})
    except (sqlite3.Error, OSError) as exc:
        logger.warning("Health check failed: %s", exc)
        return JSONResponse(
            {"status": "unhealthy", "database": "error", "detail": str(exc)},
            status_code=503,
        )


@router.get("/updaters", response_model=UpdaterListResponse)
def updaters(request: Request) -> UpdaterListResponse:
    database_path = request.app.state.database_path
    rows = list_updater_status(database_path)
    return UpdaterListResponse(updaters=[UpdaterStatus(**row) for row in rows])
