"""Pydantic v2 response models for the vulnsync web API."""

from __future__ import annotations

from pydantic import BaseModel


class UpdaterStatus(BaseModel):
    updater: str
    fingerprint: str | None
    fingerprint_updated_at: str | None
    record_count: int
    last_status: str | None
    last_run_at: str | None
    last_error: str | None


class UpdaterListResponse(BaseModel):
    updaters: list[UpdaterStatus]
