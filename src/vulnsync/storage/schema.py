"""Database schema definition and initialization."""

from __future__ import annotations

import logging

from vulnsync.storage.connection import get_connection

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
-- Normalized vulnerability records, one per (advisory, package)
CREATE TABLE IF NOT EXISTS vulnerabilities (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    updater             TEXT NOT NULL,
    name                TEXT NOT NULL,
    description         TEXT NOT NULL,
    issued              TEXT NOT NULL,
    links               TEXT NOT NULL,
    severity            TEXT NOT NULL,
    normalized_severity TEXT NOT NULL CHECK (normalized_severity IN (
                            'Unknown', 'Negligible', 'Low', 'Medium',
                            'High', 'Critical'
                        )),
    dist_did            TEXT,
    dist_name           TEXT,
    dist_version_id     TEXT,
    package_name        TEXT NOT NULL,
    package_kind        TEXT NOT NULL CHECK (package_kind IN ('binary', 'source')),
    fixed_in_version    TEXT NOT NULL,
    ingested_at         TEXT NOT NULL,
    record_hash         TEXT NOT NULL UNIQUE
);

-- Last persisted fingerprint per updater
CREATE TABLE IF NOT EXISTS updater_state (
    updater         TEXT PRIMARY KEY,
    fingerprint     TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

-- One row per updater invocation
CREATE TABLE IF NOT EXISTS update_runs (
    id              TEXT PRIMARY KEY,
    updater         TEXT NOT NULL,
    started_at      TEXT NOT NULL,
    finished_at     TEXT NOT NULL,
    status          TEXT NOT NULL CHECK (status IN (
                        'updated', 'unchanged', 'locked', 'error'
                    )),
    result          TEXT NOT NULL,   -- JSON
    error           TEXT
);

-- Distributed locks; a row exists while a key is held
CREATE TABLE IF NOT EXISTS distlocks (
    key             TEXT PRIMARY KEY,
    owner           TEXT NOT NULL,
    acquired_at     REAL NOT NULL    -- unix epoch seconds
);

-- Indexes: vulnerabilities
CREATE INDEX IF NOT EXISTS idx_vulnerabilities_updater ON vulnerabilities(updater);
CREATE INDEX IF NOT EXISTS idx_vulnerabilities_name ON vulnerabilities(name);
CREATE INDEX IF NOT EXISTS idx_vulnerabilities_package_name ON vulnerabilities(package_name);

-- Indexes: update_runs
CREATE INDEX IF NOT EXISTS idx_update_runs_updater ON update_runs(updater);
CREATE INDEX IF NOT EXISTS idx_update_runs_started_at ON update_runs(started_at);
"""


def init_db(database_path: str) -> None:
    """Create all tables and indexes if they do not already exist."""
    with get_connection(database_path) as conn:
        conn.executescript(_SCHEMA_SQL)
    logger.info("Database initialized at %s", database_path)
