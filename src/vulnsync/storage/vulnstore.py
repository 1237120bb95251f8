"""Persistence for vulnerability records and updater fingerprints."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from datetime import datetime, timezone

from vulnsync.driver.updater import NO_FINGERPRINT, Fingerprint
from vulnsync.driver.vulnerability import Vulnerability
from vulnsync.storage.connection import get_connection

logger = logging.getLogger(__name__)


class VulnStore:
    """Stores records and the fingerprint they were fetched under.

    Records are deduplicated on ``Vulnerability.record_hash()``; storing the
    same record twice is a no-op.
    """

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path

    def get_fingerprint(self, updater: str) -> Fingerprint:
        """Return the last persisted fingerprint, or NO_FINGERPRINT."""
        with get_connection(self._database_path) as conn:
            row = conn.execute(
                "SELECT fingerprint FROM updater_state WHERE updater = ?",
                (updater,),
            ).fetchone()
        if row is None:
            return NO_FINGERPRINT
        return Fingerprint(row["fingerprint"])

    def update(
        self, updater: str, fingerprint: Fingerprint, vulns: Iterable[Vulnerability]
    ) -> tuple[int, int]:
        """Insert records and advance the fingerprint in one transaction.

        Returns (inserted, duplicates).
        """
        now = datetime.now(timezone.utc).isoformat()
        with get_connection(self._database_path) as conn:
            inserted, duplicates = _insert_vulns(conn, vulns, now)
            conn.execute(
                "INSERT INTO updater_state (updater, fingerprint, updated_at) "
                "VALUES (?, ?, ?) "
                "ON CONFLICT(updater) DO UPDATE SET "
                "fingerprint = excluded.fingerprint, updated_at = excluded.updated_at",
                (updater, fingerprint, now),
            )
        logger.info(
            "Stored %d new, %d duplicate records for %s (fingerprint %s)",
            inserted, duplicates, updater, fingerprint,
        )
        return inserted, duplicates

    def add(self, updater: str, vulns: Iterable[Vulnerability]) -> tuple[int, int]:
        """Insert records without touching the stored fingerprint."""
        now = datetime.now(timezone.utc).isoformat()
        with get_connection(self._database_path) as conn:
            inserted, duplicates = _insert_vulns(conn, vulns, now)
        logger.info("Stored %d new, %d duplicate records for %s", inserted, duplicates, updater)
        return inserted, duplicates

    def count(self, updater: str) -> int:
        with get_connection(self._database_path) as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM vulnerabilities WHERE updater = ?",
                (updater,),
            ).fetchone()
        return row["n"]


def _insert_vulns(
    conn: sqlite3.Connection, vulns: Iterable[Vulnerability], now: str
) -> tuple[int, int]:
    inserted = 0
    duplicates = 0
    for v in vulns:
        dist = v.dist
        cur = conn.execute(
            "INSERT OR IGNORE INTO vulnerabilities "
            "(updater, name, description, issued, links, severity, "
            "normalized_severity, dist_did, dist_name, dist_version_id, "
            "package_name, package_kind, fixed_in_version, ingested_at, record_hash) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                v.updater,
                v.name,
                v.description,
                v.issued.isoformat(),
                v.links,
                v.severity,
                v.normalized_severity.value,
                dist.did if dist else None,
                dist.name if dist else None,
                dist.version_id if dist else None,
                v.package.name,
                v.package.kind,
                v.fixed_in_version,
                now,
                v.record_hash(),
            ),
        )
        if cur.rowcount == 1:
            inserted += 1
        else:
            duplicates += 1
    return inserted, duplicates
