"""Tests for vulnsync.storage: schema, connection and the vulnerability store."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

import pytest

from vulnsync.driver.updater import NO_FINGERPRINT, Fingerprint
from vulnsync.driver.vulnerability import Distribution, Package, Severity, Vulnerability
from vulnsync.storage import VulnStore
from vulnsync.storage.connection import get_connection
from vulnsync.storage.schema import init_db

EXPECTED_TABLES = {"vulnerabilities", "updater_state", "update_runs", "distlocks"}

EXPECTED_INDEXES = {
    "idx_vulnerabilities_updater",
    "idx_vulnerabilities_name",
    "idx_vulnerabilities_package_name",
    "idx_update_runs_updater",
    "idx_update_runs_started_at",
}

UPDATER = "aws-linux2-updater"


@pytest.fixture()
def db_path(tmp_path):
    """Return a database path inside a temporary directory."""
    return str(tmp_path / "test.db")


@pytest.fixture()
def initialized_db(db_path):
    """Initialize the database and return the path."""
    init_db(db_path)
    return db_path


def _vuln(package: str = "curl", fixed: str = "7.79.1-12.amzn2", dist=True) -> Vulnerability:
    return Vulnerability(
        updater=UPDATER,
        name="ALAS-2023-1001",
        description="curl update",
        issued=datetime(2023, 1, 5, 18, 31, tzinfo=timezone.utc),
        links="https://example.com/a",
        severity="important",
        normalized_severity=Severity.HIGH,
        dist=Distribution("amzn", "Amazon Linux", "2", "2", "Amazon Linux 2") if dist else None,
        package=Package(name=package),
        fixed_in_version=fixed,
    )


# --- Table and index existence ---


def test_init_db_creates_all_tables(initialized_db):
    with get_connection(initialized_db) as conn:
        rows = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
        ).fetchall()
        table_names = {row["name"] for row in rows}
    assert EXPECTED_TABLES == table_names


def test_init_db_is_idempotent(db_path):
    init_db(db_path)
    init_db(db_path)  # Should not raise


def test_init_db_creates_indexes(initialized_db):
    with get_connection(initialized_db) as conn:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'").fetchall()
        index_names = {row["name"] for row in rows}
    assert EXPECTED_INDEXES == index_names


# --- Connection ---


def test_wal_mode_enabled(initialized_db):
    with get_connection(initialized_db) as conn:
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    assert mode == "wal"


def test_rollback_on_exception(initialized_db):
    with pytest.raises(RuntimeError):
        with get_connection(initialized_db) as conn:
            conn.execute(
                "INSERT INTO updater_state (updater, fingerprint, updated_at) VALUES (?, ?, ?)",
                (UPDATER, "abc", "2025-01-01T00:00:00Z"),
            )
            raise RuntimeError("boom")
    with get_connection(initialized_db) as conn:
        assert conn.execute("SELECT COUNT(*) FROM updater_state").fetchone()[0] == 0


# --- Constraints ---


def test_invalid_normalized_severity_rejected(initialized_db):
    with pytest.raises(sqlite3.IntegrityError):
        with get_connection(initialized_db) as conn:
            conn.execute(
                "INSERT INTO vulnerabilities (updater, name, description, issued, links, "
                "severity, normalized_severity, package_name, package_kind, "
                "fixed_in_version, ingested_at, record_hash) "
                "VALUES ('u', 'n', '', '', '', 'x', 'Severe', 'p', 'binary', '', '', 'h')"
            )


def test_invalid_run_status_rejected(initialized_db):
    with pytest.raises(sqlite3.IntegrityError):
        with get_connection(initialized_db) as conn:
            conn.execute(
                "INSERT INTO update_runs (id, updater, started_at, finished_at, status, result) "
                "VALUES ('r1', 'u', '', '', 'exploded', '{}')"
            )


# --- VulnStore ---


class TestVulnStore:
    def test_fingerprint_defaults_to_none_fetched(self, initialized_db):
        assert VulnStore(initialized_db).get_fingerprint(UPDATER) == NO_FINGERPRINT

    def test_update_stores_records_and_fingerprint(self, initialized_db):
        store = VulnStore(initialized_db)
        inserted, duplicates = store.update(
            UPDATER, Fingerprint("abc"), [_vuln("curl"), _vuln("libcurl")]
        )
        assert (inserted, duplicates) == (2, 0)
        assert store.get_fingerprint(UPDATER) == "abc"
        assert store.count(UPDATER) == 2

    def test_update_dedups(self, initialized_db):
        store = VulnStore(initialized_db)
        store.update(UPDATER, Fingerprint("abc"), [_vuln()])
        inserted, duplicates = store.update(UPDATER, Fingerprint("def"), [_vuln(), _vuln("libcurl")])
        assert (inserted, duplicates) == (1, 1)
        assert store.get_fingerprint(UPDATER) == "def"
        assert store.count(UPDATER) == 2

    def test_add_leaves_fingerprint(self, initialized_db):
        store = VulnStore(initialized_db)
        store.update(UPDATER, Fingerprint("abc"), [])
        store.add(UPDATER, [_vuln()])
        assert store.get_fingerprint(UPDATER) == "abc"
        assert store.count(UPDATER) == 1

    def test_record_without_dist(self, initialized_db):
        store = VulnStore(initialized_db)
        store.add(UPDATER, [_vuln(dist=False)])
        with get_connection(initialized_db) as conn:
            row = conn.execute("SELECT dist_did, normalized_severity, issued FROM vulnerabilities").fetchone()
        assert row["dist_did"] is None
        assert row["normalized_severity"] == "High"
        assert row["issued"] == "2023-01-05T18:31:00+00:00"

    def test_failed_update_keeps_previous_fingerprint(self, initialized_db):
        store = VulnStore(initialized_db)
        store.update(UPDATER, Fingerprint("abc"), [_vuln()])

        def _broken():
            yield _vuln("libcurl")
            raise RuntimeError("persistence interrupted")

        with pytest.raises(RuntimeError):
            store.update(UPDATER, Fingerprint("def"), _broken())
        assert store.get_fingerprint(UPDATER) == "abc"
        assert store.count(UPDATER) == 1
