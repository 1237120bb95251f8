"""Database access for the status API, which never writes."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Generator


@contextmanager
def get_readonly_connection(database_path: str) -> Generator[sqlite3.Connection, None, None]:
    """Open the vulnerability database for reading only.

    The status endpoints only report fingerprints and run history, so the
    connection is opened with ``mode=ro`` and ``query_only`` and cannot
    disturb an update cycle in progress.
    """
    conn = sqlite3.connect(f"file:{database_path}?mode=ro", uri=True)
    conn.execute("PRAGMA query_only=ON")
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
