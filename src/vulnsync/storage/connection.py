"""SQLite connections shared by the vulnerability store, the locker and the web API."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Generator


@contextmanager
def get_connection(
    database_path: str, timeout: float = 5.0
) -> Generator[sqlite3.Connection, None, None]:
    """Open a WAL-mode connection to the vulnerability database.

    ``timeout`` is how long to wait on another process's write lock.
    A block that exits cleanly is one committed transaction; an exception
    rolls it back so no partial feed update is ever visible.
    """
    conn = sqlite3.connect(database_path, timeout=timeout)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
