"""Locker backed by a row in a shared SQLite database."""

from __future__ import annotations

import logging
import sqlite3
import time
import uuid

from vulnsync.deadline import Deadline
from vulnsync.distlock.locker import Locker
from vulnsync.errors import LockError, LockNotHeld, LockStateError
from vulnsync.storage.connection import get_connection

logger = logging.getLogger(__name__)

# Upper bound on waiting out another connection's write transaction
_MAX_BUSY_WAIT = 0.5


def _is_busy(exc: sqlite3.OperationalError) -> bool:
    msg = str(exc).lower()
    return "locked" in msg or "busy" in msg


class SQLiteLocker(Locker):
    """Distributed lock using the ``distlocks`` table.

    A key is held while a row with that key exists; the PRIMARY KEY makes
    acquisition a single atomic INSERT, visible to every process that opens
    the same database file.

    ``try_lock()`` returns False only when another handle owns the key. If
    the database stays write-locked by unrelated work for longer than a
    short busy wait, the outcome is unknown and it raises LockError.

    ``lock()`` polls every ``poll_interval`` seconds, waiting out both
    contention and a busy database. With no deadline it blocks until the
    key is granted; when the deadline expires or is cancelled it raises
    DeadlineExceeded and holds nothing.

    ``unlock()`` on a handle that holds nothing raises LockNotHeld.

    If ``stale_after`` is set, a grant older than that many seconds is
    treated as abandoned and taken over.
    """

    def __init__(
        self,
        database_path: str,
        poll_interval: float = 0.5,
        stale_after: float | None = None,
    ) -> None:
        self._database_path = database_path
        self._poll_interval = poll_interval
        self._stale_after = stale_after
        self._busy_wait = min(_MAX_BUSY_WAIT, poll_interval)
        self._owner = str(uuid.uuid4())
        self._key: str | None = None

    @property
    def held_key(self) -> str | None:
        return self._key

    def lock(self, key: str, deadline: Deadline | None = None) -> None:
        waited = False
        while True:
            if deadline is not None:
                deadline.check()
            if self._attempt(key):
                if waited:
                    logger.info("Acquired lock %s after waiting", key)
                return
            if not waited:
                logger.info("Lock %s is not available yet; waiting", key)
                waited = True
            if deadline is None:
                time.sleep(self._poll_interval)
            else:
                deadline.wait(self._poll_interval)

    def try_lock(self, key: str) -> bool:
        acquired = self._attempt(key)
        if acquired is None:
            raise LockError(f"lock database busy, cannot tell whether '{key}' is free")
        return acquired

    def _attempt(self, key: str) -> bool | None:
        """Try the INSERT once: True if granted, False if held, None if busy."""
        if self._key is not None and self._key != key:
            raise LockStateError(
                f"handle already holds lock '{self._key}', cannot take '{key}'"
            )
        now = time.time()
        try:
            with get_connection(self._database_path, timeout=self._busy_wait) as conn:
                if self._stale_after is not None:
                    cur = conn.execute(
                        "DELETE FROM distlocks WHERE key = ? AND acquired_at < ?",
                        (key, now - self._stale_after),
                    )
                    if cur.rowcount:
                        logger.warning("Reclaimed stale lock %s", key)
                conn.execute(
                    "INSERT INTO distlocks (key, owner, acquired_at) VALUES (?, ?, ?)",
                    (key, self._owner, now),
                )
        except sqlite3.IntegrityError:
            return False
        except sqlite3.OperationalError as exc:
            if _is_busy(exc):
                logger.debug("Lock database busy while acquiring %s", key)
                return None
            raise LockError(f"lock backend unavailable: {exc}") from exc
        except sqlite3.Error as exc:
            raise LockError(f"lock backend unavailable: {exc}") from exc
        self._key = key
        logger.debug("Acquired lock %s (owner %s)", key, self._owner)
        return True

    def unlock(self) -> None:
        if self._key is None:
            raise LockNotHeld("unlock called on a handle that holds no lock")
        key = self._key
        try:
            with get_connection(self._database_path) as conn:
                cur = conn.execute(
                    "DELETE FROM distlocks WHERE key = ? AND owner = ?",
                    (key, self._owner),
                )
        except sqlite3.Error as exc:
            raise LockError(f"failed to release lock '{key}': {exc}") from exc
        if cur.rowcount == 0:
            logger.warning("Lock %s was no longer held by this handle", key)
        self._key = None
        logger.debug("Released lock %s", key)
