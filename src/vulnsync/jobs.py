"""Update cycle: lock each feed, fetch, parse, persist, record the run."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

import vulnsync.updaters  # noqa: F401  registers the built-in updaters
from vulnsync.config import Config
from vulnsync.deadline import Deadline
from vulnsync.distlock.locker import Locker
from vulnsync.distlock.sqlite import SQLiteLocker
from vulnsync.driver.updater import Configurable, Unchanged, Updater, mapping_unmarshaler
from vulnsync.errors import ConfigurationError, ParseError, VulnSyncError
from vulnsync.storage.connection import get_connection
from vulnsync.storage.vulnstore import VulnStore
from vulnsync.updaters.registry import get_updater_class

logger = logging.getLogger(__name__)

_RESERVED_KEYS = frozenset({"type", "enabled", "config"})


@dataclass(frozen=True)
class UpdateOutcome:
    """What happened to one updater in one cycle."""

    updater: str
    status: str  # "updated", "unchanged", "locked" or "error"
    fingerprint: str = ""
    inserted: int = 0
    duplicates: int = 0
    error: str | None = None
    retryable: bool = False


def run_updater(
    updater: Updater,
    locker: Locker,
    database_path: str,
    deadline: Deadline | None = None,
    persist_partial: bool = False,
) -> UpdateOutcome:
    """Run one fetch/parse/persist cycle for ``updater``.

    Skips the cycle when another worker holds the updater's lock. The stored
    fingerprint only advances after a complete parse. On ParseError the
    partial records are kept when ``persist_partial`` is set, then the error
    is re-raised. Other VulnSyncErrors propagate unchanged.
    """
    name = updater.name
    if not locker.try_lock(name):
        logger.info("Updater %s is running elsewhere; skipping", name)
        return UpdateOutcome(updater=name, status="locked")

    try:
        store = VulnStore(database_path)
        prior = store.get_fingerprint(name)
        result = updater.fetch(prior, deadline)
        if isinstance(result, Unchanged):
            return UpdateOutcome(updater=name, status="unchanged", fingerprint=prior)

        try:
            vulns = updater.parse(result.contents, deadline)
        except ParseError as exc:
            if persist_partial and exc.partial:
                store.add(name, exc.partial)
                logger.warning(
                    "Updater %s: kept %d records parsed before the error",
                    name, len(exc.partial),
                )
            raise
        finally:
            result.close()

        inserted, duplicates = store.update(name, result.fingerprint, vulns)
        return UpdateOutcome(
            updater=name,
            status="updated",
            fingerprint=result.fingerprint,
            inserted=inserted,
            duplicates=duplicates,
        )
    finally:
        locker.unlock()


def load_updater_entries(path: str) -> list[dict]:
    """Read the ``updaters`` list from the updaters JSON file."""
    with open(path) as f:
        data = json.load(f)
    return data.get("updaters", [])


def build_updater(
    entry: dict, client: httpx.Client, deadline: Deadline | None = None
) -> Updater | None:
    """Instantiate and configure the updater an entry describes.

    Keys other than ``type``, ``enabled`` and ``config`` are passed to the
    updater's constructor; ``config`` is handed to ``configure``. Returns
    None for unknown types.
    """
    type_name = entry.get("type", "")
    cls = get_updater_class(type_name)
    if cls is None:
        logger.warning("Unknown updater type '%s', skipping", type_name)
        return None

    params = {k: v for k, v in entry.items() if k not in _RESERVED_KEYS}
    try:
        updater = cls(**params)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"cannot create '{type_name}' updater: {exc}") from exc

    if isinstance(updater, Configurable):
        updater.configure(mapping_unmarshaler(entry.get("config", {})), client, deadline)
    elif entry.get("config"):
        logger.warning("Updater %s is not configurable; ignoring its config", updater.name)
    return updater


def _record_run(database_path: str, outcome: UpdateOutcome, started_at: str) -> None:
    """Insert an update run record into the update_runs table."""
    finished_at = datetime.now(timezone.utc).isoformat()
    result = {
        "fingerprint": outcome.fingerprint,
        "inserted": outcome.inserted,
        "duplicates": outcome.duplicates,
        "retryable": outcome.retryable,
    }
    with get_connection(database_path) as conn:
        conn.execute(
            "INSERT INTO update_runs "
            "(id, updater, started_at, finished_at, status, result, error) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                str(uuid.uuid4()),
                outcome.updater,
                started_at,
                finished_at,
                outcome.status,
                json.dumps(result),
                outcome.error,
            ),
        )


def run_updates(config: Config) -> list[UpdateOutcome]:
    """Run every enabled updater once. One failing updater never stops the rest."""
    entries = load_updater_entries(config.updaters_config_path)
    stale_after = config.lock_stale_after_seconds or None
    outcomes: list[UpdateOutcome] = []

    with httpx.Client(timeout=config.http_timeout_seconds, follow_redirects=True) as client:
        for entry in entries:
            if not entry.get("enabled", True):
                continue
            started_at = datetime.now(timezone.utc).isoformat()
            deadline = Deadline(config.update_timeout_seconds)
            name = entry.get("type", "unknown")
            try:
                updater = build_updater(entry, client, deadline)
                if updater is None:
                    continue
                name = updater.name
                locker = SQLiteLocker(config.database_path, stale_after=stale_after)
                outcome = run_updater(
                    updater,
                    locker,
                    config.database_path,
                    deadline,
                    persist_partial=config.persist_partial_parse,
                )
            except VulnSyncError as exc:
                if exc.updater is None:
                    exc.updater = name
                if exc.retryable:
                    logger.warning("Updater %s failed, will retry next cycle: %s", name, exc)
                else:
                    logger.error("Updater %s failed: %s", name, exc)
                outcome = UpdateOutcome(
                    updater=name, status="error", error=str(exc), retryable=exc.retryable
                )
            except Exception:
                logger.exception("Updater %s failed unexpectedly", name)
                outcome = UpdateOutcome(
                    updater=name, status="error", error="unexpected error (see logs)"
                )
            _record_run(config.database_path, outcome, started_at)
            outcomes.append(outcome)

    counts: dict[str, int] = {}
    for outcome in outcomes:
        counts[outcome.status] = counts.get(outcome.status, 0) + 1
    logger.info("Update cycle complete: %s", counts or "no updaters")
    return outcomes
