"""Read-only queries backing the web API."""

from __future__ import annotations

from vulnsync.web.deps import get_readonly_connection

_UPDATER_STATUS_SQL = """\
WITH names AS (
    SELECT updater FROM updater_state
    UNION
    SELECT updater FROM update_runs
),
last_runs AS (
    SELECT updater, status, finished_at, error,
           ROW_NUMBER() OVER (PARTITION BY updater ORDER BY started_at DESC) AS rn
    FROM update_runs
)
SELECT n.updater,
       s.fingerprint,
       s.updated_at AS fingerprint_updated_at,
       (SELECT COUNT(*) FROM vulnerabilities v WHERE v.updater = n.updater) AS record_count,
       r.status AS last_status,
       r.finished_at AS last_run_at,
       r.error AS last_error
FROM names n
LEFT JOIN updater_state s ON s.updater = n.updater
LEFT JOIN last_runs r ON r.updater = n.updater AND r.rn = 1
ORDER BY n.updater
"""


def list_updater_status(database_path: str) -> list[dict]:
    """Current fingerprint, record count and latest run for every known updater."""
    with get_readonly_connection(database_path) as conn:
        rows = conn.execute(_UPDATER_STATUS_SQL).fetchall()
    return [dict(row) for row in rows]
