"""Application entry point: runs the update scheduler + web server in one process."""

from __future__ import annotations

import json
import logging
import sys
import threading
from contextlib import asynccontextmanager

import uvicorn
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vulnsync.config import Config, load_config
from vulnsync.jobs import run_updates
from vulnsync.storage import init_db
from vulnsync.web.app import create_app

logger = logging.getLogger("vulnsync")


def _setup_logging(log_level: str, log_format: str) -> None:
    """Send every vulnsync log line to stderr as JSON or plain text per LOG_FORMAT."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps(
                {
                    "time": "%(asctime)s",
                    "level": "%(levelname)s",
                    "logger": "%(name)s",
                    "message": "%(message)s",
                }
            )
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def _build_scheduler(config: Config) -> BackgroundScheduler:
    """Create a BackgroundScheduler running the update cycle on an interval."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_updates,
        trigger=IntervalTrigger(minutes=config.update_interval_minutes),
        args=[config],
        id="updates",
        name="Vulnerability feed update cycle",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def main() -> None:
    """Load config, set up logging, and start scheduler + web server."""
    config = load_config()

    _setup_logging(config.log_level, config.log_format)

    logger.info(
        "vulnsync starting (env=%s, db=%s, updaters=%s)",
        config.app_env,
        config.database_path,
        config.updaters_config_path,
    )

    init_db(config.database_path)

    scheduler = _build_scheduler(config)

    def _initial_updates():
        """Run one update cycle at startup in a background thread."""
        logger.info("Running initial update cycle")
        try:
            run_updates(config)
        except Exception:
            logger.exception("Initial update cycle failed; scheduler will continue")

    @asynccontextmanager
    async def lifespan(app):
        logger.info("Scheduler starting")
        scheduler.start()
        # Web server is available while the first cycle runs
        threading.Thread(target=_initial_updates, daemon=True).start()
        yield
        logger.info("Scheduler shutting down")
        scheduler.shutdown(wait=False)

    app = create_app(config.database_path, lifespan=lifespan)

    uvicorn.run(app, host=config.web_host, port=config.web_port)


if __name__ == "__main__":
    main()
