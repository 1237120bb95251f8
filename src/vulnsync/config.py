"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Application configuration. All values sourced from environment variables."""

    # Required
    database_path: str

    # Optional: Updaters
    updaters_config_path: str = "./config/updaters.json"
    update_interval_minutes: int = 30
    update_timeout_seconds: float = 600.0
    http_timeout_seconds: float = 15.0
    persist_partial_parse: bool = False

    # Optional: Locking
    lock_stale_after_seconds: float = 0.0  # 0 disables stale lock reclaim

    # Optional: Web
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    # Optional: Application
    log_level: str = "INFO"
    log_format: str = "json"
    app_env: str = "production"


_REQUIRED_VARS = [
    "DATABASE_PATH",
]

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def load_config(env_path: str | Path | None = None) -> Config:
    """Load configuration from environment variables.

    Loads a .env file if present (for local development), then validates
    that all required variables are set. Raises ValueError listing any
    missing variables, or naming a malformed numeric value.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [var for var in _REQUIRED_VARS if not os.environ.get(var)]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    return Config(
        # Required
        database_path=os.environ["DATABASE_PATH"],
        # Optional: Updaters
        updaters_config_path=os.environ.get("UPDATERS_CONFIG_PATH", "./config/updaters.json"),
        update_interval_minutes=int(os.environ.get("UPDATE_INTERVAL_MINUTES", "30")),
        update_timeout_seconds=float(os.environ.get("UPDATE_TIMEOUT_SECONDS", "600")),
        http_timeout_seconds=float(os.environ.get("HTTP_TIMEOUT_SECONDS", "15")),
        persist_partial_parse=_env_bool("PERSIST_PARTIAL_PARSE", False),
        # Optional: Locking
        lock_stale_after_seconds=float(os.environ.get("LOCK_STALE_AFTER_SECONDS", "0")),
        # Optional: Web
        web_host=os.environ.get("WEB_HOST", "0.0.0.0"),
        web_port=int(os.environ.get("WEB_PORT", "8080")),
        # Optional: Application
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "json"),
        app_env=os.environ.get("APP_ENV", "production"),
    )
