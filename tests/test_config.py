"""Tests for vulnsync.config."""

import os

import pytest

from vulnsync.config import load_config

REQUIRED_ENV = {
    "DATABASE_PATH": "./test.db",
}

_OPTIONAL_VARS = (
    "UPDATERS_CONFIG_PATH", "UPDATE_INTERVAL_MINUTES", "UPDATE_TIMEOUT_SECONDS",
    "HTTP_TIMEOUT_SECONDS", "PERSIST_PARTIAL_PARSE", "LOCK_STALE_AFTER_SECONDS",
    "WEB_HOST", "WEB_PORT", "LOG_LEVEL", "LOG_FORMAT", "APP_ENV",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove all config-related env vars before each test."""
    for key in list(os.environ):
        if key in REQUIRED_ENV or key in _OPTIONAL_VARS:
            monkeypatch.delenv(key, raising=False)
    # Prevent .env file from re-setting variables during tests
    monkeypatch.setattr("vulnsync.config.load_dotenv", lambda *a, **kw: None)


def test_missing_required_vars_raises(monkeypatch):
    """load_config raises ValueError listing all missing required variables."""
    with pytest.raises(ValueError, match="DATABASE_PATH"):
        load_config()


def test_load_config_with_required_vars(monkeypatch):
    """Config loads successfully when all required vars are set, with correct defaults."""
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)

    config = load_config()

    assert config.database_path == "./test.db"

    # Defaults
    assert config.updaters_config_path == "./config/updaters.json"
    assert config.update_interval_minutes == 30
    assert config.update_timeout_seconds == 600.0
    assert config.http_timeout_seconds == 15.0
    assert config.persist_partial_parse is False
    assert config.lock_stale_after_seconds == 0.0
    assert config.web_host == "0.0.0.0"
    assert config.web_port == 8080
    assert config.log_level == "INFO"
    assert config.log_format == "json"
    assert config.app_env == "production"


def test_overrides(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "/data/vulnsync.db")
    monkeypatch.setenv("UPDATE_INTERVAL_MINUTES", "5")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("PERSIST_PARTIAL_PARSE", "true")
    monkeypatch.setenv("LOCK_STALE_AFTER_SECONDS", "3600")

    config = load_config()

    assert config.update_interval_minutes == 5
    assert config.http_timeout_seconds == 2.5
    assert config.persist_partial_parse is True
    assert config.lock_stale_after_seconds == 3600.0


@pytest.mark.parametrize("raw", ["0", "false", "no", ""])
def test_persist_partial_falsey(monkeypatch, raw):
    monkeypatch.setenv("DATABASE_PATH", "./test.db")
    monkeypatch.setenv("PERSIST_PARTIAL_PARSE", raw)
    assert load_config().persist_partial_parse is False


def test_malformed_number_raises(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "./test.db")
    monkeypatch.setenv("UPDATE_INTERVAL_MINUTES", "often")
    with pytest.raises(ValueError):
        load_config()


def test_config_is_frozen(monkeypatch):
    """Config is immutable after creation."""
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)

    config = load_config()

    with pytest.raises(AttributeError):
        config.database_path = "/other.db"
