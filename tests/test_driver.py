"""Tests for vulnsync.driver: updater contract, fetch results, records."""

from __future__ import annotations

import io
from datetime import datetime, timezone

import pytest

from vulnsync.driver import (
    NO_FINGERPRINT,
    Configurable,
    Distribution,
    Fingerprint,
    Package,
    Severity,
    Unchanged,
    Updated,
    Updater,
    Vulnerability,
    mapping_unmarshaler,
)
from vulnsync.errors import ConfigurationError, ParseError, TransientError, VulnSyncError

DIST = Distribution(
    did="amzn", name="Amazon Linux", version="2", version_id="2", pretty_name="Amazon Linux 2"
)


def _vuln(**overrides) -> Vulnerability:
    fields = {
        "updater": "aws-linux2-updater",
        "name": "ALAS-2023-1001",
        "description": "curl update",
        "issued": datetime(2023, 1, 5, 18, 31, tzinfo=timezone.utc),
        "links": "https://example.com/a https://example.com/b",
        "severity": "important",
        "normalized_severity": Severity.HIGH,
        "dist": DIST,
        "package": Package(name="curl", kind="binary"),
        "fixed_in_version": "7.79.1-12.amzn2.0.1",
    }
    fields.update(overrides)
    return Vulnerability(**fields)


class _StaticUpdater(Updater):
    """Updater with compiled-in behavior and no Configure capability."""

    @property
    def name(self) -> str:
        return "static"

    def fetch(self, fingerprint, deadline=None):
        if fingerprint == "v1":
            return Unchanged()
        return Updated(contents=io.BytesIO(b"data"), fingerprint=Fingerprint("v1"))

    def parse(self, contents, deadline=None):
        contents.read()
        return []


class _Target:
    config_fields = {"timeout": float, "mirrors": list, "enabled": bool}

    def __init__(self):
        self.timeout = 15.0
        self.mirrors = []
        self.enabled = True


# --- Updater contract ---


class TestUpdaterContract:
    def test_updater_without_configure_works_on_defaults(self):
        u = _StaticUpdater()
        assert not isinstance(u, Configurable)
        result = u.fetch(NO_FINGERPRINT)
        assert isinstance(result, Updated)
        assert u.parse(result.contents) == []
        assert isinstance(u.fetch(result.fingerprint), Unchanged)

    def test_abstract_updater_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            Updater()

    def test_updated_close_closes_stream(self):
        stream = io.BytesIO(b"x")
        Updated(contents=stream, fingerprint=Fingerprint("f")).close()
        assert stream.closed

    def test_no_fingerprint_is_empty(self):
        assert NO_FINGERPRINT == ""
        assert Fingerprint("abc") == "abc"


# --- mapping_unmarshaler ---


class TestMappingUnmarshaler:
    def test_sets_declared_fields(self):
        target = _Target()
        mapping_unmarshaler({"timeout": 30, "mirrors": ["https://m"]})(target)
        assert target.timeout == 30.0
        assert isinstance(target.timeout, float)
        assert target.mirrors == ["https://m"]

    def test_empty_config_keeps_defaults(self):
        target = _Target()
        mapping_unmarshaler({})(target)
        assert target.timeout == 15.0

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            mapping_unmarshaler({"bogus": 1})(_Target())
        assert exc_info.value.config_key == "bogus"

    def test_bool_is_not_a_float(self):
        with pytest.raises(ConfigurationError):
            mapping_unmarshaler({"timeout": True})(_Target())

    def test_wrong_type(self):
        with pytest.raises(ConfigurationError, match="must be list"):
            mapping_unmarshaler({"mirrors": "https://m"})(_Target())

    def test_target_without_fields_accepts_nothing(self):
        with pytest.raises(ConfigurationError):
            mapping_unmarshaler({"timeout": 1})(object())


# --- Vulnerability ---


class TestVulnerability:
    def test_frozen(self):
        with pytest.raises(AttributeError):
            _vuln().fixed_in_version = "1.0"

    def test_record_hash_stable(self):
        assert _vuln().record_hash() == _vuln().record_hash()

    def test_record_hash_ignores_descriptive_fields(self):
        assert _vuln().record_hash() == _vuln(description="changed", links="").record_hash()

    def test_record_hash_distinguishes_packages(self):
        other = _vuln(package=Package(name="libcurl"), fixed_in_version="7.79.1-12.amzn2.0.2")
        assert _vuln().record_hash() != other.record_hash()

    def test_record_hash_without_dist(self):
        assert len(_vuln(dist=None).record_hash()) == 64


# --- Errors ---


class TestErrors:
    def test_kinds(self):
        assert TransientError("x").retryable
        assert not ConfigurationError("x").retryable
        assert not ParseError("x").retryable

    def test_updater_prefix(self):
        assert str(VulnSyncError("boom", updater="aws-linux2-updater")) == "[aws-linux2-updater] boom"
        assert str(VulnSyncError("boom")) == "boom"

    def test_parse_error_partial_defaults_empty(self):
        assert ParseError("x").partial == []
