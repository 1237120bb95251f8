"""Updater contract and normalized vulnerability records."""

from vulnsync.driver.updater import (
    NO_FINGERPRINT,
    ConfigUnmarshaler,
    Configurable,
    FetchResult,
    Fingerprint,
    Unchanged,
    Updated,
    Updater,
    mapping_unmarshaler,
)
from vulnsync.driver.vulnerability import Distribution, Package, Severity, Vulnerability

__all__ = [
    "NO_FINGERPRINT",
    "ConfigUnmarshaler",
    "Configurable",
    "Distribution",
    "FetchResult",
    "Fingerprint",
    "Package",
    "Severity",
    "Unchanged",
    "Updated",
    "Updater",
    "Vulnerability",
    "mapping_unmarshaler",
]
