"""Normalized vulnerability records produced by updaters."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Severity(str, Enum):
    """Source-independent severity scale."""

    UNKNOWN = "Unknown"
    NEGLIGIBLE = "Negligible"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


@dataclass(frozen=True)
class Package:
    name: str
    kind: str = "binary"


@dataclass(frozen=True)
class Distribution:
    """Platform an advisory applies to."""

    did: str
    name: str
    version: str
    version_id: str
    pretty_name: str


@dataclass(frozen=True)
class Vulnerability:
    """One (advisory, affected package) pair ready for persistence."""

    updater: str
    name: str
    description: str
    issued: datetime
    links: str
    severity: str
    normalized_severity: Severity
    dist: Distribution | None
    package: Package
    fixed_in_version: str = ""

    def record_hash(self) -> str:
        """Stable SHA-256 over the fields that identify this record.

        Fields are joined with a null byte separator to avoid ambiguous
        concatenations.
        """
        dist = self.dist
        parts = [
            self.updater,
            self.name,
            self.package.name,
            self.package.kind,
            dist.did if dist else "",
            dist.version_id if dist else "",
            self.fixed_in_version,
        ]
        combined = "\0".join(parts)
        return hashlib.sha256(combined.encode("utf-8")).hexdigest()
