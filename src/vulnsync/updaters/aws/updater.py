"""Amazon Linux Security Advisory (ALAS) updater."""

from __future__ import annotations

import logging
import math
import zlib
from dataclasses import replace
from datetime import datetime, timezone
from typing import BinaryIO
from xml.etree import ElementTree

import httpx

from vulnsync.deadline import Deadline
from vulnsync.driver.updater import (
    ConfigUnmarshaler,
    Configurable,
    FetchResult,
    Fingerprint,
    Unchanged,
    Updated,
    Updater,
)
from vulnsync.driver.vulnerability import Package, Severity, Vulnerability
from vulnsync.errors import ConfigurationError, FetchError, ParseError
from vulnsync.updaters.aws.alas import UPDATE_INFO, AlasPackage, AlasUpdate, iter_updates
from vulnsync.updaters.aws.client import Client, is_valid_mirror
from vulnsync.updaters.aws.release import Release, release_to_dist

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
_ISSUED_FORMAT = "%Y-%m-%d %H:%M"

_SEVERITIES = {
    "low": Severity.LOW,
    "medium": Severity.MEDIUM,
    "important": Severity.HIGH,
    "critical": Severity.CRITICAL,
}


def normalize_severity(label: str) -> Severity:
    """Map an ALAS severity label onto the normalized scale."""
    return _SEVERITIES.get(label.strip().lower(), Severity.UNKNOWN)


def refs_to_links(update: AlasUpdate) -> str:
    """Join every reference href of an advisory with single spaces."""
    return " ".join(update.references)


class AWSUpdater(Updater, Configurable):
    """Updater for the Amazon Linux updateinfo feed of one release.

    ``timeout`` bounds each network call (seconds). ``mirrors`` replaces the
    upstream mirror list; the resources under each URL must be laid out like
    the upstream repository.
    """

    config_fields = {"timeout": float, "mirrors": list}

    def __init__(self, release: Release | str) -> None:
        self._release = Release(release)
        self.timeout: float = DEFAULT_TIMEOUT
        self.mirrors: list[str] = []
        self._client: Client | None = None

    @property
    def name(self) -> str:
        return f"aws-{self._release.value}-updater"

    @property
    def release(self) -> Release:
        return self._release

    def configure(
        self,
        unmarshal: ConfigUnmarshaler,
        client: httpx.Client,
        deadline: Deadline | None = None,
    ) -> None:
        try:
            unmarshal(self)
        except ConfigurationError as exc:
            raise ConfigurationError(exc.args[0], self.name, exc.config_key) from exc
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"failed to decode configuration: {exc}", self.name) from exc

        if not math.isfinite(self.timeout) or self.timeout <= 0:
            raise ConfigurationError(
                f"timeout must be positive, got {self.timeout}", self.name, "timeout"
            )
        for mirror in self.mirrors:
            if not isinstance(mirror, str) or not is_valid_mirror(mirror):
                raise ConfigurationError(f"invalid mirror URL {mirror!r}", self.name, "mirrors")

        aws_client = Client(client, list(self.mirrors))
        if not aws_client.mirrors:
            try:
                aws_client.resolve_mirrors(self._release, self.timeout, deadline)
            except FetchError as exc:
                exc.updater = self.name
                raise
        self._client = aws_client
        logger.info("%s configured with %d mirrors", self.name, len(aws_client.mirrors))

    def fetch(self, fingerprint: Fingerprint, deadline: Deadline | None = None) -> FetchResult:
        client = self._client
        owned: httpx.Client | None = None
        try:
            if client is None:
                # Not configured: use a private client for this call only.
                owned = httpx.Client(follow_redirects=True)
                client = Client(owned)
                client.resolve_mirrors(self._release, self.timeout, deadline)

            repomd = client.repomd(self.timeout, deadline)
            info = repomd.get(UPDATE_INFO)
            if info is None or not info.checksum:
                raise FetchError("repository metadata has no updateinfo entry")

            new_fingerprint = Fingerprint(info.checksum)
            if new_fingerprint == fingerprint:
                logger.info("%s: contents unchanged (%s)", self.name, fingerprint)
                return Unchanged()

            contents = client.updates(info.location, self.timeout, deadline)
        except FetchError as exc:
            exc.updater = self.name
            raise
        finally:
            if owned is not None:
                owned.close()

        logger.info("%s: new contents (%s -> %s)", self.name, fingerprint or "none", new_fingerprint)
        return Updated(contents=contents, fingerprint=new_fingerprint)

    def parse(self, contents: BinaryIO, deadline: Deadline | None = None) -> list[Vulnerability]:
        """Decode updateinfo XML; ``contents`` is closed on return."""
        dist = release_to_dist(self._release)
        vulns: list[Vulnerability] = []
        try:
            for update in iter_updates(contents):
                if deadline is not None:
                    deadline.check()
                try:
                    issued = datetime.strptime(update.issued, _ISSUED_FORMAT).replace(
                        tzinfo=timezone.utc
                    )
                except ValueError as exc:
                    raise ParseError(
                        f"advisory {update.id}: malformed issued date {update.issued!r}",
                        self.name,
                        partial=vulns,
                    ) from exc
                partial = Vulnerability(
                    updater=self.name,
                    name=update.id,
                    description=update.description,
                    issued=issued,
                    links=refs_to_links(update),
                    severity=update.severity,
                    normalized_severity=normalize_severity(update.severity),
                    dist=dist,
                    package=Package(name=""),
                )
                vulns.extend(self._unpack(partial, update.packages))
        except ElementTree.ParseError as exc:
            raise ParseError(
                f"failed to decode updates xml: {exc}", self.name, partial=vulns
            ) from exc
        except (OSError, EOFError, zlib.error) as exc:
            raise ParseError(f"failed to read updates: {exc}", self.name, partial=vulns) from exc
        finally:
            contents.close()

        logger.info("%s: parsed %d records", self.name, len(vulns))
        return vulns

    @staticmethod
    def _unpack(partial: Vulnerability, packages: tuple[AlasPackage, ...]) -> list[Vulnerability]:
        """Copy the advisory-level record once per affected package."""
        return [
            replace(
                partial,
                package=Package(name=pkg.name, kind="binary"),
                fixed_in_version=f"{pkg.version}-{pkg.release}",
            )
            for pkg in packages
        ]
