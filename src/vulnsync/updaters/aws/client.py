"""HTTP client for Amazon Linux repository mirrors."""

from __future__ import annotations

import gzip
import io
import logging
import time
from typing import BinaryIO
from urllib.parse import urlsplit
from xml.etree import ElementTree

import httpx

from vulnsync.deadline import Deadline, bound_timeout
from vulnsync.errors import FetchError
from vulnsync.updaters.aws.alas import RepoData, parse_repomd
from vulnsync.updaters.aws.release import Release, mirror_list_url

logger = logging.getLogger(__name__)

_REPOMD_PATH = "repodata/repomd.xml"
_GZIP_MAGIC = b"\x1f\x8b"


def is_valid_mirror(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _join(base: str, path: str) -> str:
    return base.rstrip("/") + "/" + path.lstrip("/")


class Client:
    """Fetches repository resources, falling back across mirrors in order."""

    def __init__(self, http: httpx.Client, mirrors: list[str] | None = None) -> None:
        self._http = http
        self._mirrors: tuple[str, ...] = tuple(mirrors or ())

    @property
    def mirrors(self) -> tuple[str, ...]:
        return self._mirrors

    def resolve_mirrors(
        self, release: Release, timeout: float, deadline: Deadline | None = None
    ) -> None:
        """Download the upstream mirror list and use it for later requests."""
        url = mirror_list_url(release)
        try:
            body = self._download(url, timeout, deadline)
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"failed to retrieve mirror list: {exc}",
                url=url,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            if deadline is not None:
                deadline.check()
            raise FetchError(f"failed to retrieve mirror list: {exc}", url=url) from exc

        mirrors = []
        for line in body.decode("utf-8", errors="replace").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if not is_valid_mirror(line):
                logger.warning("Ignoring malformed mirror %r from %s", line, url)
                continue
            mirrors.append(line)
        if not mirrors:
            raise FetchError("mirror list contained no usable mirrors", url=url)
        logger.info("Resolved %d mirrors for %s", len(mirrors), release.value)
        self._mirrors = tuple(mirrors)

    def repomd(self, timeout: float, deadline: Deadline | None = None) -> dict[str, RepoData]:
        """Fetch and decode repodata/repomd.xml."""
        url, body = self._get(_REPOMD_PATH, timeout, deadline)
        try:
            return parse_repomd(body)
        except ElementTree.ParseError as exc:
            raise FetchError(f"malformed repository metadata: {exc}", url=url) from exc

    def updates(self, href: str, timeout: float, deadline: Deadline | None = None) -> BinaryIO:
        """Download the updateinfo resource, returning uncompressed content."""
        _, body = self._get(href, timeout, deadline)
        if body[:2] == _GZIP_MAGIC:
            return gzip.GzipFile(fileobj=io.BytesIO(body), mode="rb")
        return io.BytesIO(body)

    def _get(self, path: str, timeout: float, deadline: Deadline | None) -> tuple[str, bytes]:
        if not self._mirrors:
            raise FetchError("no mirrors configured")
        last_exc: httpx.HTTPError | None = None
        for mirror in self._mirrors:
            url = _join(mirror, path)
            try:
                return url, self._download(url, timeout, deadline)
            except httpx.HTTPError as exc:
                logger.warning("Mirror request failed for %s: %s", url, exc)
                last_exc = exc
                if deadline is not None:
                    deadline.check()
        raise FetchError(
            f"all {len(self._mirrors)} mirrors failed for {path}: {last_exc}"
        ) from last_exc

    def _download(self, url: str, timeout: float, deadline: Deadline | None) -> bytes:
        """GET ``url``; the whole transfer, not each read, ends within ``timeout``.

        ``timeout`` is first shortened to the caller's deadline. Running out
        of time raises httpx.ReadTimeout.
        """
        budget = bound_timeout(timeout, deadline)
        stop_at = time.monotonic() + budget
        chunks: list[bytes] = []
        with self._http.stream("GET", url, timeout=budget) as resp:
            resp.raise_for_status()
            for chunk in resp.iter_bytes():
                if deadline is not None:
                    deadline.check()
                if time.monotonic() >= stop_at:
                    raise httpx.ReadTimeout(
                        f"transfer exceeded {budget:.2f}s", request=resp.request
                    )
                chunks.append(chunk)
        return b"".join(chunks)
