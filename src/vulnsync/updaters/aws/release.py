"""Amazon Linux releases and the distributions they map to."""

from __future__ import annotations

from enum import Enum

from vulnsync.driver.vulnerability import Distribution


class Release(str, Enum):
    LINUX1 = "linux1"
    LINUX2 = "linux2"


_MIRROR_LISTS = {
    Release.LINUX1: "http://repo.us-west-2.amazonaws.com/2018.03/updates/x86_64/mirror.list",
    Release.LINUX2: "https://cdn.amazonlinux.com/2/core/latest/x86_64/mirror.list",
}

_DISTRIBUTIONS = {
    Release.LINUX1: Distribution(
        did="amzn",
        name="Amazon Linux AMI",
        version="2018.03",
        version_id="2018.03",
        pretty_name="Amazon Linux AMI 2018.03",
    ),
    Release.LINUX2: Distribution(
        did="amzn",
        name="Amazon Linux",
        version="2",
        version_id="2",
        pretty_name="Amazon Linux 2",
    ),
}


def mirror_list_url(release: Release) -> str:
    """Upstream URL listing the repository mirrors for ``release``."""
    return _MIRROR_LISTS[release]


def release_to_dist(release: Release) -> Distribution:
    return _DISTRIBUTIONS[release]
