"""Updater interface: the contract every feed adapter implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, BinaryIO, Callable, NewType, Union

from vulnsync.errors import ConfigurationError

if TYPE_CHECKING:
    import httpx

    from vulnsync.deadline import Deadline
    from vulnsync.driver.vulnerability import Vulnerability

Fingerprint = NewType("Fingerprint", str)
"""Identity of a feed's content as last observed. Compared for equality only."""

NO_FINGERPRINT = Fingerprint("")

ConfigUnmarshaler = Callable[[Any], None]
"""Populates a target object's configuration fields from external settings."""


@dataclass(frozen=True)
class Unchanged:
    """Fetch result: upstream content matches the prior fingerprint."""


@dataclass(frozen=True)
class Updated:
    """Fetch result: new content and the fingerprint to store once it is persisted."""

    contents: BinaryIO
    fingerprint: Fingerprint

    def close(self) -> None:
        self.contents.close()


FetchResult = Union[Unchanged, Updated]


class Updater(ABC):
    """Abstract base class for vulnerability feed updaters.

    An updater knows how to detect new content in one feed and turn it into
    Vulnerability records. Updaters keep no state between calls other than
    what ``Configurable.configure`` installs.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identity; used as the lock key and to tag stored records."""

    @abstractmethod
    def fetch(self, fingerprint: Fingerprint, deadline: Deadline | None = None) -> FetchResult:
        """Check the feed for content newer than ``fingerprint``.

        Returns Unchanged() when the upstream fingerprint equals the given one,
        otherwise Updated with a stream of uncompressed content. Every network
        call is bounded by the updater's timeout and the caller's deadline.
        """

    @abstractmethod
    def parse(self, contents: BinaryIO, deadline: Deadline | None = None) -> list[Vulnerability]:
        """Consume ``contents`` and return every record it describes.

        Raises ParseError carrying the already-decoded records if the content
        turns out to be malformed partway through.
        """


class Configurable(ABC):
    """Optional capability: accept configuration and a shared HTTP client."""

    @abstractmethod
    def configure(
        self,
        unmarshal: ConfigUnmarshaler,
        client: httpx.Client,
        deadline: Deadline | None = None,
    ) -> None:
        """Apply external settings. Called once, before the first fetch."""


def mapping_unmarshaler(config: dict) -> ConfigUnmarshaler:
    """Build a ConfigUnmarshaler that copies ``config`` onto a target.

    Only names listed in the target's ``config_fields`` mapping (name -> type)
    are accepted. Integers are accepted where floats are expected.
    """

    def unmarshal(target: Any) -> None:
        fields: dict[str, type] = getattr(target, "config_fields", {})
        for key, value in config.items():
            expected = fields.get(key)
            if expected is None:
                raise ConfigurationError(
                    f"unknown configuration key '{key}'", config_key=key
                )
            if expected is float and isinstance(value, int) and not isinstance(value, bool):
                value = float(value)
            if not isinstance(value, expected):
                raise ConfigurationError(
                    f"configuration key '{key}' must be {expected.__name__}, "
                    f"got {type(value).__name__}",
                    config_key=key,
                )
            setattr(target, key, value)

    return unmarshal
