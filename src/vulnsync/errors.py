"""Error taxonomy shared by updaters, lockers and the orchestrator.

Callers branch on the exception class, never on message text:

- TransientError: infrastructure trouble, safe to retry with backoff
  (FetchError, LockError, DeadlineExceeded).
- ParseError: malformed feed content; carries the records decoded before
  the failure in ``partial``.
- ConfigurationError: the updater cannot run this cycle.
- LockNotHeld / LockStateError: misuse of a lock handle.

"Content unchanged" and "lock contended" are results, not errors.
"""

from __future__ import annotations


class VulnSyncError(Exception):
    """Base exception for all vulnsync operations."""

    retryable = False

    def __init__(self, message: str, updater: str | None = None) -> None:
        self.updater = updater
        super().__init__(message)

    def __str__(self) -> str:
        if self.updater:
            return f"[{self.updater}] {super().__str__()}"
        return super().__str__()


class TransientError(VulnSyncError):
    """Failure of the network or a coordination backend."""

    retryable = True


class FetchError(TransientError):
    """Raised when upstream data could not be retrieved."""

    def __init__(
        self,
        message: str,
        updater: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message, updater)


class DeadlineExceeded(TransientError):
    """Raised when the caller's deadline passed or was cancelled."""


class LockError(TransientError):
    """Raised when the lock backend is unreachable or misbehaves."""


class ParseError(VulnSyncError):
    """Raised when feed content is malformed.

    ``partial`` holds every record fully decoded before the failure. Whether
    to persist them is the caller's decision.
    """

    def __init__(self, message: str, updater: str | None = None, partial: list | None = None) -> None:
        self.partial = partial if partial is not None else []
        super().__init__(message, updater)


class ConfigurationError(VulnSyncError):
    """Raised when updater configuration is invalid."""

    def __init__(self, message: str, updater: str | None = None, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message, updater)


class LockNotHeld(VulnSyncError):
    """Raised by unlock() on a handle that holds no grant."""


class LockStateError(VulnSyncError):
    """Raised when a handle already holding one key is asked for another."""
