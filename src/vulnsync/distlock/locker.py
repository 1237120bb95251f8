"""Locker interface: mutual exclusion across independent processes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vulnsync.deadline import Deadline


class Locker(ABC):
    """A handle that holds at most one distributed lock at a time.

    Locks are not reentrant: asking for a key this handle already holds
    contends exactly as if another process had asked for it.
    """

    @abstractmethod
    def lock(self, key: str, deadline: Deadline | None = None) -> None:
        """Block until ``key`` is exclusively held by this handle.

        Acquisition is atomic. What happens when ``deadline`` runs out is up
        to the implementation and must be documented there.
        """

    @abstractmethod
    def try_lock(self, key: str) -> bool:
        """Attempt to take ``key`` without blocking.

        Returns False when another holder has it. Raises LockError only when
        the coordination backend itself fails.
        """

    @abstractmethod
    def unlock(self) -> None:
        """Release the lock held by this handle."""

    @contextmanager
    def hold(self, key: str, deadline: Deadline | None = None) -> Iterator[None]:
        """Context manager form of lock()/unlock()."""
        self.lock(key, deadline)
        try:
            yield
        finally:
            self.unlock()
