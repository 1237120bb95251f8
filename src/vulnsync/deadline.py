"""Caller deadlines and cooperative cancellation."""

from __future__ import annotations

import threading
import time

from vulnsync.errors import DeadlineExceeded


class Deadline:
    """An absolute point in time after which work should stop.

    A ``Deadline`` with no timeout never expires on its own but can still be
    cancelled. Children created with ``child()`` expire no later than their
    parent and observe the parent's cancellation.
    """

    def __init__(self, timeout: float | None = None, parent: Deadline | None = None) -> None:
        self._parent = parent
        self._cancelled = threading.Event()
        expires_at = None if timeout is None else time.monotonic() + timeout
        if parent is not None and parent._expires_at is not None:
            if expires_at is None or parent._expires_at < expires_at:
                expires_at = parent._expires_at
        self._expires_at = expires_at

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float | None:
        """Seconds left, or None when there is no time limit."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def check(self) -> None:
        """Raise DeadlineExceeded if cancelled or out of time."""
        if self.cancelled:
            raise DeadlineExceeded("operation cancelled")
        if self.expired():
            raise DeadlineExceeded("deadline exceeded")

    def bound(self, timeout: float) -> float:
        """Return ``timeout`` shortened so it ends no later than this deadline."""
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return timeout
        return min(timeout, remaining)

    def child(self, timeout: float | None = None) -> Deadline:
        return Deadline(timeout, parent=self)

    def wait(self, seconds: float) -> None:
        """Sleep up to ``seconds``, waking early on cancellation or expiry."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        # Parent cancellation is only seen at the next poll.
        step = 0.05 if self._parent is not None else seconds
        end = time.monotonic() + seconds
        while not self.cancelled:
            left = end - time.monotonic()
            if left <= 0:
                return
            self._cancelled.wait(min(step, left))


def bound_timeout(timeout: float, deadline: Deadline | None) -> float:
    """Per-call timeout bounded by an optional caller deadline."""
    if deadline is None:
        return timeout
    return deadline.bound(timeout)
