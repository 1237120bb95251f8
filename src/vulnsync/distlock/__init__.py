"""Distributed locks that serialize work per key across processes."""

from vulnsync.distlock.locker import Locker
from vulnsync.distlock.sqlite import SQLiteLocker

__all__ = ["Locker", "SQLiteLocker"]
