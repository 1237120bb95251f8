"""Storage layer: SQLite database access and schema management."""

from vulnsync.storage.connection import get_connection
from vulnsync.storage.schema import init_db
from vulnsync.storage.vulnstore import VulnStore

__all__ = ["VulnStore", "get_connection", "init_db"]
