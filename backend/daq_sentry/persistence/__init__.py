"""
Persistence layer for sentry state.

SQLite-backed single-row status record, shared by the watcher (writer) and
status queries (readers) through a bounded connection pool.
"""

from .errors import (
    StorageError,
    StorageErrorKind,
    StorageOperationFailedError,
    StorageUnavailableError,
)
from .pool import ConnectionPool
from .store import STATUS_ROW_ID, StatusStore

__all__ = [
    "ConnectionPool",
    "StatusStore",
    "STATUS_ROW_ID",
    "StorageError",
    "StorageErrorKind",
    "StorageOperationFailedError",
    "StorageUnavailableError",
]
