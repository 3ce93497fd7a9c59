"""
Bounded SQLite connection pool.

Shared by the watcher and request handlers. Physical connections are
handed to one caller at a time; each caller acquires, runs one statement,
commits and releases.
"""

import logging
import queue
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Union

from .errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class ConnectionPool:
    """
    A fixed-size pool of SQLite connections.

    Connections are opened lazily up to `size`. Acquiring blocks for at most
    `timeout` seconds before raising StorageUnavailableError.
    """

    def __init__(self, db_path: Union[str, Path], size: int = 4, timeout: float = 5.0):
        if size < 1:
            raise ValueError("Connection pool size must be at least 1")

        self.db_path = str(db_path)
        self.size = size
        self.timeout = timeout

        self._slots = threading.BoundedSemaphore(size)
        self._idle: "queue.LifoQueue[sqlite3.Connection]" = queue.LifoQueue()
        self._opened_count = 0
        self._lock = threading.Lock()
        self._closed = False

    def _open(self) -> sqlite3.Connection:
        try:
            # Connections move between executor threads, never concurrently
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Cannot open database {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        with self._lock:
            self._opened_count += 1
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Acquire a connection for the duration of the block."""
        if self._closed:
            raise StorageUnavailableError("Connection pool is closed")

        if not self._slots.acquire(timeout=self.timeout):
            raise StorageUnavailableError(
                f"No database connection available after {self.timeout}s"
            )

        try:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                conn = self._open()

            try:
                yield conn
            finally:
                if self._closed:
                    conn.close()
                else:
                    self._idle.put(conn)
        finally:
            self._slots.release()

    def close(self) -> None:
        """Close all idle connections; in-use connections close on release."""
        self._closed = True
        while True:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                break
            conn.close()

        logger.debug(f"Closed connection pool ({self._opened_count} connection(s) opened)")
