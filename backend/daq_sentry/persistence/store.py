"""
Single-row status store.

Holds the latest DirectoryStatus under a fixed primary key (1). Every write
is an upsert against that key, so the table never holds more than one row.
The row is only written after a successful sample; failed samples leave the
previous value in place.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from ..models import DirectoryStatus, StoredStatus, WrittenBytesMode
from .errors import StorageOperationFailedError
from .pool import ConnectionPool

logger = logging.getLogger(__name__)


# Database schema version for migrations
SCHEMA_VERSION = 1

# The one and only status row
STATUS_ROW_ID = 1


class StatusStore:
    """
    SQLite persistence for the latest status sample.

    Each public method acquires one pooled connection and runs one statement.
    """

    def __init__(
        self,
        db_path: Union[str, Path, None] = None,
        pool: Optional[ConnectionPool] = None,
    ):
        """
        Args:
            db_path: Path to SQLite database file (defaults to ./sentry.db)
            pool: Existing pool to share; created from db_path if omitted
        """
        if pool is None:
            if db_path is None:
                db_path = Path.cwd() / "sentry.db"
            pool = ConnectionPool(db_path)

        self.pool = pool
        self._ensure_schema()

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        """Run one statement, commit, and return the first row if any."""
        with self.pool.connection() as conn:
            try:
                cursor = conn.execute(sql, params)
                row = cursor.fetchone()
                conn.commit()
                return row
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageOperationFailedError(f"Database operation failed: {e}") from e

    def _ensure_schema(self) -> None:
        """Create schema if it doesn't exist."""
        self._execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL
            )
        """)

        self._execute("""
            CREATE TABLE IF NOT EXISTS status (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                disk_identifier TEXT NOT NULL,
                process_name TEXT,
                directory_path TEXT NOT NULL,
                file_count INTEGER NOT NULL,
                written_gb REAL NOT NULL,
                used_gb REAL NOT NULL,
                available_gb REAL NOT NULL,
                total_gb REAL NOT NULL,
                written_mode TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        self._execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?) "
            "ON CONFLICT(version) DO NOTHING",
            (SCHEMA_VERSION, datetime.now(timezone.utc).isoformat()),
        )

    def initialize(
        self,
        disk_identifier: str = "",
        directory_path: str = "",
        process_name: Optional[str] = None,
        written_mode: WrittenBytesMode = WrittenBytesMode.DIRECTORY,
    ) -> None:
        """
        Create the zeroed status row if absent.

        Idempotent: an existing row (from a previous run) is left untouched.
        """
        self._execute("""
            INSERT INTO status (
                id, disk_identifier, process_name, directory_path, file_count,
                written_gb, used_gb, available_gb, total_gb, written_mode, updated_at
            ) VALUES (?, ?, ?, ?, 0, 0.0, 0.0, 0.0, 0.0, ?, NULL)
            ON CONFLICT(id) DO NOTHING
        """, (STATUS_ROW_ID, disk_identifier, process_name, directory_path, written_mode.value))

    def write(self, status: DirectoryStatus) -> None:
        """Upsert the status row with a fresh sample."""
        self._execute("""
            INSERT INTO status (
                id, disk_identifier, process_name, directory_path, file_count,
                written_gb, used_gb, available_gb, total_gb, written_mode, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                disk_identifier = excluded.disk_identifier,
                process_name = excluded.process_name,
                directory_path = excluded.directory_path,
                file_count = excluded.file_count,
                written_gb = excluded.written_gb,
                used_gb = excluded.used_gb,
                available_gb = excluded.available_gb,
                total_gb = excluded.total_gb,
                written_mode = excluded.written_mode,
                updated_at = excluded.updated_at
        """, (
            STATUS_ROW_ID,
            status.disk_identifier,
            status.process_name,
            status.directory_path,
            status.file_count,
            status.written_gb,
            status.used_gb,
            status.available_gb,
            status.total_gb,
            status.written_mode.value,
            datetime.now(timezone.utc).isoformat(),
        ))

    def read(self) -> StoredStatus:
        """
        Load the status row.

        Raises:
            StorageOperationFailedError: if the row was never initialized
        """
        row = self._execute("SELECT * FROM status WHERE id = ?", (STATUS_ROW_ID,))
        if row is None:
            raise StorageOperationFailedError("Status row has not been initialized")

        return StoredStatus(
            disk_identifier=row["disk_identifier"],
            process_name=row["process_name"],
            directory_path=row["directory_path"],
            file_count=row["file_count"],
            written_gb=row["written_gb"],
            used_gb=row["used_gb"],
            available_gb=row["available_gb"],
            total_gb=row["total_gb"],
            written_mode=WrittenBytesMode(row["written_mode"]),
            updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None,
        )

    def count_rows(self) -> int:
        row = self._execute("SELECT COUNT(*) AS n FROM status")
        return row["n"]

    def close(self) -> None:
        self.pool.close()
