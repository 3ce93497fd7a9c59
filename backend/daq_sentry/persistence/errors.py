"""
Persistence-specific errors.
"""

from enum import Enum


class StorageErrorKind(str, Enum):
    UNAVAILABLE = "storage_unavailable"
    OPERATION_FAILED = "storage_operation_failed"


class StorageError(Exception):
    """Base exception for persistence operations."""

    kind: StorageErrorKind


class StorageUnavailableError(StorageError):
    """No connection could be acquired (pool closed, timed out, or connect failed)."""

    kind = StorageErrorKind.UNAVAILABLE


class StorageOperationFailedError(StorageError):
    """A statement failed or returned an unexpected result."""

    kind = StorageErrorKind.OPERATION_FAILED
