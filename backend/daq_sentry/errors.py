"""
Sentry error taxonomy.

Every failure raised by the probe, cataloger, archiver and watcher is a
SentryError carrying an ErrorKind and structured fields, so callers can
branch on kind instead of message text. Messages always name the offending
path and, where relevant, the run number.
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union


class ErrorKind(str, Enum):
    """Closed set of sentry failure kinds."""

    NOT_DIRECTORY = "not_directory"
    PROCESS_NOT_FOUND = "process_not_found"
    RUN_ALREADY_EXISTS = "run_already_exists"
    IO_FAILURE = "io_failure"
    CHANNEL_CLOSED = "channel_closed"


class SentryError(Exception):
    """Base exception for all sentry operations."""

    kind: ErrorKind


class NotDirectoryError(SentryError):
    """Raised when a probe or catalog target is not an existing directory."""

    kind = ErrorKind.NOT_DIRECTORY

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Sentry was given a non-directory path: {self.path}")


class ProcessNotFoundError(SentryError):
    """Raised when a tracked DAQ process is required but not running."""

    kind = ErrorKind.PROCESS_NOT_FOUND

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Sentry could not find a process with name {name}")


class RunAlreadyExistsError(SentryError):
    """Raised when a catalog or backup target directory is already present."""

    kind = ErrorKind.RUN_ALREADY_EXISTS

    def __init__(self, path: Union[str, Path], run_number: int, operation: str = "catalog"):
        self.path = Path(path)
        self.run_number = run_number
        self.operation = operation
        super().__init__(
            f"Sentry tried to {operation} run {run_number} "
            f"but {self.path} already exists"
        )


class IOFailureError(SentryError):
    """Raised for any filesystem or OS query failure not covered above."""

    kind = ErrorKind.IO_FAILURE

    def __init__(self, target: Union[str, Path], cause: Optional[BaseException] = None):
        self.target = str(target)
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Sentry was not able to access {self.target}{detail}")


class ChannelClosedError(SentryError):
    """Raised when the watcher inbox is closed without a graceful Cancel."""

    kind = ErrorKind.CHANNEL_CLOSED

    def __init__(self, reason: str = "watcher inbox was closed without a cancel"):
        self.reason = reason
        super().__init__(reason)
