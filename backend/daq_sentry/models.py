"""
Sentry data models.

All models use Pydantic with strict validation and no silent coercion.
Snapshots and targets are frozen: they are replaced, never mutated.
"""

from datetime import datetime
from enum import Enum
from pathlib import PurePath
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Bytes per reported gigabyte
BYTES_PER_GB = 1.0e9


class WrittenBytesMode(str, Enum):
    """
    Source of the "written" figure in a DirectoryStatus.

    PROCESS: cumulative bytes written by the tracked DAQ process.
    DIRECTORY: sum of the sizes of matching files in the data directory.
    """

    PROCESS = "process"
    DIRECTORY = "directory"


class MonitorTarget(BaseModel):
    """What the watcher samples: a directory, a disk and optionally a process."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    directory_path: str = Field(..., description="Acquisition directory to scan")
    disk_identifier: str = Field(..., description="Disk name or mount point, exact match")
    process_name: Optional[str] = Field(
        default=None, description="DAQ process that must be running, if any"
    )

    @field_validator("directory_path", "disk_identifier")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v


class DirectoryStatus(BaseModel):
    """
    Point-in-time snapshot of disk, process and directory occupancy.

    Produced by the status probe, optionally persisted, then discarded.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    disk_identifier: str
    process_name: Optional[str] = None
    directory_path: str
    file_count: int
    written_gb: float
    used_gb: float
    available_gb: float
    total_gb: float
    written_mode: WrittenBytesMode


class StoredStatus(DirectoryStatus):
    """
    The persisted status row.

    updated_at is None until the watcher has completed its first sample.
    """

    updated_at: Optional[datetime] = None


class RunIdentifier(BaseModel):
    """An experiment name and run number, supplied per catalog/backup request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    experiment: str
    run_number: int = Field(..., ge=0)

    @field_validator("experiment")
    @classmethod
    def validate_single_component(cls, v: str) -> str:
        """Experiment names become a directory name and must stay inside the root."""
        if not v or v in (".", ".."):
            raise ValueError(f"Invalid experiment name: {v!r}")
        if len(PurePath(v).parts) != 1 or "/" in v or "\\" in v:
            raise ValueError(f"Experiment name must be a single path component: {v!r}")
        return v

    @property
    def run_dir_name(self) -> str:
        return f"run_{self.run_number:04d}"

    @property
    def relative_dir(self) -> str:
        return f"{self.experiment}/{self.run_dir_name}"


class BackupResult(BaseModel):
    """Outcome of a configuration backup."""

    model_config = ConfigDict(extra="forbid")

    backup_dir: str
    copied_files: List[str]


class Acknowledgement(BaseModel):
    """Response for asynchronous requests."""

    model_config = ConfigDict(extra="forbid")

    accepted: bool = True


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    model_config = ConfigDict(extra="forbid")

    status: str = "ok"
