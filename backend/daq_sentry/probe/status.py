"""
Status probe — disk, process and directory occupancy for one target.

Pure computation over read-only OS queries. Safe to call concurrently from
the watcher and from request handlers.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Set, Tuple

from ..errors import IOFailureError, NotDirectoryError, ProcessNotFoundError
from ..models import BYTES_PER_GB, DirectoryStatus, MonitorTarget, WrittenBytesMode
from .system import DiskProvider, DiskUsage, ProcessFinder, ProcessIOReader

logger = logging.getLogger(__name__)


def normalize_extension(extension: Optional[str]) -> Optional[str]:
    """Strip a leading dot; an empty extension means no filter."""
    if extension is None:
        return None
    extension = extension.lstrip(".")
    return extension or None


def matches_extension(name: str, extension: Optional[str]) -> bool:
    """Case-sensitive suffix match; None matches every file."""
    if extension is None:
        return True
    return Path(name).suffix == f".{extension}"


class StatusProbe:
    """
    Computes a DirectoryStatus for a MonitorTarget.

    Order of work:
    1. Target directory must exist (NotDirectoryError otherwise)
    2. Disk figures for the first disk matching the identifier (zeros if none)
    3. Tracked process must be running (ProcessNotFoundError otherwise)
    4. Matching files counted, and summed in DIRECTORY mode
    """

    def __init__(
        self,
        disks: DiskProvider,
        processes: ProcessFinder,
        io_reader: Optional[ProcessIOReader] = None,
        data_extension: Optional[str] = "graw",
        written_mode: WrittenBytesMode = WrittenBytesMode.DIRECTORY,
    ):
        if written_mode == WrittenBytesMode.PROCESS and io_reader is None:
            raise ValueError("PROCESS written mode requires a process I/O reader")

        self.disks = disks
        self.processes = processes
        self.io_reader = io_reader
        self.data_extension = normalize_extension(data_extension)
        self.written_mode = written_mode
        self._unmatched_disks: Set[str] = set()

    def compute_status(self, target: MonitorTarget) -> DirectoryStatus:
        """
        Sample the target.

        Raises:
            NotDirectoryError: directory_path is missing or not a directory
            ProcessNotFoundError: process_name is set but not running
            IOFailureError: any other OS failure
            ValueError: PROCESS mode with no process_name on the target
        """
        directory = Path(target.directory_path)
        if not directory.is_dir():
            raise NotDirectoryError(directory)

        if self.written_mode == WrittenBytesMode.PROCESS and not target.process_name:
            raise ValueError("PROCESS written mode requires a target process_name")

        usage = self._disk_usage(target.disk_identifier)

        process_written = 0
        if target.process_name:
            pid = self.processes.find_pid(target.process_name)
            if pid is None:
                raise ProcessNotFoundError(target.process_name)
            if self.written_mode == WrittenBytesMode.PROCESS:
                process_written = self.io_reader.written_bytes(pid, target.process_name)

        file_count, directory_bytes = self._scan_directory(directory)

        if self.written_mode == WrittenBytesMode.PROCESS:
            written = process_written
        else:
            written = directory_bytes

        total = usage.total_bytes
        available = usage.available_bytes

        return DirectoryStatus(
            disk_identifier=target.disk_identifier,
            process_name=target.process_name,
            directory_path=str(directory),
            file_count=file_count,
            written_gb=written / BYTES_PER_GB,
            used_gb=(total - available) / BYTES_PER_GB,
            available_gb=available / BYTES_PER_GB,
            total_gb=total / BYTES_PER_GB,
            written_mode=self.written_mode,
        )

    def _disk_usage(self, identifier: str) -> DiskUsage:
        for disk in self.disks.list_disks():
            if disk.name == identifier or disk.mount_point == identifier:
                return self.disks.usage(disk)

        if identifier not in self._unmatched_disks:
            # Warn once per identifier
            self._unmatched_disks.add(identifier)
            logger.warning(
                f"No disk has device name or mount point '{identifier}', "
                f"reporting zero capacity"
            )
        return DiskUsage(total_bytes=0, available_bytes=0)

    def _scan_directory(self, directory: Path) -> Tuple[int, int]:
        """Count matching regular files and sum their sizes."""
        file_count = 0
        total_bytes = 0

        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir() or not entry.is_file():
                            continue
                        if not matches_extension(entry.name, self.data_extension):
                            continue
                        size = entry.stat().st_size
                    except FileNotFoundError:
                        # Moved away by a concurrent catalog
                        continue
                    file_count += 1
                    total_bytes += size
        except OSError as e:
            raise IOFailureError(directory, e) from e

        return file_count, total_bytes
