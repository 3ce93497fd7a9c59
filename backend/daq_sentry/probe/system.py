"""
Operating-system capabilities used by the status probe.

Disk enumeration, process discovery and process I/O counters sit behind
narrow interfaces so the probe never depends on how they are obtained.

Process discovery has two implementations:
- native: psutil process table enumeration
- ps: parsing `ps -e` output, for hosts where the process table
  metadata is unreliable (older macOS releases)
"""

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, Tuple

import psutil

from ..errors import IOFailureError, ProcessNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiskInfo:
    """A mounted disk or volume."""

    name: str
    mount_point: str


@dataclass(frozen=True)
class DiskUsage:
    """Capacity figures for one disk, in bytes."""

    total_bytes: int
    available_bytes: int


class DiskProvider(Protocol):
    def list_disks(self) -> List[DiskInfo]:
        ...

    def usage(self, disk: DiskInfo) -> DiskUsage:
        ...


class ProcessFinder(Protocol):
    def find_pid(self, name: str) -> Optional[int]:
        ...


class ProcessIOReader(Protocol):
    def written_bytes(self, pid: int, name: str) -> int:
        ...


class ProcessFinderKind(str, Enum):
    """Process discovery mechanism, selected by configuration."""

    NATIVE = "native"
    PS = "ps"


class PsutilDiskProvider:
    """Disk enumeration backed by psutil.disk_partitions()."""

    def list_disks(self) -> List[DiskInfo]:
        try:
            partitions = psutil.disk_partitions(all=False)
        except OSError as e:
            raise IOFailureError("disk partition table", e) from e

        return [DiskInfo(name=p.device, mount_point=p.mountpoint) for p in partitions]

    def usage(self, disk: DiskInfo) -> DiskUsage:
        try:
            usage = psutil.disk_usage(disk.mount_point)
        except OSError as e:
            raise IOFailureError(disk.mount_point, e) from e

        return DiskUsage(total_bytes=usage.total, available_bytes=usage.free)


class PsutilProcessFinder:
    """Resolve a process by exact name match against the live process table."""

    def find_pid(self, name: str) -> Optional[int]:
        for proc in psutil.process_iter(["pid", "name"]):
            if proc.info["name"] == name:
                return proc.info["pid"]
        return None


def parse_ps_output(output: str, name: str) -> Optional[int]:
    """
    Find a pid in `ps -e` output.

    Columns are PID TTY TIME CMD; the command column must equal name exactly.
    The header line never matches because its PID column is not numeric.
    """
    for line in output.splitlines():
        entries = line.split()
        if len(entries) < 4 or entries[3] != name:
            continue
        if entries[0].isdigit():
            return int(entries[0])
    return None


class PsCommandProcessFinder:
    """Resolve a process by parsing the output of the external `ps -e` tool."""

    def __init__(self, runner: Optional[Callable[[List[str]], str]] = None):
        self._runner = runner or self._run_ps

    @staticmethod
    def _run_ps(command: List[str]) -> str:
        try:
            completed = subprocess.run(
                command, capture_output=True, text=True, check=True
            )
        except (OSError, subprocess.CalledProcessError) as e:
            raise IOFailureError(" ".join(command), e) from e
        return completed.stdout

    def find_pid(self, name: str) -> Optional[int]:
        return parse_ps_output(self._runner(["ps", "-e"]), name)


class PsutilProcessIOReader:
    """Cumulative bytes written by a process, from psutil I/O counters."""

    def written_bytes(self, pid: int, name: str) -> int:
        try:
            counters = psutil.Process(pid).io_counters()
        except psutil.NoSuchProcess as e:
            # Exited between discovery and the counter read
            raise ProcessNotFoundError(name) from e
        except (psutil.AccessDenied, OSError) as e:
            raise IOFailureError(f"process {name} (pid {pid})", e) from e
        return counters.write_bytes


def process_io_supported() -> bool:
    """psutil does not expose per-process I/O counters on every platform (macOS)."""
    return hasattr(psutil.Process, "io_counters")


def make_process_finder(kind: ProcessFinderKind) -> ProcessFinder:
    if kind == ProcessFinderKind.PS:
        return PsCommandProcessFinder()
    return PsutilProcessFinder()


def default_capabilities(
    finder_kind: ProcessFinderKind = ProcessFinderKind.NATIVE,
) -> Tuple[DiskProvider, ProcessFinder, ProcessIOReader]:
    """Production capability set: psutil disks, configured finder, psutil I/O."""
    logger.debug(f"Using {finder_kind.value} process discovery")
    return PsutilDiskProvider(), make_process_finder(finder_kind), PsutilProcessIOReader()
