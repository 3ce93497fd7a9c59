"""
Status probe — read-only sampling of disk, DAQ process and data directory.

Public API:
    StatusProbe — compute a DirectoryStatus for a MonitorTarget
    DiskProvider, ProcessFinder, ProcessIOReader — injectable OS capabilities
    PsutilDiskProvider, PsutilProcessFinder, PsCommandProcessFinder,
    PsutilProcessIOReader — production implementations
"""

from .status import StatusProbe, matches_extension, normalize_extension
from .system import (
    DiskInfo,
    DiskUsage,
    DiskProvider,
    ProcessFinder,
    ProcessFinderKind,
    ProcessIOReader,
    PsutilDiskProvider,
    PsutilProcessFinder,
    PsCommandProcessFinder,
    PsutilProcessIOReader,
    default_capabilities,
    make_process_finder,
    parse_ps_output,
    process_io_supported,
)

__all__ = [
    "StatusProbe",
    "matches_extension",
    "normalize_extension",
    "DiskInfo",
    "DiskUsage",
    "DiskProvider",
    "ProcessFinder",
    "ProcessFinderKind",
    "ProcessIOReader",
    "PsutilDiskProvider",
    "PsutilProcessFinder",
    "PsCommandProcessFinder",
    "PsutilProcessIOReader",
    "default_capabilities",
    "make_process_finder",
    "parse_ps_output",
    "process_io_supported",
]
