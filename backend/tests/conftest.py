"""
Shared fixtures: fake OS capabilities and a populated acquisition tree.
"""

from pathlib import Path

import pytest

from daq_sentry.config import SentrySettings
from daq_sentry.models import MonitorTarget
from daq_sentry.probe import DiskInfo, DiskUsage, StatusProbe

from fakes import TERABYTE, FakeDisks, FakeProcesses


@pytest.fixture
def fake_disks() -> FakeDisks:
    """A 1 TB "Macintosh HD" with half its space available."""
    return FakeDisks({
        DiskInfo(name="Macintosh HD", mount_point="/"): DiskUsage(
            total_bytes=TERABYTE, available_bytes=TERABYTE // 2
        ),
        DiskInfo(name="/dev/disk4s1", mount_point="/Volumes/Scratch"): DiskUsage(
            total_bytes=2 * TERABYTE, available_bytes=TERABYTE
        ),
    })


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """
    Acquisition directory with one 100 MB data file, one text file and a
    subdirectory holding a data file of its own.
    """
    directory = tmp_path / "data" / "exp1"
    directory.mkdir(parents=True)

    with open(directory / "a.graw", "wb") as f:
        f.truncate(100_000_000)
    (directory / "b.txt").write_text("notes")
    (directory / "older").mkdir()
    (directory / "older" / "c.graw").write_bytes(b"x" * 10)

    return directory


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """DAQ configuration root for experiment e1."""
    directory = tmp_path / "config"
    (directory / "describe-cobo").mkdir(parents=True)

    for prefix in ("prepare", "describe", "configure"):
        (directory / f"{prefix}-e1.xcfg").write_text(f"<{prefix} experiment='e1'/>")
    (directory / "describe-cobo" / "cobo0.xcfg").write_text("<cobo id='0'/>")
    (directory / "describe-cobo" / "cobo1.xcfg").write_text("<cobo id='1'/>")
    (directory / "describe-cobo" / "nested").mkdir()

    return directory


@pytest.fixture
def target(data_dir: Path) -> MonitorTarget:
    return MonitorTarget(directory_path=str(data_dir), disk_identifier="Macintosh HD")


@pytest.fixture
def probe(fake_disks: FakeDisks) -> StatusProbe:
    return StatusProbe(disks=fake_disks, processes=FakeProcesses(), data_extension="graw")


@pytest.fixture
def settings(tmp_path: Path, data_dir: Path, config_dir: Path) -> SentrySettings:
    return SentrySettings(
        data_path=data_dir,
        disk_name="Macintosh HD",
        config_path=config_dir,
        config_backup_path=tmp_path / "backup",
        db_path=tmp_path / "sentry.db",
        sample_interval_seconds=60.0,
        catalog_settle_seconds=0.0,
    )
