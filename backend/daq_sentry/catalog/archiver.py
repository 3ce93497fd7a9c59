"""
Config archiver — per-run snapshots of DAQ configuration files.

Backs up the experiment's prepare/describe/configure files and the
descriptor subfolder, so the configuration used for every run is known.
Sources are copied, never moved.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import List, Union

from ..errors import IOFailureError, NotDirectoryError, RunAlreadyExistsError
from ..models import BackupResult, RunIdentifier
from .paths import config_file_names, run_directory

logger = logging.getLogger(__name__)


class ConfigArchiver:
    """Copies configuration files into <backup>/<experiment>/run_<NNNN>/."""

    def __init__(self, config_extension: str = "xcfg", descriptor_folder: str = "describe-cobo"):
        self.config_extension = config_extension.lstrip(".")
        self.descriptor_folder = descriptor_folder

    def backup_configs(
        self,
        config_root: Union[str, Path],
        backup_root: Union[str, Path],
        run: RunIdentifier,
    ) -> BackupResult:
        """
        Back up configs for a run.

        Raises:
            NotDirectoryError: config root missing
            RunAlreadyExistsError: backup directory already present (nothing copied)
            IOFailureError: missing source file or copy failure (earlier copies remain)
        """
        config_root = Path(config_root)
        if not config_root.is_dir():
            raise NotDirectoryError(config_root)

        backup_dir = run_directory(backup_root, run)
        if backup_dir.exists():
            raise RunAlreadyExistsError(backup_dir, run.run_number, operation="backup")

        descriptor_backup = backup_dir / self.descriptor_folder
        try:
            backup_dir.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailureError(backup_dir.parent, e) from e

        try:
            backup_dir.mkdir()
        except FileExistsError as e:
            raise RunAlreadyExistsError(backup_dir, run.run_number, operation="backup") from e
        except OSError as e:
            raise IOFailureError(backup_dir, e) from e

        try:
            descriptor_backup.mkdir()
        except OSError as e:
            raise IOFailureError(descriptor_backup, e) from e

        copied = []
        for name in config_file_names(run.experiment, self.config_extension):
            copied.append(self._copy(config_root / name, backup_dir / name))

        descriptor_source = config_root / self.descriptor_folder
        try:
            with os.scandir(descriptor_source) as entries:
                descriptor_files = sorted(Path(e.path) for e in entries if e.is_file())
        except OSError as e:
            raise IOFailureError(descriptor_source, e) from e

        for path in descriptor_files:
            copied.append(self._copy(path, descriptor_backup / path.name))

        logger.info(
            f"Backed up {len(copied)} config file(s) for {run.experiment} run "
            f"{run.run_number} into {backup_dir}"
        )

        return BackupResult(
            backup_dir=str(backup_dir),
            copied_files=[str(p) for p in copied],
        )

    @staticmethod
    def _copy(source: Path, destination: Path) -> Path:
        try:
            shutil.copy2(source, destination)
        except OSError as e:
            raise IOFailureError(source, e) from e
        return destination
