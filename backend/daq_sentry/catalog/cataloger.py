"""
Cataloger — relocates acquisition files into per-run directories.

The DAQ writes all of its data as timestamped files in a single directory,
which makes it hard to tell which file belongs to which run. Cataloging
creates <data>/<experiment>/run_<NNNN>/ and moves the data files into it.

Partial failure is accepted: renames happen one file at a time and are not
rolled back. Files already moved stay in the run directory; the rest stay
in the source. Operators reconcile by hand.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

from ..errors import IOFailureError, NotDirectoryError, RunAlreadyExistsError
from ..models import DirectoryStatus, MonitorTarget, RunIdentifier
from ..probe.status import StatusProbe, matches_extension, normalize_extension
from .paths import run_directory

logger = logging.getLogger(__name__)


class Cataloger:
    """
    Moves matching data files out of the live acquisition directory.

    The cataloger does not wait for the DAQ to finish flushing; callers
    impose any settling delay before invoking it.
    """

    def __init__(self, probe: StatusProbe, data_extension: Optional[str] = "graw"):
        self.probe = probe
        self.data_extension = normalize_extension(data_extension)

    def catalog_run(self, target: MonitorTarget, run: RunIdentifier) -> DirectoryStatus:
        """
        Catalog a run from target.directory_path.

        Returns:
            Fresh status of the source directory after the move

        Raises:
            NotDirectoryError: source directory missing
            RunAlreadyExistsError: run directory already present (nothing moved)
            IOFailureError: create or rename failed (partial state left as-is)
        """
        source = Path(target.directory_path)
        if not source.is_dir():
            raise NotDirectoryError(source)

        run_dir = run_directory(source, run)
        if run_dir.exists():
            raise RunAlreadyExistsError(run_dir, run.run_number, operation="catalog")

        try:
            run_dir.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # <experiment> exists but is not a directory
            raise IOFailureError(run_dir.parent, e) from e

        try:
            run_dir.mkdir()
        except FileExistsError as e:
            # Lost a race with a concurrent catalog of the same run
            raise RunAlreadyExistsError(run_dir, run.run_number, operation="catalog") from e
        except OSError as e:
            raise IOFailureError(run_dir, e) from e

        moved = self._move_data_files(source, run_dir)
        logger.info(
            f"Cataloged {len(moved)} file(s) for {run.experiment} run "
            f"{run.run_number} into {run_dir}"
        )

        return self.probe.compute_status(target)

    def _move_data_files(self, source: Path, run_dir: Path) -> List[Path]:
        # Snapshot first so renames never race the directory iterator
        try:
            with os.scandir(source) as entries:
                candidates = [
                    Path(entry.path)
                    for entry in entries
                    if entry.is_file() and matches_extension(entry.name, self.data_extension)
                ]
        except OSError as e:
            raise IOFailureError(source, e) from e

        moved = []
        for path in sorted(candidates):
            destination = run_dir / path.name
            try:
                path.rename(destination)
            except OSError as e:
                logger.error(
                    f"Catalog into {run_dir} stopped after {len(moved)} of "
                    f"{len(candidates)} file(s): {e}"
                )
                raise IOFailureError(path, e) from e
            moved.append(destination)

        return moved
