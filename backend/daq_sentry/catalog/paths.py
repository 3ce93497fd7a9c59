"""
Run-scoped path derivation.

Layout must match the existing acquisition conventions exactly:
    <root>/<experiment>/run_<NNNN>/
"""

from pathlib import Path
from typing import List, Union

from ..models import RunIdentifier


# Experiment-named configuration files, in copy order
CONFIG_FILE_PREFIXES = ("prepare", "describe", "configure")


def run_directory(root: Union[str, Path], run: RunIdentifier) -> Path:
    """Return <root>/<experiment>/run_<NNNN>."""
    return Path(root) / run.experiment / run.run_dir_name


def config_file_names(experiment: str, extension: str) -> List[str]:
    """Return prepare-<exp>.<ext>, describe-<exp>.<ext>, configure-<exp>.<ext>."""
    extension = extension.lstrip(".")
    return [f"{prefix}-{experiment}.{extension}" for prefix in CONFIG_FILE_PREFIXES]
