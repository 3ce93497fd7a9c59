"""
Run cataloging and configuration backup.

Public API:
    Cataloger — move data files into <data>/<experiment>/run_<NNNN>/
    ConfigArchiver — copy config files into <backup>/<experiment>/run_<NNNN>/
    run_directory — run-scoped path derivation
"""

from .archiver import ConfigArchiver
from .cataloger import Cataloger
from .paths import config_file_names, run_directory

__all__ = [
    "Cataloger",
    "ConfigArchiver",
    "config_file_names",
    "run_directory",
]
