"""
Sentry settings.

Loaded from environment variables. The four path/disk variables keep the
names used by existing workstation deployments; everything else is
prefixed with SENTRY_.
"""

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .models import MonitorTarget, WrittenBytesMode
from .probe.system import ProcessFinderKind
from .watcher.engine import DEFAULT_SAMPLE_INTERVAL_SECONDS


# Default seconds to wait before cataloging, so the DAQ can flush buffered writes
DEFAULT_CATALOG_SETTLE_SECONDS = 30.0

# Environment variable -> settings field
ENV_FIELDS: Dict[str, str] = {
    "DATA_PATH": "data_path",
    "DISK_NAME": "disk_name",
    "PROCESS_NAME": "process_name",
    "CONFIG_PATH": "config_path",
    "CONFIG_BACKUP_PATH": "config_backup_path",
    "SENTRY_DB_PATH": "db_path",
    "SENTRY_SAMPLE_INTERVAL": "sample_interval_seconds",
    "SENTRY_WRITTEN_MODE": "written_mode",
    "SENTRY_PROCESS_FINDER": "process_finder",
    "SENTRY_DATA_EXTENSION": "data_extension",
    "SENTRY_CONFIG_EXTENSION": "config_extension",
    "SENTRY_DESCRIPTOR_FOLDER": "descriptor_folder",
    "SENTRY_CATALOG_SETTLE": "catalog_settle_seconds",
    "SENTRY_HOST": "host",
    "SENTRY_PORT": "port",
    "SENTRY_LOG_LEVEL": "log_level",
}

REQUIRED_ENV = ("DATA_PATH", "DISK_NAME", "CONFIG_PATH", "CONFIG_BACKUP_PATH")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when the environment does not describe a usable deployment."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SentrySettings(BaseModel):
    """Deployment configuration for the sentry service."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    data_path: Path
    # Matched exactly against psutil's device name (e.g. /dev/disk3s1) or mount
    # point (e.g. / or /Volumes/Data). macOS volume labels such as "Macintosh HD"
    # are neither, so use the mount point there.
    disk_name: str = Field(..., description="Disk device name or mount point")
    process_name: Optional[str] = None
    config_path: Path
    config_backup_path: Path
    db_path: Path = Path("sentry.db")
    sample_interval_seconds: float = Field(default=DEFAULT_SAMPLE_INTERVAL_SECONDS, gt=0)
    written_mode: WrittenBytesMode = WrittenBytesMode.DIRECTORY
    process_finder: ProcessFinderKind = ProcessFinderKind.NATIVE
    data_extension: Optional[str] = "graw"
    config_extension: str = "xcfg"
    descriptor_folder: str = "describe-cobo"
    catalog_settle_seconds: float = Field(default=DEFAULT_CATALOG_SETTLE_SECONDS, ge=0)
    host: str = "0.0.0.0"
    port: int = Field(default=8080, gt=0, lt=65536)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return level

    @model_validator(mode="after")
    def validate_written_mode(self) -> "SentrySettings":
        if self.written_mode == WrittenBytesMode.PROCESS and not self.process_name:
            raise ValueError("PROCESS written mode requires PROCESS_NAME")
        return self

    def default_target(self) -> MonitorTarget:
        """The target the watcher starts on and one-shot commands operate on."""
        return MonitorTarget(
            directory_path=str(self.data_path),
            disk_identifier=self.disk_name,
            process_name=self.process_name,
        )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> SentrySettings:
    """
    Build settings from environment variables.

    Empty optional variables are treated as unset, except
    SENTRY_DATA_EXTENSION where empty means "count every file".

    Raises:
        ConfigurationError: missing required variable or invalid value
    """
    if environ is None:
        environ = os.environ

    missing = [name for name in REQUIRED_ENV if not environ.get(name)]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    values = {}
    for env_name, field_name in ENV_FIELDS.items():
        value = environ.get(env_name)
        if value is None:
            continue
        if value == "":
            if env_name == "SENTRY_DATA_EXTENSION":
                values[field_name] = None
            continue
        values[field_name] = value

    try:
        return SentrySettings(**values)
    except ValidationError as e:
        fields_to_env = {v: k for k, v in ENV_FIELDS.items()}
        problems = []
        for error in e.errors():
            loc = error.get("loc") or ()
            name = fields_to_env.get(str(loc[0]), str(loc[0])) if loc else "settings"
            problems.append(f"{name}: {error['msg']}")
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems)) from e
