"""
Sentry HTTP endpoints.

Thin wrappers directing requests to the probe, cataloger, archiver, status
store and watcher. Blocking filesystem and database work runs in the
default executor. Every sentry or storage failure is reported as HTTP 500
with the error's message.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from ..errors import SentryError
from ..models import (
    Acknowledgement,
    DirectoryStatus,
    HealthResponse,
    MonitorTarget,
    RunIdentifier,
    StoredStatus,
    WrittenBytesMode,
)
from ..persistence.errors import StorageError
from ..watcher.supervisor import WatcherReport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sentry"])


def _internal_error(e: Exception) -> HTTPException:
    """Wrap a sentry or storage error into something FastAPI can report."""
    logger.error(f"Request failed ({e.kind.value}): {e}")
    return HTTPException(status_code=500, detail=str(e))


async def _run_blocking(func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="ok")


@router.get("/status", response_model=DirectoryStatus)
async def status(
    request: Request,
    directory_path: Optional[str] = None,
    disk_identifier: Optional[str] = None,
    process_name: Optional[str] = None,
):
    """
    Live status of the configured target.

    Query parameters override individual fields of the configured target.
    This always scans the filesystem; use /status/current for the last
    persisted sample.
    """
    settings = request.app.state.settings
    target = settings.default_target()
    overrides = {
        key: value
        for key, value in (
            ("directory_path", directory_path),
            ("disk_identifier", disk_identifier),
            ("process_name", process_name),
        )
        if value is not None
    }
    if overrides:
        # Rebuild rather than copy so field validators run on the overrides
        try:
            target = MonitorTarget(**{**target.model_dump(), **overrides})
        except ValidationError as e:
            raise HTTPException(
                status_code=422, detail=e.errors(include_url=False, include_context=False)
            )

    try:
        return await _run_blocking(request.app.state.probe.compute_status, target)
    except SentryError as e:
        raise _internal_error(e)


@router.get("/status/current", response_model=StoredStatus)
async def current_status(request: Request):
    """Last sample persisted by the watcher. Never triggers a scan."""
    try:
        return await _run_blocking(request.app.state.store.read)
    except StorageError as e:
        raise _internal_error(e)


@router.post("/catalog", response_model=DirectoryStatus)
async def catalog(run: RunIdentifier, request: Request):
    """
    Move the run's data files into <data>/<experiment>/run_<NNNN>.

    The DAQ may still be buffering data when a run is stopped, with no
    guarantee it has reached the disk. Wait the configured settle time
    before touching the files.
    """
    settings = request.app.state.settings
    if settings.catalog_settle_seconds > 0:
        logger.info(
            f"Waiting {settings.catalog_settle_seconds}s for DAQ writes to settle "
            f"before cataloging run {run.run_number}"
        )
        await asyncio.sleep(settings.catalog_settle_seconds)

    try:
        return await _run_blocking(
            request.app.state.cataloger.catalog_run, settings.default_target(), run
        )
    except SentryError as e:
        raise _internal_error(e)


@router.post("/backup", response_model=DirectoryStatus)
async def backup(run: RunIdentifier, request: Request):
    """Back up the run's configuration files, then report live status."""
    settings = request.app.state.settings

    try:
        await _run_blocking(
            request.app.state.archiver.backup_configs,
            settings.config_path,
            settings.config_backup_path,
            run,
        )
        return await _run_blocking(
            request.app.state.probe.compute_status, settings.default_target()
        )
    except SentryError as e:
        raise _internal_error(e)


@router.post("/reconfigure", response_model=Acknowledgement, status_code=202)
async def reconfigure(target: MonitorTarget, request: Request):
    """
    Point the watcher at a new target.

    Applies from the watcher's next tick; the response only acknowledges
    that the request was queued.
    """
    settings = request.app.state.settings
    if settings.written_mode == WrittenBytesMode.PROCESS and not target.process_name:
        raise HTTPException(
            status_code=422,
            detail="This deployment measures process writes; process_name is required",
        )

    try:
        request.app.state.supervisor.reconfigure(target)
    except SentryError as e:
        raise _internal_error(e)

    return Acknowledgement(accepted=True)


@router.get("/watcher", response_model=WatcherReport)
async def watcher_report(request: Request):
    return request.app.state.supervisor.report()
