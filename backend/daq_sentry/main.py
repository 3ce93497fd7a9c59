"""
DAQ Sentry service — workstation monitoring, run cataloging and config backup.

The app owns one watcher task for its whole lifetime. Startup initializes
the status row and starts the watcher; shutdown (SIGINT/SIGTERM via
uvicorn) sends one Cancel, waits for the watcher, then closes the store.

Run with:
    uvicorn --factory daq_sentry.main:create_app
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from . import __version__
from .catalog import Cataloger, ConfigArchiver
from .config import SentrySettings, load_settings
from .persistence import StatusStore
from .probe import StatusProbe, default_capabilities, process_io_supported
from .models import WrittenBytesMode
from .routes import sentry
from .watcher import Inbox, Watcher, WatcherSupervisor

logger = logging.getLogger(__name__)


def build_probe(settings: SentrySettings) -> StatusProbe:
    """Production probe using psutil and the configured process finder."""
    if settings.written_mode == WrittenBytesMode.PROCESS and not process_io_supported():
        raise RuntimeError(
            "Process written-bytes mode is not supported on this platform; "
            "use SENTRY_WRITTEN_MODE=directory"
        )

    disks, processes, io_reader = default_capabilities(settings.process_finder)
    return StatusProbe(
        disks=disks,
        processes=processes,
        io_reader=io_reader,
        data_extension=settings.data_extension,
        written_mode=settings.written_mode,
    )


def create_app(
    settings: Optional[SentrySettings] = None,
    probe: Optional[StatusProbe] = None,
    store: Optional[StatusStore] = None,
) -> FastAPI:
    """
    Create the sentry application.

    Args:
        settings: Deployment settings. Loaded from the environment if omitted.
        probe: Status probe. Built from settings if omitted.
        store: Status store. Opened at settings.db_path if omitted.
    """
    settings = settings or load_settings()
    probe = probe or build_probe(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = store or StatusStore(db_path=settings.db_path)
        target = settings.default_target()
        app.state.store.initialize(
            disk_identifier=target.disk_identifier,
            directory_path=target.directory_path,
            process_name=target.process_name,
            written_mode=settings.written_mode,
        )

        inbox = Inbox()
        watcher = Watcher(
            target=target,
            inbox=inbox,
            probe=probe,
            store=app.state.store,
            interval=settings.sample_interval_seconds,
        )
        app.state.supervisor = WatcherSupervisor(watcher, inbox)
        app.state.supervisor.start()
        logger.info(f"Sentry started, monitoring {target.directory_path}")

        try:
            yield
        finally:
            logger.info("Sentry shutting down...")
            await app.state.supervisor.shutdown()
            app.state.store.close()

    app = FastAPI(title="DAQ Sentry", version=__version__, lifespan=lifespan)

    app.state.settings = settings
    app.state.probe = probe
    app.state.cataloger = Cataloger(probe, data_extension=settings.data_extension)
    app.state.archiver = ConfigArchiver(
        config_extension=settings.config_extension,
        descriptor_folder=settings.descriptor_folder,
    )

    app.include_router(sentry.router)

    @app.get("/")
    async def root():
        return {"service": "daq-sentry", "status": "running"}

    return app
