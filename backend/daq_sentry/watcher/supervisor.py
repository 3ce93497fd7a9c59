"""
Watcher supervision.

The process owns exactly one watcher task through this supervisor and must
await its termination (graceful or fatal) before exiting, so no write to
the status store is cut off mid-flight.
"""

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..models import MonitorTarget
from .engine import Watcher, WatcherState
from .messages import Cancel, Inbox, Reconfigure

logger = logging.getLogger(__name__)


class WatcherReport(BaseModel):
    """Watcher liveness, without exposing its current target."""

    model_config = ConfigDict(extra="forbid")

    state: WatcherState
    samples_taken: int
    error: Optional[str] = None


class WatcherSupervisor:
    """Starts the watcher task, forwards reconfiguration and drives shutdown."""

    def __init__(self, watcher: Watcher, inbox: Inbox):
        self.watcher = watcher
        self.inbox = inbox
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Launch the watcher on the running event loop."""
        if self._task is not None:
            raise RuntimeError("Watcher has already been started")

        self._task = asyncio.get_running_loop().create_task(
            self.watcher.run(), name="sentry-watcher"
        )
        self._task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        # No consumer remains; later sends must fail visibly
        self.inbox.close()
        if task.cancelled():
            logger.warning("Watcher task was cancelled")
        elif task.exception() is not None:
            logger.error(f"Watcher stopped with a fatal error: {task.exception()}")

    def reconfigure(self, target: MonitorTarget) -> None:
        """
        Ask the watcher to sample a new target from its next tick.

        Raises:
            ChannelClosedError: if the watcher has terminated
        """
        self.inbox.send(Reconfigure(target))

    def report(self) -> WatcherReport:
        error = self.watcher.error
        return WatcherReport(
            state=self.watcher.state,
            samples_taken=self.watcher.samples_taken,
            error=str(error) if error is not None else None,
        )

    async def shutdown(self) -> Optional[BaseException]:
        """
        Send exactly one Cancel and wait for the watcher to finish.

        Returns:
            The watcher's fatal error, or None if it stopped gracefully
        """
        if self._task is None:
            return None

        if not self._task.done() and not self.inbox.closed:
            self.inbox.send(Cancel())

        try:
            await self._task
        except asyncio.CancelledError:
            logger.warning("Watcher was cancelled before it could stop gracefully")
            return None
        except Exception as e:
            logger.error(f"Watcher exited with error: {e}")
            return e

        logger.info("Watcher stopped")
        return None
