"""
Watcher — the periodic sampling loop.

A single-owner state machine:

    RUNNING(current_target) --Cancel--> TERMINATED
    RUNNING(current_target) --Reconfigure(t)--> RUNNING(t)
    RUNNING(current_target) --tick--> RUNNING(current_target)

Each iteration races "next inbox message" against "next tick". Messages and
ticks are never processed concurrently, and a pending inbox read survives a
tick so no message is lost. current_target is private to the loop; the
only way to change it is a Reconfigure message.

Any sampling or storage failure is fatal: the loop terminates and the error
propagates to whatever awaits run(). There is no retry and no restart.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Protocol

from ..models import DirectoryStatus, MonitorTarget
from .messages import Cancel, Inbox, Reconfigure

logger = logging.getLogger(__name__)


# Default seconds between samples
DEFAULT_SAMPLE_INTERVAL_SECONDS = 10.0


class WatcherState(str, Enum):
    RUNNING = "running"
    TERMINATED = "terminated"


class Probe(Protocol):
    def compute_status(self, target: MonitorTarget) -> DirectoryStatus:
        ...


class StatusSink(Protocol):
    def write(self, status: DirectoryStatus) -> None:
        ...


class Watcher:
    """
    Samples the current target on a fixed interval and persists each sample.

    The interval is fixed for the life of the watcher.
    """

    def __init__(
        self,
        target: MonitorTarget,
        inbox: Inbox,
        probe: Probe,
        store: StatusSink,
        interval: float = DEFAULT_SAMPLE_INTERVAL_SECONDS,
    ):
        if interval <= 0:
            raise ValueError(f"Sample interval must be positive: {interval}")

        self._target = target
        self._inbox = inbox
        self._probe = probe
        self._store = store
        self.interval = interval

        self.state = WatcherState.RUNNING
        self.samples_taken = 0
        self.error: Optional[BaseException] = None

    async def run(self) -> None:
        """
        Run until Cancel.

        Raises:
            ChannelClosedError: inbox closed without Cancel
            SentryError / StorageError: a sample or its persistence failed
        """
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval
        pending: Optional[asyncio.Future] = None

        logger.info(
            f"Watcher started on {self._target.directory_path} "
            f"(disk '{self._target.disk_identifier}', every {self.interval}s)"
        )

        try:
            while True:
                if pending is None:
                    pending = asyncio.ensure_future(self._inbox.receive())

                timeout = max(0.0, next_tick - loop.time())
                done, _ = await asyncio.wait({pending}, timeout=timeout)

                if pending in done:
                    message = pending.result()
                    pending = None

                    if isinstance(message, Cancel):
                        logger.info("Watcher received cancel, stopping")
                        return

                    if isinstance(message, Reconfigure):
                        self._target = message.target
                        logger.info(
                            f"Watcher reconfigured to {message.target.directory_path} "
                            f"(disk '{message.target.disk_identifier}')"
                        )
                        continue

                    raise TypeError(f"Unknown watcher message: {message!r}")

                await self._sample(loop)

                next_tick += self.interval
                if next_tick <= loop.time():
                    # Sample overran one or more ticks; skip them
                    next_tick = loop.time() + self.interval

        except Exception as e:
            self.error = e
            logger.error(f"Watcher terminated by error: {e}")
            raise

        finally:
            if pending is not None:
                pending.cancel()
            self.state = WatcherState.TERMINATED

    async def _sample(self, loop: asyncio.AbstractEventLoop) -> None:
        target = self._target
        status = await loop.run_in_executor(None, self._probe.compute_status, target)
        await loop.run_in_executor(None, self._store.write, status)
        self.samples_taken += 1
        logger.debug(
            f"Sampled {target.directory_path}: {status.file_count} file(s), "
            f"{status.available_gb:.1f}/{status.total_gb:.1f} GB available"
        )
