"""
Watcher control messages and inbox.

The inbox is the only way to influence a running watcher. Messages are
delivered in send order to a single consumer. Closing the inbox without a
Cancel is itself a failure the watcher reports.

The inbox wraps an asyncio.Queue and must only be used from the event
loop that runs the watcher.
"""

import asyncio
from dataclasses import dataclass
from typing import Union

from ..errors import ChannelClosedError
from ..models import MonitorTarget


@dataclass(frozen=True)
class Cancel:
    """Stop the watcher gracefully."""


@dataclass(frozen=True)
class Reconfigure:
    """Replace the watcher's target, effective on the next tick."""

    target: MonitorTarget


ControlMessage = Union[Cancel, Reconfigure]


class _Closed:
    """Queued after the last message when the inbox is closed."""


_CLOSED = _Closed()


class Inbox:
    """Single-consumer, in-order message channel for the watcher."""

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Union[ControlMessage, _Closed]]" = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: ControlMessage) -> None:
        """
        Queue a message.

        Raises:
            ChannelClosedError: if the inbox has been closed
        """
        if self._closed:
            raise ChannelClosedError("watcher inbox is closed, the watcher is not running")
        self._queue.put_nowait(message)

    def close(self) -> None:
        """Close the sending side. Already-queued messages are still delivered."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def receive(self) -> ControlMessage:
        """
        Wait for the next message.

        Raises:
            ChannelClosedError: once the inbox is closed and drained
        """
        message = await self._queue.get()
        if isinstance(message, _Closed):
            # Leave the marker for any later receive
            self._queue.put_nowait(message)
            raise ChannelClosedError()
        return message
