"""
Tests for the watcher loop and its supervisor.

Verifies:
1. Messages are handled in order and Cancel stops the loop without a sample
2. Each tick samples the current target and persists the result
3. Reconfigure takes effect from the next tick
4. A failed tick is fatal and leaves the stored row untouched
5. A closed inbox without Cancel is a failure
"""

import asyncio

import pytest

from daq_sentry.errors import ChannelClosedError, ErrorKind, IOFailureError
from daq_sentry.models import MonitorTarget
from daq_sentry.persistence import StatusStore
from daq_sentry.watcher import (
    Cancel,
    Inbox,
    Reconfigure,
    Watcher,
    WatcherState,
    WatcherSupervisor,
)

from fakes import RecordingProbe, RecordingStore, make_status


FIRST = MonitorTarget(directory_path="/data/exp1", disk_identifier="Macintosh HD")
SECOND = MonitorTarget(directory_path="/data/exp2", disk_identifier="/Volumes/Scratch")


async def wait_until(condition, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class TestWatcherMessages:

    def test_cancel_before_first_tick_takes_no_sample(self):
        probe = RecordingProbe()
        store = RecordingStore()

        async def scenario():
            inbox = Inbox()
            watcher = Watcher(FIRST, inbox, probe, store, interval=60.0)
            inbox.send(Reconfigure(SECOND))
            inbox.send(Cancel())
            await asyncio.wait_for(watcher.run(), timeout=2.0)
            return watcher

        watcher = asyncio.run(scenario())

        assert watcher.state == WatcherState.TERMINATED
        assert watcher.error is None
        assert probe.targets == []
        assert store.writes == []

    def test_closed_inbox_is_a_failure(self):
        async def scenario():
            inbox = Inbox()
            watcher = Watcher(FIRST, inbox, RecordingProbe(), RecordingStore(), interval=60.0)
            inbox.close()
            with pytest.raises(ChannelClosedError) as exc_info:
                await asyncio.wait_for(watcher.run(), timeout=2.0)
            return watcher, exc_info.value

        watcher, error = asyncio.run(scenario())

        assert error.kind == ErrorKind.CHANNEL_CLOSED
        assert watcher.state == WatcherState.TERMINATED
        assert watcher.error is error

    def test_messages_queued_before_close_are_delivered(self):
        async def scenario():
            inbox = Inbox()
            watcher = Watcher(FIRST, inbox, RecordingProbe(), RecordingStore(), interval=60.0)
            inbox.send(Cancel())
            inbox.close()
            await asyncio.wait_for(watcher.run(), timeout=2.0)
            return watcher

        watcher = asyncio.run(scenario())

        assert watcher.error is None

    def test_send_after_close_fails(self):
        async def scenario():
            inbox = Inbox()
            inbox.close()
            with pytest.raises(ChannelClosedError):
                inbox.send(Cancel())

        asyncio.run(scenario())

    def test_interval_must_be_positive(self):
        async def scenario():
            with pytest.raises(ValueError):
                Watcher(FIRST, Inbox(), RecordingProbe(), RecordingStore(), interval=0)

        asyncio.run(scenario())


class TestWatcherTicks:

    def test_ticks_sample_and_persist(self):
        probe = RecordingProbe()
        store = RecordingStore()

        async def scenario():
            inbox = Inbox()
            watcher = Watcher(FIRST, inbox, probe, store, interval=0.01)
            task = asyncio.ensure_future(watcher.run())
            await wait_until(lambda: len(store.writes) >= 3)
            inbox.send(Cancel())
            await asyncio.wait_for(task, timeout=2.0)
            return watcher

        watcher = asyncio.run(scenario())

        assert watcher.samples_taken == len(store.writes)
        assert all(target == FIRST for target in probe.targets)
        assert all(status.directory_path == "/data/exp1" for status in store.writes)

    def test_reconfigure_applies_from_next_tick(self):
        probe = RecordingProbe()
        store = RecordingStore()

        async def scenario():
            inbox = Inbox()
            watcher = Watcher(FIRST, inbox, probe, store, interval=0.01)
            task = asyncio.ensure_future(watcher.run())
            await wait_until(lambda: len(probe.targets) >= 1)
            inbox.send(Reconfigure(SECOND))
            await wait_until(lambda: SECOND in probe.targets)
            inbox.send(Cancel())
            await asyncio.wait_for(task, timeout=2.0)

        asyncio.run(scenario())

        assert probe.targets[0] == FIRST
        switch = probe.targets.index(SECOND)
        assert all(target == SECOND for target in probe.targets[switch:])
        assert store.writes[-1].disk_identifier == "/Volumes/Scratch"

    def test_failed_tick_is_fatal_and_keeps_previous_row(self, tmp_path):
        store = StatusStore(db_path=tmp_path / "sentry.db")
        store.initialize()
        failure = IOFailureError("/data/exp1")
        probe = RecordingProbe([make_status(FIRST, file_count=4), failure])

        async def scenario():
            inbox = Inbox()
            watcher = Watcher(FIRST, inbox, probe, store, interval=0.01)
            with pytest.raises(IOFailureError):
                await asyncio.wait_for(watcher.run(), timeout=2.0)
            return watcher

        try:
            watcher = asyncio.run(scenario())

            assert watcher.state == WatcherState.TERMINATED
            assert watcher.error is failure
            assert watcher.samples_taken == 1
            assert len(probe.targets) == 2
            assert store.read().file_count == 4
        finally:
            store.close()


class TestWatcherSupervisor:

    def test_shutdown_cancels_gracefully(self):
        async def scenario():
            inbox = Inbox()
            watcher = Watcher(FIRST, inbox, RecordingProbe(), RecordingStore(), interval=60.0)
            supervisor = WatcherSupervisor(watcher, inbox)
            supervisor.start()
            assert supervisor.running
            supervisor.reconfigure(SECOND)

            result = await asyncio.wait_for(supervisor.shutdown(), timeout=2.0)
            assert result is None
            assert not supervisor.running

            with pytest.raises(ChannelClosedError):
                supervisor.reconfigure(FIRST)

            return supervisor.report()

        report = asyncio.run(scenario())

        assert report.state == WatcherState.TERMINATED
        assert report.samples_taken == 0
        assert report.error is None

    def test_reconfigure_after_fatal_error_fails(self):
        probe = RecordingProbe([IOFailureError("/data/exp1")])

        async def scenario():
            inbox = Inbox()
            watcher = Watcher(FIRST, inbox, probe, RecordingStore(), interval=0.01)
            supervisor = WatcherSupervisor(watcher, inbox)
            supervisor.start()
            await wait_until(lambda: supervisor.inbox.closed)

            with pytest.raises(ChannelClosedError):
                supervisor.reconfigure(SECOND)

            error = await supervisor.shutdown()
            return error, supervisor.report()

        error, report = asyncio.run(scenario())

        assert isinstance(error, IOFailureError)
        assert report.state == WatcherState.TERMINATED
        assert "/data/exp1" in report.error

    def test_start_twice_is_rejected(self):
        async def scenario():
            inbox = Inbox()
            watcher = Watcher(FIRST, inbox, RecordingProbe(), RecordingStore(), interval=60.0)
            supervisor = WatcherSupervisor(watcher, inbox)
            supervisor.start()
            with pytest.raises(RuntimeError):
                supervisor.start()
            await supervisor.shutdown()

        asyncio.run(scenario())
