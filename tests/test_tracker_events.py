"""Tests for the in-flight tracker and the event emitter."""
import asyncio
import threading
from unittest.mock import AsyncMock, Mock

import pytest

from cloudup.coordinator.tracker import OperationTracker
from cloudup.utils.events import EventEmitter


class TestOperationTracker:
    def test_counts_up_and_down(self):
        tracker = OperationTracker()
        assert tracker.started() == 1
        assert tracker.started() == 2
        assert tracker.completed() is False
        assert tracker.count == 1
        assert tracker.completed() is True
        assert tracker.count == 0

    def test_never_goes_negative(self):
        tracker = OperationTracker()
        with pytest.raises(RuntimeError):
            tracker.completed()
        assert tracker.count == 0

    def test_concurrent_updates(self):
        tracker = OperationTracker()
        zero_transitions = []

        def worker():
            for _ in range(1000):
                tracker.started()
                if tracker.completed():
                    zero_transitions.append(1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert tracker.count == 0
        assert len(zero_transitions) >= 1


class TestEventEmitter:
    @pytest.mark.asyncio
    async def test_sync_and_async_listeners(self):
        emitter = EventEmitter()
        sync_listener = Mock()
        async_listener = AsyncMock()
        emitter.on("done", sync_listener)
        emitter.on("done", async_listener)

        await emitter.emit("done", "payload")

        sync_listener.assert_called_once_with("payload")
        async_listener.assert_awaited_once_with("payload")

    @pytest.mark.asyncio
    async def test_listener_registered_once(self):
        emitter = EventEmitter()
        listener = Mock()
        emitter.on("done", listener)
        emitter.on("done", listener)

        await emitter.emit("done")

        assert listener.call_count == 1
        assert emitter.listener_count("done") == 1

    @pytest.mark.asyncio
    async def test_off(self):
        emitter = EventEmitter()
        listener = Mock()
        emitter.on("done", listener)
        emitter.off("done", listener)

        await emitter.emit("done")

        listener.assert_not_called()
        assert emitter.listener_count("done") == 0

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_stop_others(self):
        emitter = EventEmitter()
        failing = Mock(side_effect=RuntimeError("boom"))
        listener = Mock()
        emitter.on("done", failing)
        emitter.on("done", listener)

        await emitter.emit("done")

        listener.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_emit_nowait_runs_plain_listeners_inline(self):
        emitter = EventEmitter()
        calls = []

        async def async_listener(value):
            calls.append(("async", value))

        emitter.on("done", lambda value: calls.append(("sync", value)))
        emitter.on("done", async_listener)

        tasks = emitter.emit_nowait("done", 1)
        assert calls == [("sync", 1)]

        await asyncio.gather(*tasks)
        assert calls == [("sync", 1), ("async", 1)]

    @pytest.mark.asyncio
    async def test_emit_without_listeners(self):
        await EventEmitter().emit("nothing")
