"""Unit Tests for CancellationToken and the event sinks."""

import asyncio

import pytest

from taskpilot.core.domain.cancellation import CancellationToken
from taskpilot.core.domain.errors import ErrorKind, RunCancelledError
from taskpilot.core.domain.event_sink import (
    CallbackEventSink,
    CollectingEventSink,
    NullEventSink,
)
from taskpilot.core.domain.events import AgentEventType, ErrorEvent, Started


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()

        token.cancel()

        assert token.cancelled
        with pytest.raises(RunCancelledError) as exc_info:
            token.raise_if_cancelled()
        assert exc_info.value.kind is ErrorKind.CANCELLED
        assert exc_info.value.message == "cancelled"

    @pytest.mark.asyncio
    async def test_guard_returns_result(self):
        token = CancellationToken()

        async def work():
            return 7

        assert await token.guard(work()) == 7

    @pytest.mark.asyncio
    async def test_guard_aborts_pending_work(self):
        token = CancellationToken()
        finished = []

        async def slow():
            await asyncio.sleep(10)
            finished.append(True)

        async def cancel_soon():
            await asyncio.sleep(0)
            token.cancel()

        asyncio.get_running_loop().create_task(cancel_soon())

        with pytest.raises(RunCancelledError):
            await token.guard(slow())
        assert finished == []

    @pytest.mark.asyncio
    async def test_guard_on_cancelled_token_never_starts_work(self):
        token = CancellationToken()
        token.cancel()
        started = []

        async def work():
            started.append(True)

        coro = work()
        with pytest.raises(RunCancelledError):
            await token.guard(coro)
        coro.close()
        assert started == []

    @pytest.mark.asyncio
    async def test_guard_propagates_work_errors(self):
        token = CancellationToken()

        async def broken():
            raise KeyError("x")

        with pytest.raises(KeyError):
            await token.guard(broken())


class TestEventSinks:
    """Tests for the event sink helpers."""

    @pytest.mark.asyncio
    async def test_collecting_sink_preserves_order(self):
        sink = CollectingEventSink()

        await sink.emit(Started(task="t"))
        await sink.emit(ErrorEvent(message="boom"))

        assert sink.types == ["started", "error"]
        assert sink.events[1].type is AgentEventType.ERROR

    @pytest.mark.asyncio
    async def test_callback_sink_accepts_sync_and_async_callbacks(self):
        received = []

        async def async_callback(event):
            received.append(("async", event.type))

        await CallbackEventSink(lambda e: received.append(("sync", e.type))).emit(Started(task="a"))
        await CallbackEventSink(async_callback).emit(Started(task="b"))

        assert received == [("sync", AgentEventType.STARTED), ("async", AgentEventType.STARTED)]

    @pytest.mark.asyncio
    async def test_null_sink_discards(self):
        assert await NullEventSink().emit(Started(task="t")) is None
