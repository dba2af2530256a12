"""Tests for session events and batch pacing."""

import asyncio
from unittest.mock import AsyncMock, patch

from salon_migration.events import BatchPacer, EventEmitter, ProgressEmitter


def test_sync_and_async_listeners():
    emitter = EventEmitter()
    seen = []

    async def async_listener(value):
        seen.append(("async", value))

    emitter.subscribe(lambda value: seen.append(("sync", value)))
    emitter.subscribe(async_listener)

    asyncio.run(emitter.emit(1))

    assert seen == [("sync", 1), ("async", 1)]


def test_failing_listener_does_not_stop_others():
    emitter = EventEmitter()
    seen = []

    def broken(value):
        raise RuntimeError("listener bug")

    emitter.subscribe(broken)
    emitter.subscribe(seen.append)

    asyncio.run(emitter.emit("x"))

    assert seen == ["x"]


def test_unsubscribe():
    emitter = EventEmitter()
    seen = []
    unsubscribe = emitter.subscribe(seen.append)
    unsubscribe()

    asyncio.run(emitter.emit("x"))

    assert seen == []


def test_progress_keeps_last_event():
    emitter = ProgressEmitter()
    events = []
    emitter.subscribe(events.append)

    asyncio.run(emitter.progress("clientes", 50, 200, "Lote 1"))

    assert emitter.last.etapa == "clientes"
    assert emitter.last.percent == 25.0
    assert events == emitter.history


def test_pacer_waits_between_calls():
    pacer = BatchPacer(interval=10.0)

    with patch("salon_migration.events.asyncio.sleep", new_callable=AsyncMock) as sleep:
        asyncio.run(pacer.wait())
        sleep.assert_not_called()

        asyncio.run(pacer.wait())
        sleep.assert_called_once()
        assert 0 < sleep.call_args.args[0] <= 10.0


def test_pacer_disabled():
    pacer = BatchPacer(interval=0)

    with patch("salon_migration.events.asyncio.sleep", new_callable=AsyncMock) as sleep:
        asyncio.run(pacer.wait())
        asyncio.run(pacer.wait())

    sleep.assert_not_called()
