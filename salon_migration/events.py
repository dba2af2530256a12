"""Progress and data-changed notifications for import sessions."""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, List

from .models.session import ProgressEvent

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """
    Fan-out of events to subscribed callbacks.

    Callbacks may be plain functions or coroutine functions. A failing
    listener is logged and does not stop the import.
    """

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        self._listeners.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def emit(self, *args: Any) -> None:
        for callback in list(self._listeners):
            try:
                outcome = callback(*args)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"Event listener {getattr(callback, '__name__', callback)} failed: {e}")


class ProgressEmitter(EventEmitter):
    """Emits ProgressEvents and remembers the latest one."""

    def __init__(self):
        super().__init__()
        self.last: ProgressEvent = ProgressEvent(etapa="idle", atual=0, total=0)
        self.history: List[ProgressEvent] = []

    async def progress(self, etapa: str, atual: int, total: int, mensagem: str = "") -> ProgressEvent:
        event = ProgressEvent(etapa=etapa, atual=atual, total=total, mensagem=mensagem)
        self.last = event
        self.history.append(event)
        logger.info(f"[{etapa}] {atual}/{total} {mensagem}".rstrip())
        await self.emit(event)
        return event


class BatchPacer:
    """
    Minimum interval between consecutive storage batch calls.

    The first call goes through immediately; later calls wait until
    ``interval`` seconds have passed since the previous one.
    """

    def __init__(self, interval: float = 0.05):
        self.interval = interval
        self._last_call = 0.0

    async def wait(self) -> None:
        if self.interval > 0 and self._last_call:
            elapsed = time.monotonic() - self._last_call
            wait_time = self.interval - elapsed
            if wait_time > 0:
                await asyncio.sleep(wait_time)
        self._last_call = time.monotonic()
