"""Scheduler implementation on top of the asyncio event loop."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from lessontrack.domain.ports import Scheduler

logger = logging.getLogger(__name__)


class AsyncioScheduler(Scheduler):
    """
    Runs callbacks via ``loop.call_later``.

    Live handles are tracked so ``cancel_all`` can release every timer on
    shutdown. Exceptions raised by callbacks are logged, not propagated
    into the loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._handles: set[asyncio.TimerHandle] = set()

    @property
    def pending_count(self) -> int:
        return len(self._handles)

    def schedule(self, delay_ms: int, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()

        def run() -> None:
            self._handles.discard(handle)
            try:
                callback()
            except Exception:
                logger.exception("Scheduled callback failed")

        handle = loop.call_later(max(delay_ms, 0) / 1000, run)
        self._handles.add(handle)
        return handle

    def cancel(self, handle: object | None) -> None:
        if handle is None:
            return
        if isinstance(handle, asyncio.TimerHandle):
            handle.cancel()
            self._handles.discard(handle)

    def cancel_all(self) -> None:
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()
