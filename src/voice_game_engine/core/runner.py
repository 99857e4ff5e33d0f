from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .engine import TurnController
from .types import SessionEvent, TurnPhase

_STOP = object()


class SessionRunner:
    """Single-consumer event loop feeding a TurnController.

    Capabilities post completion events; the runner hands them to the
    controller one at a time, each processed to completion before the next
    is taken off the queue.
    """

    def __init__(
        self,
        controller: TurnController,
        *,
        speak_timeout: Optional[float] = None,
        logger: logging.Logger | None = None,
    ):
        self._controller = controller
        if speak_timeout is None:
            speak_timeout = controller.config.speak_timeout_seconds
        self._speak_timeout = speak_timeout
        self._logger = logger or logging.getLogger(__name__)
        self._queue: asyncio.Queue | None = None
        self._pending: list = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._running = False

    @property
    def controller(self) -> TurnController:
        return self._controller

    @property
    def running(self) -> bool:
        return self._running

    def post(self, event: SessionEvent) -> None:
        if self._queue is None:
            self._pending.append(event)
        else:
            self._queue.put_nowait(event)

    def post_threadsafe(self, event: SessionEvent) -> None:
        if self._loop is None or self._queue is None:
            raise RuntimeError("runner is not running")
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def stop(self) -> None:
        if self._loop is not None and self._queue is not None:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, _STOP)
        else:
            self._pending.append(_STOP)

    async def run(self, until: Callable[[TurnController], bool] | None = None) -> int:
        """Process events until ``stop()`` or ``until(controller)`` is true.

        Returns the number of events dispatched.
        """
        self._loop = asyncio.get_running_loop()
        # Bound to this loop; events posted between runs wait in _pending.
        self._queue = asyncio.Queue()
        for item in self._pending:
            self._queue.put_nowait(item)
        self._pending.clear()
        self._running = True
        processed = 0
        try:
            if not self._controller.started:
                self._controller.start()
            while until is None or not until(self._controller):
                item = await self._next_item()
                if item is _STOP:
                    break
                self._controller.dispatch(item)
                processed += 1
        finally:
            self._running = False
            self._loop = None
            while not self._queue.empty():
                self._pending.append(self._queue.get_nowait())
            self._queue = None
        return processed

    async def _next_item(self):
        if self._speak_timeout is None or self._controller.phase is not TurnPhase.SPEAKING:
            return await self._queue.get()
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=self._speak_timeout)
        except asyncio.TimeoutError:
            self._logger.error(
                "No speech completion after %.1fs at %s",
                self._speak_timeout,
                self._controller.current_path,
            )
            return SessionEvent.capability_error("speak_timeout")
