"""Cancellable quiet-period timer on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Run an async callback once calls to `schedule` stop for `delay` seconds.

    Holds a single pending timer handle: each `schedule` cancels the previous
    timer and starts a new one, so a burst of changes fires exactly once with
    the arguments of the last call. Callbacks already running are not
    interrupted by a new schedule; `close` cancels both.

    Usage:
        debouncer = Debouncer(0.8, search)
        debouncer.schedule("Joã")
        debouncer.schedule("João")   # only this one fires, 0.8s later
    """

    def __init__(self, delay: float, callback: Callable[..., Awaitable[Any]]):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = delay
        self.callback = callback
        self._timer: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> bool:
        """True while a timer is waiting to fire."""
        return self._timer is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule(self, *args: Any) -> None:
        """(Re)start the quiet period. Must be called from a running event loop."""
        if self._closed:
            raise RuntimeError("Debouncer is closed")
        self.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire, args)

    def cancel(self) -> None:
        """Drop the pending timer, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, args: tuple[Any, ...]) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self.callback(*args))
        self._running.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced callback failed: %s", task.exception())

    async def drain(self) -> None:
        """Wait for callbacks that have already fired."""
        while self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    def close(self) -> None:
        """Cancel the pending timer and any callback still running."""
        self._closed = True
        self.cancel()
        for task in list(self._running):
            task.cancel()
