"""Debounced, fire-and-forget persistence on the asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

# Thread pool for the blocking team API writes
_executor = ThreadPoolExecutor(max_workers=4)

StartSave = Callable[[], Tuple[int, Callable[[], None]]]
FinishSave = Callable[[int, Optional[BaseException]], None]


def running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class DebouncedSaver:
    """Coalesces bursts of ``schedule()`` calls into one write.

    At most one write runs at a time, so writes reach the backend in the
    order they were taken. Changes made while a write is in flight stay
    ``pending`` and are written once it finishes. Only the pending timer is
    ever cancelled; a write that already started runs to completion and
    reports back through ``finish_save``.
    """

    def __init__(self, start_save: StartSave, finish_save: FinishSave, delay_s: float):
        self._start_save = start_save
        self._finish_save = finish_save
        self._delay_s = delay_s
        self._handle: Optional[asyncio.TimerHandle] = None
        self._in_flight: Optional[asyncio.Future] = None
        self.pending = False

    @property
    def busy(self) -> bool:
        return self._handle is not None or self._in_flight is not None

    def schedule(self) -> bool:
        """Arm the debounce timer. Returns False when no loop is running."""
        self.pending = True
        loop = running_loop()
        if loop is None:
            logger.debug("No running event loop, save stays pending")
            return False
        self._arm(loop)
        return True

    def _arm(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay_s, self._fire, loop)

    def cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.pending = False

    def _fire(self, loop: asyncio.AbstractEventLoop) -> None:
        self._handle = None
        if self._in_flight is not None:
            # picked up by _done once the current write finishes
            return
        self.pending = False
        generation, job = self._start_save()
        future = loop.run_in_executor(_executor, job)
        self._in_flight = future
        future.add_done_callback(lambda f: self._done(loop, generation, f))

    def _done(self, loop: asyncio.AbstractEventLoop, generation: int, future: asyncio.Future) -> None:
        self._in_flight = None
        error = None if future.cancelled() else future.exception()
        self._finish_save(generation, error)
        if self.pending and self._handle is None:
            self._arm(loop)

    async def drain(self) -> None:
        """Wait until the pending timer fired and every write finished."""
        while self.busy:
            if self._in_flight is not None:
                await asyncio.gather(self._in_flight, return_exceptions=True)
            else:
                await asyncio.sleep(self._delay_s)
