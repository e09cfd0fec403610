from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional


logger = logging.getLogger(__name__)

TickCallback = Callable[[], None]


class Ticker:
    """
    Cooperative fixed-interval tick source, driven by `pump()`.

    - `start(callback)` cancels any armed run, then arms a new one; the first
      tick is due one interval later.
    - `cancel()` is idempotent.
    - `pump()` is meant to be called from the frame/event loop. It delivers
      every tick that is due by the injected clock, and stops early when the
      callback cancels or restarts the ticker, so backlog from an old run is
      never delivered into a new one.

    Each start/cancel bumps `generation`; a delivery only goes through while
    the generation it was armed with is still current.
    """

    def __init__(self, interval: float = 0.1, *, clock: Callable[[], float] = time.monotonic) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._interval = interval
        self._clock = clock
        self._generation = 0
        self._armed = False
        self._callback: Optional[TickCallback] = None
        self._next_due = 0.0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def armed(self) -> bool:
        return self._armed

    def is_current(self, generation: int) -> bool:
        return self._armed and generation == self._generation

    def start(self, callback: TickCallback) -> int:
        self.cancel()
        self._generation += 1
        self._armed = True
        self._callback = callback
        self._next_due = self._clock() + self._interval
        return self._generation

    def cancel(self) -> None:
        if not self._armed:
            return
        self._armed = False
        self._callback = None
        self._generation += 1

    def pump(self) -> int:
        """Deliver all due ticks; returns how many were delivered."""
        delivered = 0
        while self._armed and self._clock() >= self._next_due:
            generation = self._generation
            callback = self._callback
            self._next_due += self._interval
            if callback is None:
                break
            callback()
            delivered += 1
            if generation != self._generation:
                break
        return delivered


class LoopTicker(Ticker):
    """
    Ticker scheduled on an asyncio event loop with `call_later`.

    Every scheduled handle remembers the generation it belongs to. A handle
    that fires after `cancel()` or a restart (because the loop had already
    queued it) is dropped instead of ticking the new run. `pump()` delivers
    nothing here; ticks arrive only through the loop.
    """

    def __init__(self, interval: float = 0.1, *, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        super().__init__(interval, clock=self._loop.time)
        self._handle: Optional[asyncio.TimerHandle] = None

    def start(self, callback: TickCallback) -> int:
        generation = super().start(callback)
        self._schedule(generation)
        return generation

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        super().cancel()

    def pump(self) -> int:
        """No-op: the event loop delivers ticks, so a frame-loop pump must not add more."""
        return 0

    def _schedule(self, generation: int) -> None:
        self._handle = self._loop.call_later(self._interval, self._fire, generation)

    def _fire(self, generation: int) -> None:
        if not self.is_current(generation):
            logger.debug("[tick-stale] generation=%s current=%s", generation, self._generation)
            return
        callback = self._callback
        if callback is not None:
            callback()
        # The callback may have canceled or restarted us; only re-arm our own run
        if self.is_current(generation):
            self._schedule(generation)
