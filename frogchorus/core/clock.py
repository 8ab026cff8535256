"""
Clock and timer abstractions.

Everything time-dependent in the engine reads a Clock and schedules
through a Scheduler, so tests can replay irregular tick delivery
(e.g. a throttled host) deterministically.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Clock(Protocol):
    """Monotonic millisecond clock."""

    def now_ms(self) -> float:
        ...


class SystemClock:
    """Wall-independent monotonic clock."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = float(start_ms)

    def now_ms(self) -> float:
        return self._now_ms

    def advance(self, ms: float) -> float:
        """Move forward by `ms` milliseconds. Returns the new time."""
        if ms < 0:
            raise ValueError(f"cannot move clock backwards by {ms} ms")
        self._now_ms += ms
        return self._now_ms

    def set(self, now_ms: float) -> None:
        if now_ms < self._now_ms:
            raise ValueError(f"cannot move clock backwards to {now_ms} ms")
        self._now_ms = float(now_ms)


class TimerHandle:
    """
    Cancellable handle for a scheduled callback.

    cancel() is idempotent and safe to call from any thread.
    """

    def __init__(self, on_cancel: Callable[[], None] | None = None) -> None:
        self._cancelled = threading.Event()
        self._finished = False
        self._on_cancel = on_cancel

    @property
    def active(self) -> bool:
        return not self._cancelled.is_set() and not self._finished

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        if self._on_cancel is not None:
            self._on_cancel()

    def _finish(self) -> None:
        self._finished = True


@runtime_checkable
class Scheduler(Protocol):
    """Timer factory used by calibrators and agents."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run `callback` once after `delay_ms`."""
        ...

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run `callback` repeatedly every `interval_ms` until cancelled."""
        ...


class ThreadingScheduler:
    """
    Real-time scheduler backed by daemon threads.

    One-shot timers use threading.Timer; repeating timers run a small
    loop waiting on the handle's cancel event, so cancellation wakes
    the loop immediately.
    """

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay_ms / 1000.0, lambda: self._fire_once(handle, callback))
        timer.daemon = True
        handle = TimerHandle(on_cancel=timer.cancel)
        timer.start()
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()
        thread = threading.Thread(
            target=self._loop,
            args=(handle, interval_ms / 1000.0, callback),
            daemon=True,
        )
        thread.start()
        return handle

    @staticmethod
    def _fire_once(handle: TimerHandle, callback: Callable[[], None]) -> None:
        if handle.cancelled:
            return
        handle._finish()
        callback()

    @staticmethod
    def _loop(handle: TimerHandle, interval_s: float, callback: Callable[[], None]) -> None:
        while not handle._cancelled.wait(interval_s):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Repeating timer callback failed: {e}")


class ManualScheduler:
    """
    Deterministic scheduler driven by a ManualClock.

    Usage:
        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        scheduler.call_every(250, tick)
        scheduler.advance(1000)   # fires tick at 250, 500, 750, 1000
    """

    def __init__(self, clock: ManualClock) -> None:
        self._clock = clock
        self._queue: list[tuple[float, int, TimerHandle, Callable[[], None], float | None]] = []
        self._seq = itertools.count()

    @property
    def clock(self) -> ManualClock:
        return self._clock

    @property
    def pending(self) -> int:
        """Number of live timers."""
        return sum(1 for entry in self._queue if entry[2].active)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()
        self._push(self._clock.now_ms() + delay_ms, handle, callback, None)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError(f"interval must be positive, got {interval_ms}")
        handle = TimerHandle()
        self._push(self._clock.now_ms() + interval_ms, handle, callback, interval_ms)
        return handle

    def _push(
        self,
        due_ms: float,
        handle: TimerHandle,
        callback: Callable[[], None],
        interval_ms: float | None,
    ) -> None:
        heapq.heappush(self._queue, (due_ms, next(self._seq), handle, callback, interval_ms))

    def advance(self, ms: float) -> None:
        """Advance the clock by `ms`, firing every timer that falls due."""
        self.run_until(self._clock.now_ms() + ms)

    def run_until(self, target_ms: float) -> None:
        while self._queue and self._queue[0][0] <= target_ms:
            due_ms, _, handle, callback, interval_ms = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self._clock.set(max(due_ms, self._clock.now_ms()))
            if interval_ms is None:
                handle._finish()
            else:
                self._push(due_ms + interval_ms, handle, callback, interval_ms)
            callback()
        self._clock.set(max(target_ms, self._clock.now_ms()))
