"""
Time source and cancellable timers.

Every ticking display (tool widgets, the thinking widget, the cost animation,
the interrupt timeout) takes its timers from a Clock and registers them in a
TimerGroup, so leaving a session cancels all of them in one synchronous call.
"""

import asyncio
import heapq
import itertools
import time
from typing import Callable, Optional, Protocol

Callback = Callable[[], None]


class TimerHandle:
    """A scheduled callback. ``cancel()`` is idempotent."""

    __slots__ = ("_cancelled", "_done", "_on_cancel")

    def __init__(self) -> None:
        self._cancelled = False
        self._done = False
        self._on_cancel: Optional[Callback] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not self._cancelled and not self._done

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()
            self._on_cancel = None


class Clock(Protocol):
    def now(self) -> float:
        """Milliseconds, comparable with server timestamps."""
        ...

    def call_later(self, delay_s: float, callback: Callback) -> TimerHandle: ...

    def call_every(self, interval_s: float, callback: Callback) -> TimerHandle: ...


class LoopClock:
    """Wall-clock milliseconds with timers on the asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return time.time() * 1000

    def call_later(self, delay_s: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle()

        def fire() -> None:
            if handle._cancelled:
                return
            handle._done = True
            callback()

        loop_handle = self.loop.call_later(delay_s, fire)
        handle._on_cancel = loop_handle.cancel
        return handle

    def call_every(self, interval_s: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        loop = self.loop
        current: list[asyncio.TimerHandle] = []

        def fire() -> None:
            if handle._cancelled:
                return
            # Reschedule first so the callback may cancel its own handle.
            current[0] = loop.call_later(interval_s, fire)
            callback()

        current.append(loop.call_later(interval_s, fire))
        handle._on_cancel = lambda: current[0].cancel()
        return handle


class _Scheduled:
    __slots__ = ("deadline", "seq", "interval", "callback", "handle")

    def __init__(self, deadline: float, seq: int, interval: Optional[float], callback: Callback, handle: TimerHandle):
        self.deadline = deadline
        self.seq = seq
        self.interval = interval
        self.callback = callback
        self.handle = handle

    def __lt__(self, other: "_Scheduled") -> bool:
        return (self.deadline, self.seq) < (other.deadline, other.seq)


class ManualClock:
    """Deterministic clock: time only moves through ``advance()``."""

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms
        self._queue: list[_Scheduled] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_s: float, callback: Callback) -> TimerHandle:
        return self._schedule(delay_s, None, callback)

    def call_every(self, interval_s: float, callback: Callback) -> TimerHandle:
        return self._schedule(interval_s, interval_s, callback)

    @property
    def pending(self) -> int:
        """Number of timers that can still fire."""
        return sum(1 for s in self._queue if s.handle.active)

    def advance(self, seconds: float) -> None:
        target = self._now + seconds * 1000
        while self._queue and self._queue[0].deadline <= target:
            item = heapq.heappop(self._queue)
            if not item.handle.active:
                continue
            self._now = item.deadline
            if item.interval is None:
                item.handle._done = True
            else:
                item.deadline += item.interval * 1000
                item.seq = next(self._seq)
                heapq.heappush(self._queue, item)
            item.callback()
        self._now = target

    def _schedule(self, delay_s: float, interval_s: Optional[float], callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        heapq.heappush(
            self._queue,
            _Scheduled(self._now + delay_s * 1000, next(self._seq), interval_s, callback, handle),
        )
        return handle


class TimerGroup:
    """Owns timers so they can all be cancelled synchronously."""

    def __init__(self, clock: Clock):
        self.clock = clock
        self._handles: list[TimerHandle] = []

    def call_later(self, delay_s: float, callback: Callback) -> TimerHandle:
        return self._track(self.clock.call_later(delay_s, callback))

    def call_every(self, interval_s: float, callback: Callback) -> TimerHandle:
        return self._track(self.clock.call_every(interval_s, callback))

    @property
    def active(self) -> int:
        return sum(1 for h in self._handles if h.active)

    def cancel_all(self) -> None:
        handles, self._handles = self._handles, []
        for h in handles:
            h.cancel()

    def _track(self, handle: TimerHandle) -> TimerHandle:
        self._handles = [h for h in self._handles if h.active]
        self._handles.append(handle)
        return handle
