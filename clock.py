"""
clock.py

Time source and timers for the engine. Everything runs on the Tk event loop
(`root.after`), so callbacks never interleave.

Public API:
- TkClock(root)
    - now() -> seconds since local midnight
    - call_later(delay, fn) -> handle (.cancel())
    - call_at(time_of_day, fn) -> handle (.cancel())
- DelayedTimer(clock, delay, fn)
    - start(delay=None)  # (re)arm; an explicit delay applies to this run only
    - stop()
    - running
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Callable, Optional

DAY = 86400


class _AfterHandle:
    def __init__(self, root, after_id):
        self._root = root
        self._after_id = after_id

    def cancel(self) -> None:
        if self._after_id is not None:
            self._root.after_cancel(self._after_id)
            self._after_id = None


class TkClock:
    def __init__(self, root, now: Optional[Callable[[], datetime]] = None):
        self.root = root
        self._now = now or datetime.now

    def now(self) -> float:
        t = self._now()
        return t.hour * 3600 + t.minute * 60 + t.second + t.microsecond / 1e6

    def call_later(self, delay: float, fn: Callable[[], object]) -> _AfterHandle:
        ms = max(0, int(math.ceil(delay * 1000)))
        return _AfterHandle(self.root, self.root.after(ms, fn))

    def call_at(self, time_of_day: float, fn: Callable[[], object]) -> _AfterHandle:
        """Fire at the next occurrence of `time_of_day` (today or tomorrow)."""
        return self.call_later((time_of_day - self.now()) % DAY, fn)


class DelayedTimer:
    def __init__(self, clock, delay: float, fn: Callable[[], object]):
        self.clock = clock
        self.delay = delay
        self.fn = fn
        self._handle = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self, delay: Optional[float] = None) -> None:
        self.stop()
        self._handle = self.clock.call_later(self.delay if delay is None else delay, self._fire)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.fn()
