"""Host time sources.

The sequencer never measures time on its own: timers and duration logging
read ``now()`` and ``tick_count()`` from a Clock supplied by the host.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Time source consumed by jobs and the manager."""

    def now(self) -> float:
        """Current host time in seconds. Only differences are meaningful."""
        ...

    def tick_count(self) -> int:
        """Monotonically increasing scheduling tick counter."""
        ...


class SystemClock:
    """Seconds from ``time.monotonic()`` and a host-advanced tick counter.

    The host calls ``advance_tick()`` once per scheduling tick, before
    ``JobManager.tick()``.
    """

    def __init__(self) -> None:
        self._ticks = 0

    def now(self) -> float:
        return time.monotonic()

    def tick_count(self) -> int:
        return self._ticks

    def advance_tick(self) -> int:
        self._ticks += 1
        return self._ticks


class ManualClock:
    """Fully host-driven clock.

    For hosts with their own notion of time (game engines, simulations) and
    for deterministic tests: ``advance(seconds)`` moves time forward,
    ``advance_tick()`` bumps the tick counter.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._ticks = 0

    def now(self) -> float:
        return self._now

    def tick_count(self) -> int:
        return self._ticks

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += seconds
        return self._now

    def advance_tick(self, seconds: float = 0.0) -> int:
        """Bump the tick counter, optionally moving time forward as well."""
        if seconds:
            self.advance(seconds)
        self._ticks += 1
        return self._ticks
