"""Asyncio host loop for processes without a scheduling loop of their own.

Game engines and UI toolkits call ``JobManager.tick()`` from their frame
callback. Services and CLIs can instead run ``run_tick_loop()`` as an
asyncio task; cancel it to stop.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from tickflow.core.logging import get_logger
from tickflow.manager.manager import JobManager

_logger = get_logger("manager.loop")


class TickingClock(Protocol):
    """A clock whose tick counter the host loop advances."""

    def now(self) -> float: ...

    def tick_count(self) -> int: ...

    def advance_tick(self) -> int: ...


async def run_tick_loop(
    manager: JobManager,
    clock: TickingClock,
    *,
    interval_seconds: float | None = None,
    max_ticks: int | None = None,
    until_idle: bool = False,
) -> int:
    """Tick ``manager`` until cancelled or a stop condition is met.

    Every iteration bumps the clock's tick counter, calls
    ``manager.tick()`` and sleeps ``interval_seconds`` (the manager's
    configured ``tick_interval_seconds`` when None).

    Args:
        manager: The manager to drive. Should share ``clock``.
        clock: Clock whose ``advance_tick()`` is called before each tick.
        interval_seconds: Sleep between ticks.
        max_ticks: Stop after this many ticks.
        until_idle: Stop once the manager has no registered jobs left.

    Returns:
        The number of ticks performed.
    """
    sleep_s = manager.config.tick_interval_seconds if interval_seconds is None else interval_seconds
    ticks = 0
    _logger.debug("loop.started", interval_seconds=sleep_s, max_ticks=max_ticks)
    while max_ticks is None or ticks < max_ticks:
        if until_idle and not manager.is_working:
            break
        clock.advance_tick()
        manager.tick()
        ticks += 1
        await asyncio.sleep(sleep_s)
    _logger.debug("loop.stopped", ticks=ticks)
    return ticks


__all__ = ["TickingClock", "run_tick_loop"]
