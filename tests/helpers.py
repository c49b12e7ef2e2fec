"""Shared test helpers for tickflow tests."""

from __future__ import annotations

from tickflow.core.clock import ManualClock
from tickflow.manager.manager import JobManager


def run_ticks(
    manager: JobManager, clock: ManualClock, count: int = 1, seconds: float = 0.0,
) -> None:
    """Advance the clock and tick the manager ``count`` times."""
    for _ in range(count):
        clock.advance_tick(seconds)
        manager.tick()


class Recorder:
    """Callable that counts its calls and records an optional label."""

    def __init__(self, log: list[str] | None = None, label: str = "") -> None:
        self.calls = 0
        self._log = log
        self._label = label

    def __call__(self) -> None:
        self.calls += 1
        if self._log is not None:
            self._log.append(self._label)


class Latch:
    """Predicate that stays False until ``open()`` is called."""

    def __init__(self) -> None:
        self.is_open = False
        self.polls = 0

    def open(self) -> None:
        self.is_open = True

    def __call__(self) -> bool:
        self.polls += 1
        return self.is_open
