"""Tasks (the individual steps of a job) and their reuse pool.

A Task is a small tagged union: an ACTION callable run once, a CONDITION
predicate polled every tick until it returns True, or a TIMER that suspends
the job for a number of seconds of host time.

User callables are only ever invoked through ``run_action()`` and
``poll_condition()``, which turn an exception into a failed ``TaskOutcome``
instead of letting it unwind into the job's run loop.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

Action = Callable[[], None]
Predicate = Callable[[], bool]


class TaskKind(str, Enum):
    """Which payload of a Task is meaningful."""

    ACTION = "action"
    CONDITION = "condition"
    TIMER = "timer"


class Task:
    """One step of a job.

    Exactly one of ``action``, ``condition`` and ``seconds`` is meaningful,
    selected by ``kind``; ``reset()`` clears the other two so that a pooled
    instance never carries a stale payload into its next use.
    """

    __slots__ = ("kind", "action", "condition", "seconds")

    def __init__(
        self,
        kind: TaskKind = TaskKind.ACTION,
        *,
        action: Action | None = None,
        condition: Predicate | None = None,
        seconds: float = 0.0,
    ) -> None:
        self.reset(kind, action=action, condition=condition, seconds=seconds)

    def reset(
        self,
        kind: TaskKind,
        *,
        action: Action | None = None,
        condition: Predicate | None = None,
        seconds: float = 0.0,
    ) -> Task:
        """Overwrite every field, keeping only the payload ``kind`` selects."""
        self.kind = kind
        self.action = action if kind is TaskKind.ACTION else None
        self.condition = condition if kind is TaskKind.CONDITION else None
        self.seconds = float(seconds) if kind is TaskKind.TIMER else 0.0
        return self

    def __repr__(self) -> str:
        if self.kind is TaskKind.TIMER:
            return f"Task(timer, {self.seconds:g}s)"
        fn = self.action if self.kind is TaskKind.ACTION else self.condition
        name = getattr(fn, "__qualname__", repr(fn))
        return f"Task({self.kind.value}, {name})"


@dataclass(frozen=True)
class TaskOutcome:
    """Result of invoking a task's user callable.

    ``ok`` is False when the callable raised; ``error`` then holds the
    exception. ``ready`` is the predicate's answer for conditions and always
    True for a successful action.
    """

    ok: bool
    ready: bool = False
    error: Exception | None = None


_DONE = TaskOutcome(ok=True, ready=True)
_PENDING = TaskOutcome(ok=True, ready=False)


def run_action(task: Task) -> TaskOutcome:
    """Invoke an ACTION task's callable. A missing callable is a no-op."""
    if task.action is None:
        return _DONE
    try:
        task.action()
    except Exception as exc:
        return TaskOutcome(ok=False, error=exc)
    return _DONE


def poll_condition(task: Task) -> TaskOutcome:
    """Invoke a CONDITION task's predicate once."""
    if task.condition is None:
        return _DONE
    try:
        satisfied = bool(task.condition())
    except Exception as exc:
        return TaskOutcome(ok=False, error=exc)
    return _DONE if satisfied else _PENDING


class TaskPool:
    """Free list of Task instances keyed by kind.

    Acquisition prefers an instance of the requested kind, falls back to
    any pooled instance, and only then allocates. Every reuse goes through
    ``Task.reset()``.
    """

    def __init__(self, max_size: int = 1024) -> None:
        self._max_size = max_size
        self._free: dict[TaskKind, list[Task]] = {kind: [] for kind in TaskKind}
        self._pooled: set[int] = set()

    def __len__(self) -> int:
        return len(self._pooled)

    def action(self, fn: Action) -> Task:
        """Task that calls ``fn`` once and completes."""
        return self._acquire(TaskKind.ACTION).reset(TaskKind.ACTION, action=fn)

    def condition(self, predicate: Predicate) -> Task:
        """Task that completes once ``predicate`` returns True."""
        return self._acquire(TaskKind.CONDITION).reset(
            TaskKind.CONDITION, condition=predicate,
        )

    def timer(self, seconds: float) -> Task:
        """Task that waits ``seconds`` of host time. Non-positive waits one check."""
        return self._acquire(TaskKind.TIMER).reset(TaskKind.TIMER, seconds=seconds)

    def release(self, tasks: Iterable[Task | None]) -> int:
        """Return tasks to the pool. Returns how many were kept.

        Released tasks have their payload cleared immediately so the pool
        does not keep user closures alive. Releasing an already pooled task
        is ignored.
        """
        kept = 0
        for task in tasks:
            if task is None or id(task) in self._pooled:
                continue
            if len(self._pooled) >= self._max_size:
                break
            task.reset(task.kind)
            self._free[task.kind].append(task)
            self._pooled.add(id(task))
            kept += 1
        return kept

    def _acquire(self, kind: TaskKind) -> Task:
        bucket = self._free[kind]
        if not bucket:
            bucket = next((b for b in self._free.values() if b), bucket)
        if bucket:
            task = bucket.pop()
            self._pooled.discard(id(task))
            return task
        return Task(kind)


__all__ = [
    "Action",
    "Predicate",
    "Task",
    "TaskKind",
    "TaskOutcome",
    "TaskPool",
    "poll_condition",
    "run_action",
]
