"""Job: a named sequence of tasks run one step per scheduling tick.

A job is an explicit state machine. ``start()`` moves it from CREATED to
RUNNING and takes the first step; each later tick the manager calls
``advance()``, which resumes at ``current_task``:

- an ACTION runs once and the job suspends until the next tick,
- a CONDITION is polled; the job suspends until the tick after it holds,
- a TIMER records a deadline on first visit and suspends until the host
  clock passes it, then the job continues with the next task in the same
  tick.

Cancellation is cooperative: ``stop()``/``fail()`` (or assigning ``state``)
only flip the state field, and the next step notices and finalizes. The
three finalizers are the only places a job becomes DONE; each clears the
task list and fires at most one callback.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import Enum

from tickflow.core.clock import Clock
from tickflow.core.exceptions import JobValidationError, TaskExecutionError, TickflowError
from tickflow.core.logging import JobContext, get_logger, with_context
from tickflow.core.tasks import Task, TaskKind, TaskPool, poll_condition, run_action

_logger = get_logger("job")

Callback = Callable[[], None]


class JobState(str, Enum):
    """Lifecycle state of a job."""

    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"
    DONE = "done"
    UNKNOWN = "unknown"


class JobOutcome(str, Enum):
    """Which terminal path a finished run took."""

    FINISHED = "finished"
    FAILED = "failed"
    STOPPED = "stopped"


_INTERRUPTED = frozenset({JobState.STOPPED, JobState.FAILED})


class Job:
    """A named, ordered sequence of tasks with one terminal callback.

    Jobs are normally obtained from ``JobManager.new_job()`` so that finished
    instances are reused; constructing one directly is fine for a job that
    is submitted once.
    """

    def __init__(
        self,
        name: str = "",
        tasks: Iterable[Task | None] | None = None,
        on_finished: Callback | None = None,
        on_stopped: Callback | None = None,
        on_failed: Callback | None = None,
        *,
        trace_tasks: bool = False,
        task_pool: TaskPool | None = None,
    ) -> None:
        self.state = JobState.UNKNOWN
        self.reset(
            name,
            tasks,
            on_finished=on_finished,
            on_stopped=on_stopped,
            on_failed=on_failed,
            trace_tasks=trace_tasks,
            task_pool=task_pool,
        )

    def reset(
        self,
        name: str,
        tasks: Iterable[Task | None] | None = None,
        *,
        on_finished: Callback | None = None,
        on_stopped: Callback | None = None,
        on_failed: Callback | None = None,
        trace_tasks: bool = False,
        task_pool: TaskPool | None = None,
    ) -> Job:
        """Overwrite every field and put the job back into CREATED."""
        if self.state is JobState.RUNNING and not self.is_finalized:
            raise TickflowError(f"cannot reset running job {self.name!r}")
        self.name = name
        self.state = JobState.CREATED
        self.on_finished = on_finished
        self.on_stopped = on_stopped
        self.on_failed = on_failed
        self.trace_tasks = trace_tasks
        self.task_pool = task_pool
        self.current_task = 0
        self.error: TaskExecutionError | None = None
        self.outcome: JobOutcome | None = None
        self._tasks: tuple[Task | None, ...] = tuple(tasks) if tasks is not None else ()
        self._clear_anchors()
        return self

    @property
    def tasks(self) -> tuple[Task | None, ...]:
        """The task list as a tuple copy of whatever iterable was supplied."""
        return self._tasks

    @property
    def is_finalized(self) -> bool:
        """True once a finalizer has run, whatever ``state`` says since."""
        return self.outcome is not None

    def set_tasks(self, tasks: Iterable[Task | None]) -> None:
        """Replace the whole task list. Only allowed before the job starts."""
        if self.state is not JobState.CREATED:
            raise TickflowError(
                f"cannot replace tasks of job {self.name!r} in state {self.state.value}"
            )
        self._tasks = tuple(tasks)

    # ─── Validation ────────────────────────────────────────────────

    def check(self) -> None:
        """Raise JobValidationError unless the job may start running."""
        if self.state is not JobState.CREATED:
            raise JobValidationError(self.name, "bad_state")
        if not self.name:
            raise JobValidationError(self.name, "empty_name")
        if not self._tasks:
            raise JobValidationError(self.name, "no_tasks")

    def validate(self) -> bool:
        try:
            self.check()
        except JobValidationError as exc:
            _logger.warning(
                "job.invalid", job=self.name, reason=exc.reason, state=self.state.value,
            )
            return False
        return True

    # ─── External control ──────────────────────────────────────────

    def stop(self) -> bool:
        """Ask the job to stop at its next step. False if it already ended."""
        return self._interrupt(JobState.STOPPED)

    def fail(self) -> bool:
        """Ask the job to fail at its next step. False if it already ended."""
        return self._interrupt(JobState.FAILED)

    def _interrupt(self, state: JobState) -> bool:
        if self.is_finalized or self.state not in (JobState.CREATED, JobState.RUNNING):
            return False
        self.state = state
        return True

    # ─── Run loop ──────────────────────────────────────────────────

    def start(self, clock: Clock) -> bool:
        """Enter RUNNING and take the first step.

        Starting twice is a no-op. A job stopped or failed before its first
        tick is finalized without running any task. Returns True if this
        call started the job.
        """
        if self.is_finalized or self.state in (JobState.DONE, JobState.RUNNING, JobState.UNKNOWN):
            return False
        if self.state in _INTERRUPTED:
            self.advance(clock)
            return False
        self._started_at = clock.now()
        self._started_tick = clock.tick_count()
        self.current_task = 0
        self.state = JobState.RUNNING
        _logger.debug("job.started", job=self.name, tasks=len(self._tasks))
        self.advance(clock)
        return True

    def advance(self, clock: Clock) -> None:
        """Resume the job for one scheduling tick."""
        if self.is_finalized or self.state not in (JobState.RUNNING, *_INTERRUPTED):
            return
        ctx = JobContext(job=self.name, task_index=self.current_task, tick=clock.tick_count())
        with with_context(ctx):
            self._step(clock)

    def _step(self, clock: Clock) -> None:
        tasks = self._tasks
        while True:
            idx = self.current_task
            if self.state is JobState.FAILED:
                self._failed(idx, clock)
                return
            if self.state is JobState.STOPPED:
                self._stopped(idx, clock)
                return
            if idx >= len(tasks):
                self._finished(clock)
                return

            task = tasks[idx]
            if task is None:
                self.current_task += 1
                continue
            if self._task_started_at is None:
                self._task_started_at = clock.now()
                self._task_started_tick = clock.tick_count()

            if task.kind is TaskKind.ACTION:
                outcome = run_action(task)
                if outcome.error is not None:
                    self._task_failed(idx, outcome.error, clock)
                    return
                self._complete_task(idx, clock)
                return

            if task.kind is TaskKind.CONDITION:
                outcome = poll_condition(task)
                if outcome.error is not None:
                    self._task_failed(idx, outcome.error, clock)
                    return
                if outcome.ready:
                    self._complete_task(idx, clock)
                return

            # TIMER
            now = clock.now()
            if self._deadline is None:
                self._deadline = now + task.seconds
                return
            if now < self._deadline:
                return
            self._complete_task(idx, clock)

    def _complete_task(self, idx: int, clock: Clock) -> None:
        if self.trace_tasks and self._task_started_at is not None:
            _logger.debug(
                "job.task_finished",
                job=self.name,
                task_index=idx,
                elapsed_ms=round((clock.now() - self._task_started_at) * 1000.0, 2),
                ticks=clock.tick_count() - self._task_started_tick,
            )
        self.current_task = idx + 1
        self._task_started_at = None
        self._deadline = None

    def _task_failed(self, idx: int, error: Exception, clock: Clock) -> None:
        self.error = TaskExecutionError(self.name, idx, error)
        _logger.warning(
            "job.task_failed",
            job=self.name,
            task_index=idx,
            error=str(error),
            error_type=type(error).__name__,
            exc_info=error,
        )
        self._failed(idx, clock)

    # ─── Finalizers ────────────────────────────────────────────────

    def _finished(self, clock: Clock) -> None:
        elapsed_ms, ticks = self._elapsed(clock)
        _logger.info(
            "job.finished",
            job=self.name,
            tasks=len(self._tasks),
            elapsed_ms=elapsed_ms,
            ticks=ticks,
        )
        self._finalize(JobOutcome.FINISHED, self.on_finished)

    def _failed(self, idx: int, clock: Clock) -> None:
        elapsed_ms, ticks = self._elapsed(clock)
        _logger.warning(
            "job.failed", job=self.name, task_index=idx, elapsed_ms=elapsed_ms, ticks=ticks,
        )
        self._finalize(JobOutcome.FAILED, self.on_failed)

    def _stopped(self, idx: int, clock: Clock) -> None:
        elapsed_ms, ticks = self._elapsed(clock)
        _logger.info(
            "job.stopped", job=self.name, task_index=idx, elapsed_ms=elapsed_ms, ticks=ticks,
        )
        self._finalize(JobOutcome.STOPPED, self.on_stopped)

    def _finalize(self, outcome: JobOutcome, callback: Callback | None) -> None:
        tasks, self._tasks = self._tasks, ()
        self._clear_anchors()
        self.state = JobState.DONE
        self.outcome = outcome
        if self.task_pool is not None:
            self.task_pool.release(tasks)
        if callback is None:
            return
        try:
            callback()
        except Exception:
            _logger.exception("job.callback_failed", job=self.name, outcome=outcome.value)

    def _elapsed(self, clock: Clock) -> tuple[float, int]:
        if self._started_at is None:
            return 0.0, 0
        elapsed_ms = round((clock.now() - self._started_at) * 1000.0, 2)
        return elapsed_ms, clock.tick_count() - self._started_tick

    def _clear_anchors(self) -> None:
        self._started_at: float | None = None
        self._started_tick = 0
        self._task_started_at: float | None = None
        self._task_started_tick = 0
        self._deadline: float | None = None

    # ─── Diagnostics ───────────────────────────────────────────────

    def describe(self) -> str:
        return f"{self.name}: state={self.state.value}, current_task={self.current_task}"

    def __repr__(self) -> str:
        return f"Job({self.name!r}, state={self.state.value}, tasks={len(self._tasks)})"


__all__ = ["Callback", "Job", "JobOutcome", "JobState"]
