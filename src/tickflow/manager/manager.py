"""Job manager: registry, pools and the per-tick advancement loop.

The host owns a JobManager and calls ``tick()`` once per scheduling tick.
Each tick walks the active jobs from newest to oldest:

- CREATED jobs are started (they take their first step right away),
- finalized jobs are removed and pushed onto the job pool, even if their
  state was reassigned after the finalizer ran,
- everything else is advanced by one step.

A job that finishes during tick N is therefore recycled at tick N+1. Jobs
added from inside a callback join the active list and are first seen on the
following tick.

Not thread-safe: the active list and both pools are only touched from the
thread that ticks.
"""

from __future__ import annotations

from collections.abc import Iterable

from tickflow.core.clock import Clock, SystemClock
from tickflow.core.exceptions import JobValidationError, TickReentryError
from tickflow.core.job import Callback, Job, JobState
from tickflow.core.logging import get_logger
from tickflow.core.tasks import Action, Predicate, Task, TaskPool
from tickflow.manager.config import ManagerConfig
from tickflow.manager.types import JobSnapshot, ManagerSnapshot

_logger = get_logger("manager")


class JobManager:
    """Registry of active jobs and owner of the job and task pools.

    Invariant: a Job object is in at most one of the active list and the
    pool at any time.
    """

    def __init__(
        self,
        config: ManagerConfig | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or ManagerConfig()
        self._clock: Clock = clock or SystemClock()
        self.check_duplicates = self._config.check_duplicates
        self._jobs: list[Job] = []
        self._pool: list[Job] = []
        self._tasks = TaskPool(max_size=self._config.max_pooled_tasks)
        self._ticking = False

    # ─── Properties ────────────────────────────────────────────────

    @property
    def config(self) -> ManagerConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def task_pool(self) -> TaskPool:
        return self._tasks

    @property
    def is_working(self) -> bool:
        """True while any job is registered (including finished, not yet recycled)."""
        return bool(self._jobs)

    @property
    def active_count(self) -> int:
        return len(self._jobs)

    @property
    def pooled_count(self) -> int:
        return len(self._pool)

    @property
    def jobs(self) -> tuple[Job, ...]:
        """Active jobs in registration order."""
        return tuple(self._jobs)

    # ─── Task construction ─────────────────────────────────────────

    def new_action(self, fn: Action) -> Task:
        return self._tasks.action(fn)

    def new_condition(self, predicate: Predicate) -> Task:
        return self._tasks.condition(predicate)

    def new_timer(self, seconds: float) -> Task:
        return self._tasks.timer(seconds)

    # ─── Submission ────────────────────────────────────────────────

    def new_job(
        self,
        name: str,
        tasks: Iterable[Task | None] | None = None,
        on_finished: Callback | None = None,
        on_stopped: Callback | None = None,
        on_failed: Callback | None = None,
    ) -> Job:
        """Acquire a CREATED job, reusing a pooled instance when available.

        The job is not registered; pass it to ``add_job()``.
        """
        task_pool = self._tasks if self._config.recycle_tasks else None
        if self._pool:
            job = self._pool.pop()
            return job.reset(
                name,
                tasks,
                on_finished=on_finished,
                on_stopped=on_stopped,
                on_failed=on_failed,
                trace_tasks=self._config.trace_tasks,
                task_pool=task_pool,
            )
        return Job(
            name,
            tasks,
            on_finished=on_finished,
            on_stopped=on_stopped,
            on_failed=on_failed,
            trace_tasks=self._config.trace_tasks,
            task_pool=task_pool,
        )

    def add_job(self, job: Job) -> bool:
        """Validate and register a job. False leaves the job unregistered."""
        try:
            self._check(job)
        except JobValidationError as exc:
            _logger.warning("manager.job_rejected", job=job.name, reason=exc.reason)
            return False
        self._jobs.append(job)
        _logger.debug("manager.job_registered", job=job.name, active=len(self._jobs))
        return True

    def submit(
        self,
        name: str,
        tasks: Iterable[Task | None],
        on_finished: Callback | None = None,
        on_stopped: Callback | None = None,
        on_failed: Callback | None = None,
    ) -> Job:
        """Create and register a job in one call.

        Raises:
            JobValidationError: If the job is rejected. The job instance
                goes back to the pool.
        """
        job = self.new_job(name, tasks, on_finished, on_stopped, on_failed)
        try:
            self._check(job)
        except JobValidationError as exc:
            _logger.warning("manager.job_rejected", job=name, reason=exc.reason)
            job.set_tasks(())
            self._pool.append(job)
            raise
        self._jobs.append(job)
        _logger.debug("manager.job_registered", job=name, active=len(self._jobs))
        return job

    def _check(self, job: Job) -> None:
        if any(j is job for j in self._jobs) or any(j is job for j in self._pool):
            raise JobValidationError(job.name, "bad_state")
        if self.check_duplicates and self.is_duplicate(job):
            raise JobValidationError(job.name, "duplicate_name")
        job.check()

    def is_duplicate(self, job: Job) -> bool:
        """True if an unfinished active job (other than ``job``) has the same name."""
        return any(
            j.name == job.name and j is not job and not j.is_finalized
            for j in self._jobs
        )

    # ─── Tick loop ─────────────────────────────────────────────────

    def tick(self) -> None:
        """Advance every active job by one scheduling tick.

        Raises:
            TickReentryError: If called from inside a tick (e.g. a callback).
        """
        if self._ticking:
            raise TickReentryError("JobManager.tick() is not re-entrant")
        if not self._jobs:
            return
        self._ticking = True
        try:
            clock = self._clock
            # Backwards: recycled jobs are removed from the list mid-walk.
            for i in range(len(self._jobs) - 1, -1, -1):
                job = self._jobs[i]
                if job.is_finalized or job.state is JobState.DONE:
                    del self._jobs[i]
                    self._pool.append(job)
                    _logger.debug("manager.job_recycled", job=job.name, pooled=len(self._pool))
                elif job.state is JobState.CREATED:
                    job.start(clock)
                else:
                    job.advance(clock)
        finally:
            self._ticking = False

    # ─── Control & lookup ──────────────────────────────────────────

    def find(self, name: str) -> Job | None:
        """Most recently registered active job with this name."""
        for job in reversed(self._jobs):
            if job.name == name:
                return job
        return None

    def stop_all(self) -> int:
        """Ask every active job to stop. Returns how many were asked."""
        stopped = sum(1 for job in self._jobs if job.stop())
        if stopped:
            _logger.info("manager.stop_all", stopped=stopped)
        return stopped

    # ─── Diagnostics ───────────────────────────────────────────────

    def snapshot(self) -> ManagerSnapshot:
        """Read-only view of the active jobs and pool sizes."""
        return ManagerSnapshot(
            tick=self._clock.tick_count(),
            active_jobs=len(self._jobs),
            pooled_jobs=len(self._pool),
            pooled_tasks=len(self._tasks),
            check_duplicates=self.check_duplicates,
            jobs=[
                JobSnapshot(
                    name=job.name,
                    state=job.state,
                    current_task=job.current_task,
                    total_tasks=len(job.tasks),
                )
                for job in self._jobs
            ],
        )

    def debug_jobs(self) -> None:
        """Log the pool size and one line per active job."""
        _logger.warning("manager.debug_jobs", pooled=len(self._pool), active=len(self._jobs))
        for job in self._jobs:
            _logger.warning("manager.debug_job", detail=job.describe())


__all__ = ["JobManager"]
