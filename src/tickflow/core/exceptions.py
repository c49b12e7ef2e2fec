"""Exception hierarchy for tickflow.

All tickflow exceptions inherit from TickflowError, enabling callers to catch
broad (TickflowError) or narrow (e.g., JobValidationError). Task errors never
escape a Job; TaskExecutionError exists to carry them to diagnostics.
"""

from __future__ import annotations


class TickflowError(Exception):
    """Base exception for all tickflow errors."""


class JobValidationError(TickflowError):
    """Raised when a job cannot be accepted for running.

    ``reason`` is one of ``bad_state``, ``empty_name``, ``no_tasks`` or
    ``duplicate_name``.
    """

    def __init__(self, job_name: str, reason: str) -> None:
        self.job_name = job_name
        self.reason = reason
        super().__init__(f"job {job_name!r} rejected: {reason}")


class TaskExecutionError(TickflowError):
    """An action task raised while a job was running it.

    Never raised out of the run loop; stored on ``Job.error`` after the job
    has been finalized as failed.
    """

    def __init__(self, job_name: str, task_index: int, cause: BaseException) -> None:
        self.job_name = job_name
        self.task_index = task_index
        self.cause = cause
        super().__init__(
            f"job {job_name!r} task {task_index} raised {type(cause).__name__}: {cause}"
        )


class TickReentryError(TickflowError):
    """Raised when ``JobManager.tick()`` is called while a tick is in progress.

    Typically a job callback calling back into the manager's tick.
    """
