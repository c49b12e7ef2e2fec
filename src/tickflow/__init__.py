"""tickflow: cooperative, tick-driven job sequencer.

Assemble actions, polling conditions and timed waits into a named Job,
hand it to a JobManager, and call ``JobManager.tick()`` once per host
scheduling tick.
"""

__version__ = "0.3.0"

from tickflow.core.clock import Clock, ManualClock, SystemClock
from tickflow.core.job import Job, JobState
from tickflow.core.tasks import Task, TaskKind, TaskPool
from tickflow.manager.config import ManagerConfig
from tickflow.manager.manager import JobManager

__all__ = [
    "Clock",
    "Job",
    "JobManager",
    "JobState",
    "ManagerConfig",
    "ManualClock",
    "SystemClock",
    "Task",
    "TaskKind",
    "TaskPool",
    "__version__",
]
