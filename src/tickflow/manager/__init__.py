"""Job manager: registry, pools, configuration and host loop."""

from tickflow.manager.config import ManagerConfig, load_config
from tickflow.manager.loop import run_tick_loop
from tickflow.manager.manager import JobManager
from tickflow.manager.types import JobSnapshot, ManagerSnapshot

__all__ = [
    "JobManager",
    "JobSnapshot",
    "ManagerConfig",
    "ManagerSnapshot",
    "load_config",
    "run_tick_loop",
]
