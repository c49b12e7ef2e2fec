"""Rich output formatting for the tickflow CLI.

Centralizes the shared console, the job-state color scheme and the table
builders used by the commands.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.table import Table

from tickflow.core.job import JobState
from tickflow.manager.types import ManagerSnapshot

# Commands print through this console so tests can capture one stream.
console = Console()


class StatusColors:
    """Color mappings for job states."""

    JOB_STATE: dict[JobState, str] = {
        JobState.CREATED: "yellow",
        JobState.RUNNING: "blue",
        JobState.STOPPED: "magenta",
        JobState.FAILED: "red",
        JobState.DONE: "green",
        JobState.UNKNOWN: "dim",
    }

    @classmethod
    def get_job_color(cls, state: JobState) -> str:
        return cls.JOB_STATE.get(state, "white")


def format_state(state: JobState) -> str:
    """Job state wrapped in its color markup."""
    color = StatusColors.get_job_color(state)
    return f"[{color}]{state.value}[/{color}]"


def create_snapshot_table(snapshot: ManagerSnapshot) -> Table:
    """Table of active jobs with pool sizes in the caption."""
    table = Table(
        title=f"Active jobs (tick {snapshot.tick})",
        caption=(
            f"{snapshot.active_jobs} active · {snapshot.pooled_jobs} pooled jobs · "
            f"{snapshot.pooled_tasks} pooled tasks"
        ),
    )
    table.add_column("Job", style="cyan", no_wrap=True)
    table.add_column("State")
    table.add_column("Task", justify="right")
    for job in snapshot.jobs:
        table.add_row(job.name, format_state(job.state), f"{job.current_task}/{job.total_tasks}")
    return table


def create_config_table(values: dict[str, Any], file_keys: set[str]) -> Table:
    """Key/value table marking which settings came from a file."""
    table = Table(show_header=True, header_style="bold cyan", padding=(0, 1))
    table.add_column("Key", style="white", min_width=24)
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")
    for key, value in values.items():
        table.add_row(key, str(value), "file" if key in file_keys else "default")
    return table


__all__ = [
    "StatusColors",
    "console",
    "create_config_table",
    "create_snapshot_table",
    "format_state",
]
