"""Diagnostic snapshot models for the job manager.

Read-only views of manager state, produced by ``JobManager.snapshot()`` and
rendered by the CLI. Pydantic models so hosts can serialize them as JSON.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from tickflow.core.job import JobState


class JobSnapshot(BaseModel):
    """Point-in-time view of one active job."""

    name: str = Field(description="Job name (used for duplicate detection)")
    state: JobState = Field(description="Current lifecycle state")
    current_task: int = Field(description="Index of the task the job is on")
    total_tasks: int = Field(description="Number of tasks in the job's list")


class ManagerSnapshot(BaseModel):
    """Point-in-time view of a JobManager."""

    tick: int = Field(description="Host tick counter when the snapshot was taken")
    active_jobs: int = Field(description="Jobs registered and not yet recycled")
    pooled_jobs: int = Field(description="Finished jobs waiting for reuse")
    pooled_tasks: int = Field(description="Tasks waiting for reuse")
    check_duplicates: bool = Field(description="Whether duplicate names are rejected")
    jobs: list[JobSnapshot] = Field(default_factory=list)
