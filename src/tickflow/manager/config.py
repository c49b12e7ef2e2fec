"""Configuration model for the job manager.

Defines a Pydantic v2 model for manager settings (duplicate policy, pool
bounds, tracing) and the logging/host-loop settings the CLI uses. Configs
can be loaded from a YAML file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

from tickflow.core.logging import get_logger

_logger = get_logger("manager.config")


class ManagerConfig(BaseModel):
    """Top-level configuration for a JobManager and its host loop."""

    model_config = ConfigDict(extra="forbid")

    check_duplicates: bool = Field(
        default=True,
        description="Reject a submitted job whose name matches a job that is "
        "still active. Pooled (finished) jobs are not considered.",
    )
    max_pooled_tasks: int = Field(
        default=1024,
        ge=0,
        description="Upper bound on Task instances kept for reuse. "
        "Only relevant when recycle_tasks is enabled.",
    )
    recycle_tasks: bool = Field(
        default=False,
        description="Return a finished job's tasks to the task pool. Leave off "
        "when Task objects are shared between jobs or kept by the caller.",
    )
    trace_tasks: bool = Field(
        default=False,
        description="Log a debug event with elapsed time and ticks for every "
        "completed task.",
    )
    tick_interval_seconds: float = Field(
        default=1.0 / 60.0,
        gt=0.0,
        le=60.0,
        description="Sleep between ticks when tickflow drives the loop itself "
        "(run_tick_loop, `tickflow demo`).",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level for structlog output.",
    )
    log_file: Path | None = Field(
        default=None,
        description="Log file path. None means log to stderr only.",
    )


def load_config(path: Path) -> ManagerConfig:
    """Load a ManagerConfig from a YAML file.

    An empty file yields the defaults.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value is out of range or unknown.
    """
    with open(path, encoding="utf-8") as f:
        raw: Any = yaml.safe_load(f)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(raw).__name__}")
    config = ManagerConfig.model_validate(raw)
    _logger.debug("config.loaded", path=str(path))
    return config


__all__ = ["ManagerConfig", "load_config"]
