"""Structured logging infrastructure for tickflow.

Provides structured logging using structlog with tickflow-specific context
such as the job name, current task index and host tick. Supports console
and JSON output, optionally to a rotating log file.

Example usage:
    from tickflow.core.logging import get_logger, configure_logging, with_context

    # Configure once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a component-specific logger
    logger = get_logger("manager")

    # Log with key/value context
    logger.info("job_registered", job="warmup")

    # Correlate every event emitted while a job is stepped
    with with_context(JobContext(job="warmup", task_index=2, tick=118)):
        logger.debug("task_polled")  # includes job, task_index, tick
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console", "both"]


@dataclass(frozen=True)
class JobContext:
    """Immutable context for correlating log entries of one job step.

    Attributes:
        job: Name of the job being advanced.
        task_index: Index of the task the job is on (None before start).
        tick: Host tick counter at the time of the step.
    """

    job: str
    task_index: int | None = None
    tick: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging, skipping unset fields."""
        result: dict[str, Any] = {"job": self.job}
        if self.task_index is not None:
            result["task_index"] = self.task_index
        if self.tick is not None:
            result["tick"] = self.tick
        return result


_current_context: ContextVar[JobContext | None] = ContextVar(
    "tickflow_context", default=None
)


def get_current_context() -> JobContext | None:
    """Get the current JobContext if set."""
    return _current_context.get()


@contextmanager
def with_context(ctx: JobContext) -> Iterator[JobContext]:
    """Set a JobContext for the duration of a block.

    All log calls within the block include the context fields when the
    ``_add_context`` processor is active. Contexts nest: a job callback that
    advances another manager restores the outer context on exit.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds an ISO8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds JobContext fields to log entries.

    Explicit bindings take precedence over context fields.
    """
    ctx = get_current_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            if key not in event_dict:
                event_dict[key] = value
    return event_dict


class TickflowLogger:
    """Logger wrapper around structlog bound to a component name.

    The underlying structlog logger is fetched lazily on every call so that
    loggers created at import time still respect ``configure_logging()``
    calls made later.
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def bind(self, **context: Any) -> TickflowLogger:
        """Create a new logger with additional bound context."""
        new_logger = TickflowLogger.__new__(TickflowLogger)
        new_logger._component = self._component
        new_logger._context = {**self._context, **context}
        return new_logger

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log an error with traceback. Call from within an exception handler."""
        self._get_logger().exception(event, **kw)


def _base_processors(include_timestamps: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _add_context,
    ]
    if include_timestamps:
        processors.append(_add_timestamp)
    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ])
    return processors


def _get_console_processors(include_timestamps: bool) -> list[Processor]:
    """Get structlog processors for human-readable console output."""
    return [
        *_base_processors(include_timestamps),
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
    ]


def _get_json_processors(include_timestamps: bool) -> list[Processor]:
    """Get structlog processors for JSON output."""
    return [
        *_base_processors(include_timestamps),
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(
    level: LogLevel = "INFO",
    format: LogFormat = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    include_timestamps: bool = True,
) -> None:
    """Configure tickflow structured logging.

    Call once at application startup, before the first tick.

    Args:
        level: Minimum log level to capture.
        format: "json" for structured, "console" for human-readable,
            "both" for console to stderr and JSON to file (requires file_path).
        file_path: Optional file path for log output. Required if format="both".
        max_file_size_mb: Maximum log file size before rotation (MB).
        backup_count: Number of rotated log files to keep.
        include_timestamps: Whether to include ISO8601 timestamps.

    Raises:
        ValueError: If format="both" but file_path is not provided.
    """
    if format == "both" and file_path is None:
        raise ValueError("file_path is required when format='both'")

    log_level = getattr(logging, level)
    handlers: list[logging.Handler] = []

    if format in ("console", "both") and not (format == "console" and file_path):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        handlers.append(console_handler)

    if file_path is not None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        handlers.append(file_handler)
    elif format == "json":
        json_handler = logging.StreamHandler(sys.stdout)
        json_handler.setLevel(log_level)
        handlers.append(json_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)

    if format == "json":
        processors = _get_json_processors(include_timestamps)
    else:
        processors = _get_console_processors(include_timestamps)

    # cache_logger_on_first_use=False keeps import-time loggers in sync with
    # later reconfiguration.
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> TickflowLogger:
    """Get a tickflow logger for a component (e.g. "job", "manager")."""
    return TickflowLogger(component, **initial_context)


__all__ = [
    "JobContext",
    "TickflowLogger",
    "configure_logging",
    "get_current_context",
    "get_logger",
    "with_context",
]
