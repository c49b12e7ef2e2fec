"""Pytest fixtures for tickflow tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator
from typing import Any

import pytest
import structlog

from tickflow.core.clock import ManualClock
from tickflow.core.logging import configure_logging
from tickflow.manager.config import ManagerConfig
from tickflow.manager.manager import JobManager


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset structlog, root handlers and CLI logging options around each test."""
    from tickflow.cli import helpers

    helpers.reset_logging_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    helpers.reset_logging_state()
    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


class CapturingHandler(logging.Handler):
    """Collects JSON-rendered log records as dicts."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.events: list[dict[str, Any]] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.events.append(json.loads(record.getMessage()))

    def named(self, event: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e.get("event") == event]


@pytest.fixture
def log_events() -> CapturingHandler:
    """JSON logging at DEBUG with every event captured in memory."""
    configure_logging(level="DEBUG", format="json", include_timestamps=False)
    handler = CapturingHandler()
    logging.getLogger().addHandler(handler)
    return handler


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def manager(clock: ManualClock) -> JobManager:
    """Manager with default config on a manual clock."""
    return JobManager(ManagerConfig(), clock=clock)
