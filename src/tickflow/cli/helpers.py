"""Shared CLI state and helpers.

Global options (``--log-level``, ``--log-file``, ``--log-format``) are
parsed by callbacks before any command runs and collected in a single
module-level ``CliLoggingConfig``; ``configure_global_logging()`` applies
them once per session. Commands that load a config file call
``apply_config_logging()`` so its log settings fill in for options that were
not given.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import typer
from rich.console import Console
from rich.markup import escape

from tickflow.core.logging import configure_logging
from tickflow.manager.config import ManagerConfig


@dataclass
class CliLoggingConfig:
    """Centralized CLI logging configuration state."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console", "both"] = "console"
    level_from_cli: bool = False
    file_from_cli: bool = False
    configured: bool = False


_log_config = CliLoggingConfig()


def get_log_level() -> str:
    return _log_config.level


def set_log_level(level: str) -> None:
    _log_config.level = level.upper()  # type: ignore[assignment]
    _log_config.level_from_cli = True


def get_log_file() -> Path | None:
    return _log_config.file


def set_log_file(path: Path | None) -> None:
    _log_config.file = path
    _log_config.file_from_cli = path is not None


def set_log_format(fmt: str) -> None:
    _log_config.format = fmt.lower()  # type: ignore[assignment]


def configure_global_logging(console: Console) -> None:
    """Apply the collected logging options. Only configures once per session.

    Raises:
        typer.Exit: If the options are inconsistent (e.g. format "both"
            without a log file) or name an unknown level.
    """
    if _log_config.configured:
        return

    if _log_config.level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
        console.print(f"[red]Logging configuration error:[/red] unknown level {_log_config.level!r}")
        raise typer.Exit(1)
    if _log_config.format not in ("json", "console", "both"):
        console.print(f"[red]Logging configuration error:[/red] unknown format {_log_config.format!r}")
        raise typer.Exit(1)

    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
    except ValueError as e:
        console.print(f"[red]Logging configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None
    _log_config.configured = True


def apply_config_logging(config: ManagerConfig, console: Console) -> None:
    """Reconfigure logging from a loaded config file.

    Only ``log_level``/``log_file`` keys present in the file are applied, and
    ``--log-level``/``--log-file`` (or their environment variables) win over
    them.
    """
    changed = False
    if "log_level" in config.model_fields_set and not _log_config.level_from_cli:
        _log_config.level = config.log_level
        changed = True
    if "log_file" in config.model_fields_set and not _log_config.file_from_cli:
        _log_config.file = config.log_file
        changed = True
    if changed:
        _log_config.configured = False
        configure_global_logging(console)


def reset_logging_state() -> None:
    """Reset logging options to their defaults (primarily for testing)."""
    global _log_config
    _log_config = CliLoggingConfig()


__all__ = [
    "CliLoggingConfig",
    "apply_config_logging",
    "configure_global_logging",
    "get_log_file",
    "get_log_level",
    "reset_logging_state",
    "set_log_file",
    "set_log_format",
    "set_log_level",
]
