"""tickflow CLI.

Built with Typer. Global options (--version, --log-level, --log-file,
--log-format) are handled by callbacks on the app; commands live in
``tickflow.cli.commands``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from tickflow import __version__

from . import helpers as helpers
from .commands import config_app, demo
from .helpers import configure_global_logging, set_log_file, set_log_format, set_log_level
from .output import console

app = typer.Typer(
    name="tickflow",
    help="Cooperative, tick-driven job sequencer",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"tickflow v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="TICKFLOW_LOG_LEVEL",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Path for log file output",
            envvar="TICKFLOW_LOG_FILE",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json, console, or both",
            envvar="TICKFLOW_LOG_FORMAT",
        ),
    ] = None,
) -> None:
    """tickflow - cooperative, tick-driven job sequencer."""
    configure_global_logging(console)


app.command()(demo)
app.add_typer(config_app)


__all__ = ["app", "main"]
