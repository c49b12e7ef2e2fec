"""Demo command for the tickflow CLI.

Runs a small sample workflow on a real-time tick loop so the sequencing,
timer and callback behavior can be watched from a terminal:

    1. action     print "task1"
    2. condition  becomes true after --wait-ticks polls
    3. action     print "task3" (or raise with --fail)
    4. timer      wait --timer seconds
    5. action     print "finished!"
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.markup import escape

from tickflow.core.clock import SystemClock
from tickflow.core.job import JobOutcome
from tickflow.manager.config import ManagerConfig, load_config
from tickflow.manager.loop import run_tick_loop
from tickflow.manager.manager import JobManager

from ..helpers import apply_config_logging, get_log_file
from ..output import console, create_snapshot_table


def demo(
    wait_ticks: int = typer.Option(
        3, "--wait-ticks", min=0, help="Polls before the condition step becomes true",
    ),
    timer: float = typer.Option(0.123, "--timer", help="Seconds the timer step waits"),
    interval: float | None = typer.Option(
        None, "--interval", help="Seconds between ticks (default: config tick_interval_seconds)",
    ),
    max_ticks: int = typer.Option(
        1000, "--max-ticks", min=1, help="Give up after this many ticks",
    ),
    fail: bool = typer.Option(False, "--fail", help="Make the third step raise"),
    config_file: Path | None = typer.Option(
        None, "--config", "-c", exists=True, readable=True, help="Manager config YAML",
    ),
    json_output: bool = typer.Option(
        False, "--json", "-j", help="Print the final snapshot as JSON",
    ),
) -> None:
    """Run the sample workflow and print the manager's diagnostics."""
    try:
        config = load_config(config_file) if config_file else ManagerConfig()
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None
    apply_config_logging(config, console)

    clock = SystemClock()
    manager = JobManager(config, clock=clock)
    polls = 0

    def condition_met() -> bool:
        nonlocal polls
        polls += 1
        return polls > wait_ticks

    def third_step() -> None:
        if fail:
            raise RuntimeError("third step failed on request")
        console.print("task3")

    tasks = [
        manager.new_action(lambda: console.print("task1")),
        manager.new_condition(condition_met),
        manager.new_action(third_step),
        manager.new_timer(timer),
        manager.new_action(lambda: console.print("finished!")),
    ]
    job = manager.submit(
        "demo",
        tasks,
        on_finished=lambda: console.print("[green]demo finished[/green]"),
        on_stopped=lambda: console.print("[magenta]demo stopped[/magenta]"),
        on_failed=lambda: console.print("[red]demo failed[/red]"),
    )

    ticks = asyncio.run(
        run_tick_loop(
            manager,
            clock,
            interval_seconds=interval,
            max_ticks=max_ticks,
            until_idle=True,
        )
    )

    snapshot = manager.snapshot()
    if json_output:
        console.print_json(snapshot.model_dump_json())
    else:
        console.print(create_snapshot_table(snapshot))
        console.print(f"Ran {ticks} ticks.")
        log_file = get_log_file()
        if log_file is not None:
            console.print(f"[dim]Logs written to {log_file}[/dim]")

    if job.outcome is not JobOutcome.FINISHED:
        raise typer.Exit(1)
