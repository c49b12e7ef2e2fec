"""Configuration commands for the tickflow CLI.

Subcommands:
- `tickflow config show [PATH]`    - Display the effective config as a table
- `tickflow config validate PATH`  - Check a config file against the schema
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
import yaml
from pydantic import ValidationError
from rich.markup import escape

from tickflow.manager.config import ManagerConfig

from ..output import console, create_config_table

config_app = typer.Typer(
    name="config",
    help="Inspect manager configuration.",
    no_args_is_help=True,
)


def _load_config_data(path: Path | None) -> dict[str, Any]:
    """Load raw config YAML, returning an empty dict when no file is given."""
    if path is None:
        return {}
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"expected a mapping at top level, got {type(data).__name__}")
    return data


@config_app.command()
def show(
    config_file: Path | None = typer.Argument(
        None, exists=True, readable=True, help="Config YAML (default: built-in defaults)",
    ),
) -> None:
    """Display the effective manager configuration.

    Examples:
        tickflow config show
        tickflow config show tickflow.yaml
    """
    try:
        file_data = _load_config_data(config_file)
        effective = ManagerConfig.model_validate(file_data)
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading config:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    source = f"[dim]{config_file}[/dim]" if config_file else "[dim](defaults)[/dim]"
    console.print(f"\nManager configuration: {source}\n")
    console.print(create_config_table(effective.model_dump(mode="json"), set(file_data)))


@config_app.command()
def validate(
    config_file: Path = typer.Argument(..., exists=True, readable=True, help="Config YAML"),
) -> None:
    """Validate a manager config file.

    Exit codes: 0 valid, 1 schema errors, 2 unparseable YAML.
    """
    try:
        file_data = _load_config_data(config_file)
    except (ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Cannot parse {config_file}:[/red] {escape(str(e))}")
        raise typer.Exit(2) from None

    try:
        ManagerConfig.model_validate(file_data)
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {config_file}")
        for err in e.errors():
            loc = ".".join(str(part) for part in err["loc"]) or "(root)"
            console.print(f"  {loc}: {err['msg']}")
        raise typer.Exit(1) from None

    console.print(f"[green]Valid configuration:[/green] {config_file}")
