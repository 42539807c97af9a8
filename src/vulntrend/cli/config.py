"""Config CLI command -- print the effective configuration."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import VulnTrendError
from . import app
from ._common import console, resolve_config


@app.command("config")
def show_config(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    fmt: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: rich (table) or json",
    ),
):
    """
    Show the configuration after merging files, environment and defaults.

    Sources, lowest priority first: ~/.vulntrend.toml, ./vulntrend.toml,
    --config, VULNTREND_* environment variables.
    """
    try:
        settings = resolve_config(config=config)
    except VulnTrendError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    values = settings.to_dict()

    if fmt == "json":
        print(json.dumps(values, indent=2))
        return

    table = Table(title="vuln-trend configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in values.items():
        table.add_row(name, "disabled" if value is None else str(value))
    console.print(table)
