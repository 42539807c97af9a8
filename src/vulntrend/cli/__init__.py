"""CLI entry point, registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="vulntrend",
    help="vuln-trend - Dependency vulnerability history and trend analysis",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
    ),
):
    """Track dependency vulnerabilities across scans."""
    if version:
        console.print(f"[bold cyan]vuln-trend[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


# Import subcommands to register them
from .config import show_config as _show_config  # noqa: F401, E402
from .trend import trend as _trend  # noqa: F401, E402


def main() -> None:
    app()
