"""Trend CLI command -- record scan files in order and show what changed."""

import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.table import Table

from ..analysis.severity import AffectedDependency, risk_score, summarize_trend
from ..analysis.trend import TrendReport, analyze_trend
from ..diff.models import JarDiff
from ..exceptions import VulnTrendError
from ..logging_config import setup_logging
from ..persistence import ProjectRegistry, trend_result_to_dict
from ..persistence.models import HistoryState
from ..snapshot import extract
from . import app
from ._common import SEVERITY_STYLES, ReplayClock, console, file_time, load_scan_file, resolve_config


@app.command()
def trend(
    scans: List[Path] = typer.Argument(
        ...,
        help="Scan result JSON files, oldest first when they carry no timestamp",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    owasp: bool = typer.Option(
        False,
        "--owasp",
        help="Read OWASP Dependency-Check JSON reports (requires --project)",
    ),
    project: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project identity as group:artifact (overrides the scan files)",
    ),
    fmt: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: rich (tables) or json",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    max_sessions: Optional[int] = typer.Option(
        None,
        "--max-sessions",
        help="Snapshots retained per project",
        min=1,
    ),
    no_ttl: bool = typer.Option(
        False,
        "--no-ttl",
        help="Keep snapshots regardless of age",
    ),
    clamp: bool = typer.Option(
        False,
        "--clamp-risk",
        help="Clamp the risk score to 0-100",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
):
    """
    Show the vulnerability trend across successive scans.

    Every file is one scan. The first scan of a project is its baseline;
    each later scan is compared with the one before it and dependencies are
    classified as resolved, new or pending.

    [bold cyan]Examples:[/bold cyan]

      vulntrend trend scan-monday.json scan-tuesday.json

      vulntrend trend --owasp -p com.acme:shop old-report.json new-report.json

      vulntrend trend scans/*.json --format json
    """
    if fmt not in ("rich", "json"):
        console.print(f"[red]Error:[/red] unknown format '{fmt}' (expected rich or json)")
        raise typer.Exit(2)
    if owasp and not project:
        console.print("[red]Error:[/red] --owasp requires --project group:artifact")
        raise typer.Exit(2)

    try:
        settings = resolve_config(
            config=config,
            max_sessions=max_sessions,
            no_ttl=no_ttl,
            clamp=clamp,
            verbose=verbose,
            quiet=quiet,
        )
        setup_logging(settings.verbosity)
        snapshots = [
            extract(load_scan_file(path, owasp=owasp, project=project), timestamp=file_time(path))
            for path in scans
        ]
    except VulnTrendError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] could not read scan file: {e}")
        raise typer.Exit(1)

    snapshots.sort(key=lambda s: s.timestamp)
    clock = ReplayClock(snapshots[0].timestamp)

    with ProjectRegistry(settings, clock=clock) as registry:
        try:
            for snapshot in snapshots:
                clock.now = snapshot.timestamp
                registry.store_scan_result(snapshot)
        except VulnTrendError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

        keys = sorted({s.project_key for s in snapshots})
        reports = [analyze_trend(registry, key) for key in keys]

    if fmt == "json":
        print(json.dumps([_report_to_dict(r, settings.clamp_risk_score) for r in reports], indent=2))
        return

    for report in reports:
        _print_report(report, settings.clamp_risk_score)


# ── JSON output ──────────────────────────────────────────────────────────────


def _report_to_dict(report: TrendReport, clamp: bool) -> dict[str, Any]:
    return {
        "project": str(report.project_key),
        "state": report.state.value,
        "historical_scans": report.historical_scans,
        "risk_score": risk_score(report.latest, clamp=clamp) if report.latest else None,
        "vulnerable_dependencies": [_affected_to_dict(d) for d in report.vulnerable_dependencies],
        "trend": trend_result_to_dict(report.trend) if report.trend else None,
    }


def _affected_to_dict(dep: AffectedDependency) -> dict[str, Any]:
    return {
        "coordinates": str(dep.coordinates),
        "is_direct": dep.is_direct,
        "scope": dep.scope,
        "vulnerability_ids": list(dep.vulnerability_ids),
        "severity_breakdown": dict(dep.severity_breakdown),
        "max_severity": dep.max_severity.value,
    }


# ── Rich output ──────────────────────────────────────────────────────────────


def _print_report(report: TrendReport, clamp: bool) -> None:
    console.print()
    console.print(
        f"[bold cyan]{report.project_key}[/bold cyan] "
        f"-- {report.state.value.replace('_', ' ')} ({report.historical_scans} scans retained)"
    )
    if report.state is HistoryState.NO_HISTORY or report.latest is None:
        console.print("  [dim]No retained scans.[/dim]")
        return

    latest = report.latest
    console.print(
        f"  {latest.total_dependencies} dependencies, "
        f"{latest.vulnerable_dependency_count} vulnerable, "
        f"{latest.total_vulnerabilities} vulnerabilities, "
        f"risk score {risk_score(latest, clamp=clamp)}"
    )

    if report.trend is None:
        console.print("  [dim]Baseline scan: no previous scan to compare against.[/dim]")
        _print_affected(report.vulnerable_dependencies)
        return

    summary = summarize_trend(report.trend)
    delta = report.trend.severity_trend
    color = "red" if summary.regressing else "green" if summary.improving else "dim"
    console.print(
        f"  Trend: [{color}]{delta.total:+d}[/{color}] vulnerabilities "
        f"(critical {delta.critical:+d}, high {delta.high:+d}, "
        f"medium {delta.medium:+d}, low {delta.low:+d})"
    )
    console.print(
        f"  [green]{summary.resolved_jar_count} resolved[/green], "
        f"[red]{summary.new_jar_count} new[/red], "
        f"[yellow]{summary.pending_jar_count} pending[/yellow]"
    )

    _print_jars("Resolved", report.trend.resolved_jars, "resolved")
    _print_jars("New", report.trend.new_vulnerable_jars, "new")
    _print_jars("Pending", report.trend.pending_vulnerable_jars, "current")
    console.print()


def _print_affected(deps: tuple[AffectedDependency, ...]) -> None:
    if not deps:
        console.print("  [green]No vulnerable dependencies.[/green]")
        return
    table = Table(show_header=True, show_lines=False, pad_edge=True)
    table.add_column("Dependency")
    table.add_column("Vulns", justify="right")
    table.add_column("Max severity")
    table.add_column("Direct")
    for dep in deps:
        style = SEVERITY_STYLES[dep.max_severity.value]
        table.add_row(
            str(dep.coordinates),
            str(dep.vulnerability_count),
            f"[{style}]{dep.max_severity.value}[/{style}]",
            "yes" if dep.is_direct else "",
        )
    console.print(table)


def _print_jars(title: str, jars: tuple[JarDiff, ...], ids: str) -> None:
    if not jars:
        return
    table = Table(title=title, show_header=True, show_lines=False, pad_edge=True)
    table.add_column("Dependency")
    table.add_column("Max severity")
    table.add_column("Resolved ids" if ids == "resolved" else "Vulnerability ids")
    if ids == "current":
        table.add_column("Fixed")
        table.add_column("Introduced")
    for jar in jars:
        style = SEVERITY_STYLES[jar.max_severity.value]
        row = [str(jar.coordinates), f"[{style}]{jar.max_severity.value}[/{style}]"]
        if ids == "resolved":
            row.append(", ".join(jar.resolved_vulnerability_ids))
        elif ids == "new":
            row.append(", ".join(jar.new_vulnerability_ids))
        else:
            row.append(", ".join(jar.current_vulnerability_ids))
            row.append(", ".join(jar.resolved_vulnerability_ids))
            row.append(", ".join(jar.new_vulnerability_ids))
        table.add_row(*row)
    console.print(table)
