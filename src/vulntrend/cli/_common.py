"""Shared CLI helpers."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import HistoryConfig, load_config
from ..snapshot import RawScanResult, parse_dependency_check_report
from ..snapshot.models import ProjectKey

console = Console()

SEVERITY_STYLES = {
    "CRITICAL": "bold red",
    "HIGH": "red",
    "MEDIUM": "yellow",
    "LOW": "green",
    "UNKNOWN": "dim",
}


def resolve_config(
    config: Optional[Path] = None,
    max_projects: Optional[int] = None,
    max_sessions: Optional[int] = None,
    ttl_hours: Optional[float] = None,
    no_ttl: bool = False,
    clamp: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> HistoryConfig:
    """Build configuration from CLI options."""
    overrides = {}
    if max_projects is not None:
        overrides["max_projects"] = max_projects
    if max_sessions is not None:
        overrides["max_sessions_per_project"] = max_sessions
    if no_ttl:
        overrides["ttl_hours"] = None
    elif ttl_hours is not None:
        overrides["ttl_hours"] = ttl_hours
    if clamp:
        overrides["clamp_risk_score"] = True
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)


def load_scan_file(path: Path, owasp: bool = False, project: Optional[str] = None) -> RawScanResult:
    """Read one scan file into a raw scan result.

    Plain files use the ``RawScanResult.from_dict`` shape. OWASP
    Dependency-Check reports carry no usable project identity, so ``project``
    (``group:artifact``) is required for them.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If it is not valid JSON.
        VulnTrendError: If the content is malformed.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if owasp:
        key = ProjectKey.coerce(project)
        return parse_dependency_check_report(data, key.group_id, key.artifact_id)

    raw = RawScanResult.from_dict(data)
    if project:
        key = ProjectKey.coerce(project)
        raw.project_group_id, raw.project_artifact_id = key.group_id, key.artifact_id
    return raw


def file_time(path: Path) -> datetime:
    """Modification time of ``path`` in UTC, used when a scan has no timestamp."""
    return datetime.fromtimestamp(path.stat().st_mtime, timezone.utc)


class ReplayClock:
    """Clock pinned to the scan currently being replayed.

    Scan files are recorded in timestamp order as if each arrived live, so
    retention expires snapshots relative to the newest replayed scan rather
    than to the wall clock.
    """

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now
