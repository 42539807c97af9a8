"""Normalise a raw scan result into an immutable ScanSnapshot.

Pure and deterministic apart from the timestamp fallback: given the same raw
result and timestamp it always produces the same snapshot. Empty dependency
lists are valid ("nothing vulnerable"); a missing project identity or a
malformed dependency record is an error, so a broken scan never shows up
later as a misleadingly clean trend.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..exceptions import InvalidInputError
from ..logging_config import get_logger
from .models import (
    Coordinates,
    DependencySnapshot,
    ProjectKey,
    ScanSnapshot,
    Severity,
    SeverityCounts,
    ensure_utc,
    utc_now,
)
from .raw import RawDependency, RawScanResult, RawVulnerability

logger = get_logger(__name__)


def extract(raw: RawScanResult, *, timestamp: Optional[datetime] = None) -> ScanSnapshot:
    """Build a ``ScanSnapshot`` from a raw scan result.

    Args:
        raw: Scan result produced by the scanning engine.
        timestamp: Used when ``raw.timestamp`` is not set. Falls back to the
            current UTC time when both are missing.

    Returns:
        The normalised snapshot.

    Raises:
        InvalidInputError: If the project identity is missing, a dependency
            has no artifact id, or a vulnerability id is blank.
    """
    if raw is None:
        raise InvalidInputError("scan result is missing")
    project_key = _project_key(raw)

    severities = _severity_index(raw.vulnerabilities)

    # Merge duplicate records for the same coordinates (multi-module scans
    # report shared dependencies once per module)
    merged: dict[Coordinates, _DependencyAccumulator] = {}
    for position, dep in enumerate(raw.dependencies):
        coordinates = _coordinates(dep, position)
        acc = merged.get(coordinates)
        if acc is None:
            acc = merged[coordinates] = _DependencyAccumulator(coordinates)
        acc.add(dep, position)

    dependencies = tuple(acc.build(severities) for acc in merged.values())

    occurrences = [
        dep.severity_of(vuln_id) for dep in dependencies for vuln_id in dep.vulnerability_ids
    ]
    severity_counts = SeverityCounts.from_severities(occurrences)

    snapshot = ScanSnapshot(
        project_key=project_key,
        timestamp=ensure_utc(raw.timestamp or timestamp or utc_now()),
        total_dependencies=len(dependencies),
        vulnerable_dependency_count=sum(1 for d in dependencies if d.is_vulnerable),
        total_vulnerabilities=len(occurrences),
        severity_counts=severity_counts,
        dependencies=dependencies,
    )

    logger.debug(
        "Extracted snapshot for %s: %d dependencies, %d vulnerable, %d vulnerabilities",
        project_key,
        snapshot.total_dependencies,
        snapshot.vulnerable_dependency_count,
        snapshot.total_vulnerabilities,
    )
    return snapshot


def _project_key(raw: RawScanResult) -> ProjectKey:
    group = (raw.project_group_id or "").strip()
    artifact = (raw.project_artifact_id or "").strip()
    if not group:
        raise InvalidInputError("project group id is missing", field="project_group_id")
    if not artifact:
        raise InvalidInputError("project artifact id is missing", field="project_artifact_id")
    return ProjectKey(group, artifact)


def _coordinates(dep: RawDependency, position: int) -> Coordinates:
    artifact = (dep.artifact_id or "").strip()
    if not artifact:
        raise InvalidInputError(
            f"dependency #{position} has no artifact id", field="dependencies.artifact_id"
        )
    return Coordinates(
        group_id=(dep.group_id or "").strip(),
        artifact_id=artifact,
        version=(dep.version or "").strip(),
    )


def _severity_index(vulnerabilities: list[RawVulnerability]) -> dict[str, Severity]:
    """Map vulnerability id -> severity, preferring the label over the score.

    When the same id is reported more than once, the highest severity wins.
    """
    index: dict[str, Severity] = {}
    for vuln in vulnerabilities:
        vuln_id = _clean_id(vuln.id, "vulnerabilities.id")
        severity = Severity.from_label(vuln.severity)
        if severity is Severity.UNKNOWN:
            severity = Severity.from_score(vuln.score)
        current = index.get(vuln_id)
        if current is None or severity.rank > current.rank:
            index[vuln_id] = severity
    return index


def _clean_id(vuln_id: Optional[str], field: str) -> str:
    cleaned = "" if vuln_id is None else str(vuln_id).strip()
    if not cleaned:
        raise InvalidInputError("blank vulnerability id", field=field)
    return cleaned


class _DependencyAccumulator:
    """Collects one or more raw records for the same coordinates."""

    def __init__(self, coordinates: Coordinates):
        self.coordinates = coordinates
        self.is_direct = False
        self.scope = ""
        self.vulnerability_ids: set[str] = set()

    def add(self, dep: RawDependency, position: int) -> None:
        self.is_direct = self.is_direct or bool(dep.is_direct)
        if not self.scope and dep.scope:
            self.scope = dep.scope
        for vuln_id in dep.vulnerability_ids or ():
            self.vulnerability_ids.add(
                _clean_id(vuln_id, f"dependencies[{position}].vulnerability_ids")
            )

    def build(self, severities: dict[str, Severity]) -> DependencySnapshot:
        return DependencySnapshot(
            coordinates=self.coordinates,
            is_direct=self.is_direct,
            scope=self.scope,
            vulnerability_ids=frozenset(self.vulnerability_ids),
            severity_by_vulnerability_id={
                vuln_id: severities.get(vuln_id, Severity.UNKNOWN)
                for vuln_id in self.vulnerability_ids
            },
        )
