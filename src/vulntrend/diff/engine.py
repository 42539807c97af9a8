"""Diff engine: classifies dependencies across two ScanSnapshots.

The algorithm builds ``coordinates -> vulnerability ids`` maps for both
snapshots (vulnerable dependencies only) and walks the union of keys:

  - only vulnerable in current  -> new
  - only vulnerable in previous -> resolved
  - vulnerable in both          -> pending, with the id sets split into
                                   resolved / new / persisting
  - clean in both               -> excluded

Each category is sorted by the number of relevant ids (descending), then the
highest severity among them (descending), then the coordinate string.
"""

from __future__ import annotations

from typing import Mapping

from ..exceptions import InvalidArgumentError
from ..snapshot.models import (
    SEVERITY_ORDER,
    Coordinates,
    DependencySnapshot,
    ScanSnapshot,
    SeverityCounts,
    highest_severity,
)
from .models import NEW, PENDING, RESOLVED, JarDiff, SeverityTrend, TrendResult

# ── Public API ───────────────────────────────────────────────────────────────


def diff_snapshots(previous: ScanSnapshot, current: ScanSnapshot) -> TrendResult:
    """Compute the trend between two snapshots of the same project.

    Pure: the same pair of snapshots always yields an equal result.

    Args:
        previous: The older snapshot.
        current: The newer snapshot.

    Returns:
        TrendResult with resolved, new and pending dependencies plus the
        aggregate severity deltas.

    Raises:
        InvalidArgumentError: If either snapshot is ``None``.
    """
    if previous is None:
        raise InvalidArgumentError("previous", "snapshot is required")
    if current is None:
        raise InvalidArgumentError("current", "snapshot is required")

    old_by_coords = _vulnerable_by_coordinates(previous)
    new_by_coords = _vulnerable_by_coordinates(current)

    old_keys = set(old_by_coords)
    new_keys = set(new_by_coords)

    resolved = [_resolved(old_by_coords[k]) for k in old_keys - new_keys]
    added = [_new(new_by_coords[k]) for k in new_keys - old_keys]
    pending = [_pending(old_by_coords[k], new_by_coords[k]) for k in old_keys & new_keys]

    return TrendResult(
        previous_timestamp=previous.timestamp,
        current_timestamp=current.timestamp,
        resolved_jars=_ranked(resolved),
        new_vulnerable_jars=_ranked(added),
        pending_vulnerable_jars=_ranked(pending),
        total_jars_analyzed=current.total_dependencies,
        severity_trend=severity_trend(previous, current),
    )


def severity_trend(previous: ScanSnapshot, current: ScanSnapshot) -> SeverityTrend:
    """Signed count deltas between two snapshots (current - previous)."""
    delta = current.severity_counts.minus(previous.severity_counts)
    return SeverityTrend(
        total=current.total_vulnerabilities - previous.total_vulnerabilities,
        critical=delta.critical,
        high=delta.high,
        medium=delta.medium,
        low=delta.low,
    )


# ── Classification ───────────────────────────────────────────────────────────


def _vulnerable_by_coordinates(snapshot: ScanSnapshot) -> dict[Coordinates, DependencySnapshot]:
    return {dep.coordinates: dep for dep in snapshot.dependencies if dep.is_vulnerable}


def _resolved(old: DependencySnapshot) -> JarDiff:
    ids = _sorted_ids(old.vulnerability_ids)
    return JarDiff(
        coordinates=old.coordinates,
        status=RESOLVED,
        previous_vulnerability_ids=ids,
        resolved_vulnerability_ids=ids,
        severity_breakdown=_breakdown(old, ids),
        max_severity=highest_severity(old.severity_of(v) for v in ids),
    )


def _new(new: DependencySnapshot) -> JarDiff:
    ids = _sorted_ids(new.vulnerability_ids)
    return JarDiff(
        coordinates=new.coordinates,
        status=NEW,
        current_vulnerability_ids=ids,
        new_vulnerability_ids=ids,
        severity_breakdown=_breakdown(new, ids),
        max_severity=highest_severity(new.severity_of(v) for v in ids),
    )


def _pending(old: DependencySnapshot, new: DependencySnapshot) -> JarDiff:
    current_ids = _sorted_ids(new.vulnerability_ids)
    return JarDiff(
        coordinates=new.coordinates,
        status=PENDING,
        previous_vulnerability_ids=_sorted_ids(old.vulnerability_ids),
        current_vulnerability_ids=current_ids,
        resolved_vulnerability_ids=_sorted_ids(old.vulnerability_ids - new.vulnerability_ids),
        new_vulnerability_ids=_sorted_ids(new.vulnerability_ids - old.vulnerability_ids),
        persisting_vulnerability_ids=_sorted_ids(old.vulnerability_ids & new.vulnerability_ids),
        severity_breakdown=_breakdown(new, current_ids),
        max_severity=highest_severity(new.severity_of(v) for v in current_ids),
    )


# ── Helpers ──────────────────────────────────────────────────────────────────


def _sorted_ids(ids) -> tuple[str, ...]:
    return tuple(sorted(ids))


def _breakdown(dep: DependencySnapshot, ids: tuple[str, ...]) -> Mapping[str, int]:
    counts = SeverityCounts.from_severities(dep.severity_of(v) for v in ids)
    return {s.value: counts.count(s) for s in SEVERITY_ORDER}


def _ranked(jars: list[JarDiff]) -> tuple[JarDiff, ...]:
    return tuple(
        sorted(
            jars,
            key=lambda j: (
                -len(j.relevant_vulnerability_ids),
                -j.max_severity.rank,
                str(j.coordinates),
            ),
        )
    )
