"""Severity aggregation over snapshots and dependencies.

Everything here is a pure function of its arguments. Ranking follows the
fixed severity ranks (CRITICAL=4 .. UNKNOWN=0); dependencies are ordered by
vulnerability count, then highest severity, then coordinate string.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional

from ..diff.models import TrendResult
from ..snapshot.models import (
    SEVERITY_ORDER,
    Coordinates,
    DependencySnapshot,
    ScanSnapshot,
    Severity,
    SeverityCounts,
    highest_severity,
)


@dataclass(frozen=True)
class AffectedDependency:
    """One vulnerable dependency in a baseline listing."""

    coordinates: Coordinates
    is_direct: bool
    scope: str
    vulnerability_ids: tuple[str, ...]
    severity_breakdown: Mapping[str, int]
    max_severity: Severity

    @property
    def vulnerability_count(self) -> int:
        return len(self.vulnerability_ids)


@dataclass(frozen=True)
class TrendSummary:
    """Headline numbers of a TrendResult."""

    resolved_jar_count: int
    new_jar_count: int
    pending_jar_count: int
    resolved_vulnerability_count: int
    new_vulnerability_count: int
    persisting_vulnerability_count: int
    total_vulnerability_trend: int

    @property
    def improving(self) -> bool:
        return self.total_vulnerability_trend < 0

    @property
    def regressing(self) -> bool:
        return self.total_vulnerability_trend > 0


def severity_breakdown(dependency: DependencySnapshot) -> dict[str, int]:
    """Count of the dependency's vulnerabilities per severity, CRITICAL first."""
    counts = SeverityCounts.from_severities(
        dependency.severity_of(v) for v in dependency.vulnerability_ids
    )
    return {s.value: counts.count(s) for s in SEVERITY_ORDER}


def max_severity(dependency: DependencySnapshot) -> Severity:
    """Highest severity among the dependency's vulnerabilities (UNKNOWN if none)."""
    return highest_severity(dependency.severity_of(v) for v in dependency.vulnerability_ids)


def most_vulnerable(snapshot: ScanSnapshot) -> Optional[Coordinates]:
    """Coordinates of the dependency with the most vulnerabilities.

    Ties are broken by highest severity, then by coordinate string.
    Returns None when no dependency is vulnerable.
    """
    ranked = _ranked_vulnerable(snapshot)
    return ranked[0].coordinates if ranked else None


def risk_score(snapshot: ScanSnapshot, clamp: bool = False) -> float:
    """Risk score of a snapshot.

    ``vulnerable_ratio * 50 + vulnerability_density * 50``, rounded half-up to
    one decimal. Density can exceed 1, so the score can exceed 100 unless
    ``clamp`` is set.
    """
    if snapshot.total_dependencies == 0:
        return 0.0

    vulnerable_ratio = snapshot.vulnerable_dependency_count / snapshot.total_dependencies
    vulnerability_density = snapshot.total_vulnerabilities / snapshot.total_dependencies

    score = vulnerable_ratio * 50.0 + vulnerability_density * 50.0
    score = math.floor(score * 10.0 + 0.5) / 10.0
    if clamp:
        score = min(100.0, max(0.0, score))
    return score


def severity_distribution(snapshot: ScanSnapshot) -> dict[str, float]:
    """Share of all vulnerabilities per severity (zeros when there are none)."""
    counts = snapshot.severity_counts
    total = counts.total
    if total == 0:
        return {s.value: 0.0 for s in SEVERITY_ORDER}
    return {s.value: counts.count(s) / total for s in SEVERITY_ORDER}


def dependency_breakdown(snapshot: ScanSnapshot) -> dict[str, int]:
    vulnerable = sum(1 for d in snapshot.dependencies if d.is_vulnerable)
    clean = len(snapshot.dependencies) - vulnerable
    return {"CLEAN": clean, "VULNERABLE": vulnerable, "TOTAL": clean + vulnerable}


def affected_dependencies(snapshot: ScanSnapshot) -> list[AffectedDependency]:
    """Every vulnerable dependency of the snapshot, most vulnerable first.

    This is the baseline listing shown when a project has only one scan.
    """
    return [_affected(dep) for dep in _ranked_vulnerable(snapshot)]


def top_vulnerable(snapshot: ScanSnapshot, limit: int = 10) -> list[AffectedDependency]:
    if limit < 1:
        return []
    return affected_dependencies(snapshot)[:limit]


def summarize_trend(result: TrendResult) -> TrendSummary:
    every_jar = result.resolved_jars + result.new_vulnerable_jars + result.pending_vulnerable_jars
    return TrendSummary(
        resolved_jar_count=len(result.resolved_jars),
        new_jar_count=len(result.new_vulnerable_jars),
        pending_jar_count=len(result.pending_vulnerable_jars),
        resolved_vulnerability_count=sum(len(j.resolved_vulnerability_ids) for j in every_jar),
        new_vulnerability_count=sum(len(j.new_vulnerability_ids) for j in every_jar),
        persisting_vulnerability_count=sum(
            len(j.persisting_vulnerability_ids) for j in every_jar
        ),
        total_vulnerability_trend=result.severity_trend.total,
    )


def _ranked_vulnerable(snapshot: ScanSnapshot) -> list[DependencySnapshot]:
    return sorted(
        snapshot.vulnerable_dependencies(),
        key=lambda d: (-len(d.vulnerability_ids), -max_severity(d).rank, str(d.coordinates)),
    )


def _affected(dep: DependencySnapshot) -> AffectedDependency:
    return AffectedDependency(
        coordinates=dep.coordinates,
        is_direct=dep.is_direct,
        scope=dep.scope,
        vulnerability_ids=tuple(sorted(dep.vulnerability_ids)),
        severity_breakdown=severity_breakdown(dep),
        max_severity=max_severity(dep),
    )
