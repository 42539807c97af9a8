"""Data models for trend diffing: per-dependency deltas and the overall result.

A ``TrendResult`` is plain data. It carries no rendering logic and no
reference back to the snapshots it was computed from, so it can be handed
to any reporting layer or serialised as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping

from ..snapshot.models import Coordinates, Severity

RESOLVED = "resolved"
NEW = "new"
PENDING = "pending"


@dataclass(frozen=True)
class JarDiff:
    """Change in one dependency's vulnerability set between two scans.

    Status:
    - resolved: vulnerable before, clean (or absent) now
    - new: clean (or absent) before, vulnerable now
    - pending: vulnerable in both scans

    For pending entries the id sets decompose exactly: resolved + persisting
    is the previous set, persisting + new is the current set.
    """

    coordinates: Coordinates
    status: str  # "resolved" | "new" | "pending"
    previous_vulnerability_ids: tuple[str, ...] = ()
    current_vulnerability_ids: tuple[str, ...] = ()
    resolved_vulnerability_ids: tuple[str, ...] = ()
    new_vulnerability_ids: tuple[str, ...] = ()
    persisting_vulnerability_ids: tuple[str, ...] = ()
    severity_breakdown: Mapping[str, int] = field(default_factory=dict)
    max_severity: Severity = Severity.UNKNOWN

    @property
    def relevant_vulnerability_ids(self) -> tuple[str, ...]:
        """Ids the entry is ranked by: previous ids if resolved, else current."""
        if self.status == RESOLVED:
            return self.previous_vulnerability_ids
        return self.current_vulnerability_ids


@dataclass(frozen=True)
class SeverityTrend:
    """Signed vulnerability-count deltas (current - previous).

    Positive is a regression, negative an improvement.
    """

    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
        }


@dataclass(frozen=True)
class TrendResult:
    """Classification of a project's dependencies across two successive scans."""

    previous_timestamp: datetime
    current_timestamp: datetime
    resolved_jars: tuple[JarDiff, ...] = ()
    new_vulnerable_jars: tuple[JarDiff, ...] = ()
    pending_vulnerable_jars: tuple[JarDiff, ...] = ()
    total_jars_analyzed: int = 0
    severity_trend: SeverityTrend = field(default_factory=SeverityTrend)

    @property
    def has_changes(self) -> bool:
        if self.resolved_jars or self.new_vulnerable_jars:
            return True
        return any(
            jar.resolved_vulnerability_ids or jar.new_vulnerability_ids
            for jar in self.pending_vulnerable_jars
        )
