"""Data models for scan snapshots, the immutable record of one completed scan.

A ``ScanSnapshot`` is created once per scan by the extractor, appended to its
project's history and never mutated afterwards. All fields are plain values
or immutable collections of plain values so snapshots can be shared between
threads and serialised without ORM machinery.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from ..exceptions import InvalidArgumentError


class Severity(Enum):
    """Severity labels with the fixed ordinal ranks used for sorting."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANKS[self]

    @classmethod
    def from_label(cls, label: Optional[str]) -> Severity:
        """Map a scanner severity label to a ``Severity``.

        Matching is case-insensitive. ``MODERATE`` (used by GitHub advisories)
        is treated as ``MEDIUM``; anything else unrecognised is ``UNKNOWN``.
        """
        if not label:
            return cls.UNKNOWN
        normalized = str(label).strip().upper()
        if normalized == "MODERATE":
            return cls.MEDIUM
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_score(cls, score: Optional[float]) -> Severity:
        """Derive a severity from a CVSS v3 base score."""
        if score is None:
            return cls.UNKNOWN
        if score >= 9.0:
            return cls.CRITICAL
        if score >= 7.0:
            return cls.HIGH
        if score >= 4.0:
            return cls.MEDIUM
        if score > 0.0:
            return cls.LOW
        return cls.UNKNOWN


_SEVERITY_RANKS = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.UNKNOWN: 0,
}

# Highest rank first; the order every per-severity dict is emitted in.
SEVERITY_ORDER: tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.UNKNOWN,
)


def highest_severity(severities: Iterable[Severity]) -> Severity:
    """Highest-ranked severity in ``severities`` (UNKNOWN when empty)."""
    return max(severities, key=lambda s: s.rank, default=Severity.UNKNOWN)


@dataclass(frozen=True, order=True)
class Coordinates:
    """Group, artifact and version of a resolved dependency."""

    group_id: str
    artifact_id: str
    version: str

    def __str__(self) -> str:
        if self.group_id:
            return f"{self.group_id}:{self.artifact_id}:{self.version}"
        return f"{self.artifact_id}:{self.version}"

    @classmethod
    def parse(cls, text: str) -> Coordinates:
        """Parse ``group:artifact:version`` or ``artifact:version``."""
        parts = text.split(":")
        if len(parts) == 3:
            return cls(parts[0], parts[1], parts[2])
        if len(parts) == 2:
            return cls("", parts[0], parts[1])
        raise ValueError(f"expected 'group:artifact:version' or 'artifact:version', got '{text}'")


@dataclass(frozen=True, order=True)
class ProjectKey:
    """Identity of a scanned project (group + artifact)."""

    group_id: str
    artifact_id: str

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"

    @classmethod
    def coerce(cls, value: Union[ProjectKey, str, None]) -> ProjectKey:
        """Accept a ``ProjectKey`` or a ``group:artifact`` string.

        Raises:
            InvalidArgumentError: If the value is missing or blank.
        """
        if isinstance(value, ProjectKey):
            if not value.group_id.strip() or not value.artifact_id.strip():
                raise InvalidArgumentError("project_key", "group and artifact must be non-empty")
            return value
        if value is None or not str(value).strip():
            raise InvalidArgumentError("project_key", "must be non-empty")
        group, sep, artifact = str(value).strip().partition(":")
        if not sep or not group or not artifact:
            raise InvalidArgumentError("project_key", f"expected 'group:artifact', got '{value}'")
        return cls(group, artifact)


@dataclass(frozen=True)
class SeverityCounts:
    """Vulnerability counts per severity bucket."""

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    unknown: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low + self.unknown

    def count(self, severity: Severity) -> int:
        return getattr(self, severity.value.lower())

    def as_dict(self) -> dict[str, int]:
        return {s.value: self.count(s) for s in SEVERITY_ORDER}

    def minus(self, other: SeverityCounts) -> SeverityCounts:
        """Signed per-bucket difference ``self - other``."""
        return SeverityCounts(
            critical=self.critical - other.critical,
            high=self.high - other.high,
            medium=self.medium - other.medium,
            low=self.low - other.low,
            unknown=self.unknown - other.unknown,
        )

    @classmethod
    def from_severities(cls, severities: Iterable[Severity]) -> SeverityCounts:
        tally = {s: 0 for s in SEVERITY_ORDER}
        for severity in severities:
            tally[severity] += 1
        return cls(
            critical=tally[Severity.CRITICAL],
            high=tally[Severity.HIGH],
            medium=tally[Severity.MEDIUM],
            low=tally[Severity.LOW],
            unknown=tally[Severity.UNKNOWN],
        )


@dataclass(frozen=True)
class DependencySnapshot:
    """One dependency's state at scan time."""

    coordinates: Coordinates
    is_direct: bool = False
    scope: str = ""
    vulnerability_ids: frozenset[str] = field(default_factory=frozenset)
    severity_by_vulnerability_id: Mapping[str, Severity] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        # Accept any iterable/mapping from callers but store immutable copies
        object.__setattr__(self, "vulnerability_ids", frozenset(self.vulnerability_ids))
        object.__setattr__(
            self,
            "severity_by_vulnerability_id",
            MappingProxyType(dict(self.severity_by_vulnerability_id)),
        )

    @property
    def is_vulnerable(self) -> bool:
        return bool(self.vulnerability_ids)

    def severity_of(self, vulnerability_id: str) -> Severity:
        return self.severity_by_vulnerability_id.get(vulnerability_id, Severity.UNKNOWN)


@dataclass(frozen=True)
class ScanSnapshot:
    """One completed scan of a project."""

    project_key: ProjectKey
    timestamp: datetime
    total_dependencies: int = 0
    vulnerable_dependency_count: int = 0
    total_vulnerabilities: int = 0
    severity_counts: SeverityCounts = field(default_factory=SeverityCounts)
    dependencies: tuple[DependencySnapshot, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))

    def vulnerable_dependencies(self) -> list[DependencySnapshot]:
        return [d for d in self.dependencies if d.is_vulnerable]


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
