"""Scan snapshots: normalised, immutable records of completed scans."""

from .extractor import extract
from .models import (
    SEVERITY_ORDER,
    Coordinates,
    DependencySnapshot,
    ProjectKey,
    ScanSnapshot,
    Severity,
    SeverityCounts,
)
from .owasp import parse_dependency_check_report
from .raw import RawDependency, RawScanResult, RawVulnerability

__all__ = [
    "extract",
    "parse_dependency_check_report",
    "SEVERITY_ORDER",
    "Coordinates",
    "DependencySnapshot",
    "ProjectKey",
    "ScanSnapshot",
    "Severity",
    "SeverityCounts",
    "RawDependency",
    "RawScanResult",
    "RawVulnerability",
]
