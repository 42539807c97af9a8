"""
vuln-trend - Dependency vulnerability history and trend analysis

Keeps a bounded, in-memory history of dependency scans per project and
classifies each dependency between successive scans as resolved, new or
pending, with aggregate severity deltas.
"""

__version__ = "0.1.0"

from .analysis import TrendOutcome, TrendReport, analyze_trend, process_scan, risk_score
from .config import HistoryConfig, load_config
from .diff import JarDiff, SeverityTrend, TrendResult, diff_snapshots
from .persistence import HistoryState, ProjectRegistry, ScanRecordStore
from .snapshot import (
    Coordinates,
    DependencySnapshot,
    ProjectKey,
    RawDependency,
    RawScanResult,
    RawVulnerability,
    ScanSnapshot,
    Severity,
    extract,
)

__all__ = [
    "process_scan",  # Main entry point for a scan pipeline
    "analyze_trend",
    "diff_snapshots",
    "extract",
    "risk_score",
    "ProjectRegistry",
    "ScanRecordStore",
    "HistoryConfig",
    "load_config",
    "HistoryState",
    "TrendOutcome",
    "TrendReport",
    "TrendResult",
    "JarDiff",
    "SeverityTrend",
    "Coordinates",
    "DependencySnapshot",
    "ProjectKey",
    "ScanSnapshot",
    "Severity",
    "RawDependency",
    "RawScanResult",
    "RawVulnerability",
]
