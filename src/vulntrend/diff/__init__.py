"""Trend diffing between two scan snapshots."""

from .engine import diff_snapshots, severity_trend
from .models import NEW, PENDING, RESOLVED, JarDiff, SeverityTrend, TrendResult

__all__ = [
    "diff_snapshots",
    "severity_trend",
    "JarDiff",
    "SeverityTrend",
    "TrendResult",
    "NEW",
    "PENDING",
    "RESOLVED",
]
