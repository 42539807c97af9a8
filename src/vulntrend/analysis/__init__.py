"""Severity aggregation and trend analysis."""

from .severity import (
    AffectedDependency,
    TrendSummary,
    affected_dependencies,
    dependency_breakdown,
    max_severity,
    most_vulnerable,
    risk_score,
    severity_breakdown,
    severity_distribution,
    summarize_trend,
    top_vulnerable,
)
from .trend import TrendOutcome, TrendReport, analyze_trend, process_scan

__all__ = [
    "AffectedDependency",
    "TrendOutcome",
    "TrendReport",
    "TrendSummary",
    "affected_dependencies",
    "analyze_trend",
    "dependency_breakdown",
    "max_severity",
    "most_vulnerable",
    "process_scan",
    "risk_score",
    "severity_breakdown",
    "severity_distribution",
    "summarize_trend",
    "top_vulnerable",
]
