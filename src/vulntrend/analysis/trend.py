"""Trend analysis on top of the registry: baseline vs. trending projects.

A project moves from NO_HISTORY to BASELINE on its first recorded scan and
to TRENDING on its second; every later scan is diffed against the scan
immediately before it, not against the first one. Neither NO_HISTORY nor
BASELINE is an error, they are reported as states.

:func:`process_scan` is the entry point for a scan pipeline. Trend
computation is auxiliary there, so it never raises: failures come back in
``TrendOutcome.error`` and are logged as warnings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..diff.engine import diff_snapshots
from ..diff.models import TrendResult
from ..exceptions import VulnTrendError
from ..logging_config import get_logger
from ..persistence.models import HistoryState
from ..persistence.registry import ProjectRegistry
from ..persistence.store import KeyLike
from ..snapshot.extractor import extract
from ..snapshot.models import ProjectKey, ScanSnapshot
from ..snapshot.raw import RawScanResult
from .severity import AffectedDependency, affected_dependencies

logger = get_logger(__name__)


@dataclass(frozen=True)
class TrendReport:
    """What a reporting layer needs to present a project's trend."""

    project_key: ProjectKey
    state: HistoryState
    latest: Optional[ScanSnapshot] = None
    previous: Optional[ScanSnapshot] = None
    trend: Optional[TrendResult] = None  # only when TRENDING
    vulnerable_dependencies: tuple[AffectedDependency, ...] = ()  # of ``latest``
    historical_scans: int = 0


@dataclass(frozen=True)
class TrendOutcome:
    """Result of :func:`process_scan`; exactly one of ``report``/``error`` is set."""

    snapshot: Optional[ScanSnapshot] = None
    report: Optional[TrendReport] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def analyze_trend(registry: ProjectRegistry, project_key: KeyLike) -> TrendReport:
    """Report a project's current history state and, if possible, its trend.

    Raises:
        InvalidArgumentError: If ``project_key`` is empty.
    """
    key = ProjectKey.coerce(project_key)
    latest_first = registry.get_scan_history(key, limit=2)
    state = HistoryState.for_count(len(latest_first))

    if state is HistoryState.NO_HISTORY:
        return TrendReport(project_key=key, state=state)

    stats = registry.get_project_stats(key)
    latest = latest_first[0]
    previous = latest_first[1] if state is HistoryState.TRENDING else None
    trend = diff_snapshots(previous, latest) if previous is not None else None

    return TrendReport(
        project_key=key,
        state=state,
        latest=latest,
        previous=previous,
        trend=trend,
        vulnerable_dependencies=tuple(affected_dependencies(latest)),
        historical_scans=stats.total_scans if stats is not None else len(latest_first),
    )


def process_scan(
    registry: ProjectRegistry, raw: RawScanResult, timestamp: Optional[datetime] = None
) -> TrendOutcome:
    """Extract, record and analyse one raw scan result.

    Never raises. Any failure is logged and returned in ``error``, so the
    scan that produced ``raw`` can still be reported.
    """
    snapshot: Optional[ScanSnapshot] = None
    try:
        snapshot = extract(raw, timestamp=timestamp)
        registry.store_scan_result(snapshot)
        report = analyze_trend(registry, snapshot.project_key)
    except VulnTrendError as e:
        logger.warning("Trend analysis skipped: %s", e)
        return TrendOutcome(snapshot=snapshot, error=e)
    except Exception as e:
        logger.warning("Trend analysis failed unexpectedly: %s", e, exc_info=True)
        return TrendOutcome(snapshot=snapshot, error=e)

    logger.debug("Trend for %s: %s", report.project_key, report.state.value)
    return TrendOutcome(snapshot=snapshot, report=report)
