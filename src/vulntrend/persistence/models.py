"""Data models for retained scan history.

``ProjectHistory`` is the only mutable record: the store owns it and guards
it with its own lock. ``ProjectStats`` and ``ProjectSummary`` are read-only
views handed to callers.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..snapshot.models import ProjectKey, ScanSnapshot


class HistoryState(Enum):
    """How much history a project has for trend analysis."""

    NO_HISTORY = "no_history"
    BASELINE = "baseline"  # exactly one snapshot
    TRENDING = "trending"  # two or more snapshots

    @classmethod
    def for_count(cls, snapshot_count: int) -> HistoryState:
        if snapshot_count <= 0:
            return cls.NO_HISTORY
        if snapshot_count == 1:
            return cls.BASELINE
        return cls.TRENDING


@dataclass
class ProjectHistory:
    """Retained snapshots of one project, oldest first."""

    project_key: ProjectKey
    snapshots: list[ScanSnapshot] = field(default_factory=list)
    last_touched_at: Optional[datetime] = None

    # ── Store bookkeeping (not part of the persisted record) ──────
    touch_sequence: int = field(default=0, repr=False, compare=False)
    retired: bool = field(default=False, repr=False, compare=False)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def copy(self) -> ProjectHistory:
        """Point-in-time copy with a fresh lock (snapshots are shared, they are immutable)."""
        with self.lock:
            return ProjectHistory(
                project_key=self.project_key,
                snapshots=list(self.snapshots),
                last_touched_at=self.last_touched_at,
                touch_sequence=self.touch_sequence,
            )


@dataclass(frozen=True)
class ProjectStats:
    """Summary statistics of a project's retained history."""

    project_key: ProjectKey
    current_vulnerabilities: int
    total_scans: int
    last_scan_time: datetime
    vulnerability_trend: Optional[int] = None  # None with a single scan
    previous_scan_time: Optional[datetime] = None


@dataclass(frozen=True)
class ProjectSummary:
    """One row of the all-projects listing."""

    project_key: ProjectKey
    last_scan_time: datetime
    last_vulnerability_count: int
