"""Project registry: the process-wide owner of scan history.

The registry is the only component that evicts whole projects. Recording a
scan for a project that is already retained takes only that project's lock
(inside the store). Admitting a new project is serialised by the registry's
admission lock so that the ``max_projects`` bound cannot be overshot by
concurrent admissions.

There is no module-level instance: build one per process (or per daemon),
pass it to whoever records or reads scans, and ``close()`` it at shutdown.
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, Optional

from ..config import HistoryConfig
from ..diff.engine import diff_snapshots
from ..diff.models import TrendResult
from ..exceptions import HistoryError, InsufficientHistoryError, InvalidArgumentError
from ..logging_config import get_logger
from ..snapshot.models import ProjectKey, ScanSnapshot
from . import serialization
from .models import HistoryState, ProjectStats, ProjectSummary
from .store import Clock, KeyLike, ScanRecordStore

logger = get_logger(__name__)


class ProjectRegistry:
    """Bounded registry of project histories.

    Usage::

        with ProjectRegistry(load_config()) as registry:
            registry.store_scan_result(snapshot)
            if registry.history_state(key) is HistoryState.TRENDING:
                result = registry.compute_trend(key)
    """

    def __init__(
        self,
        config: Optional[HistoryConfig] = None,
        clock: Optional[Clock] = None,
        store: Optional[ScanRecordStore] = None,
    ) -> None:
        if store is None:
            store = ScanRecordStore(config, clock)
        elif config is not None and config != store.config:
            raise InvalidArgumentError("config", "differs from the config of the given store")
        self.store = store
        # Project, session and TTL bounds all come from one config
        self.config = store.config
        self._admission_lock = threading.Lock()
        self._closed = False

    # ── lifecycle ─────────────────────────────────────────────────

    def close(self) -> None:
        """Release every retained history. The registry is unusable afterwards."""
        if self._closed:
            return
        self._closed = True
        self.store.clear()
        logger.debug("Project registry closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "ProjectRegistry":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── writes ────────────────────────────────────────────────────

    def store_scan_result(self, snapshot: ScanSnapshot) -> None:
        """Record a snapshot, evicting least-recently-touched projects if needed.

        Raises:
            InvalidArgumentError: If ``snapshot`` is None or unusable.
        """
        self._check_open()
        if snapshot is None:
            raise InvalidArgumentError("snapshot", "is required")
        key = snapshot.project_key

        if self.store.record_scan(key, snapshot, create=False):
            return

        with self._admission_lock:
            # Another thread may have admitted the project while we waited
            if self.store.record_scan(key, snapshot, create=False):
                return
            self._make_room(for_key=key)
            self.store.record_scan(key, snapshot)

    # ── reads ─────────────────────────────────────────────────────

    def get_scan_history(self, project_key: KeyLike, limit: Optional[int] = None) -> list[ScanSnapshot]:
        """Newest-first snapshots of a project (empty for unknown projects)."""
        self._check_open()
        return self.store.get_history(project_key, limit)

    def get_project_stats(self, project_key: KeyLike) -> Optional[ProjectStats]:
        self._check_open()
        return self.store.get_project_stats(project_key)

    def get_all_projects(self) -> list[ProjectSummary]:
        """One summary per project with retained snapshots, sorted by key."""
        self._check_open()
        summaries = []
        for key in self.store.project_keys():
            stats = self.store.get_project_stats(key)
            if stats is None:
                continue
            summaries.append(
                ProjectSummary(
                    project_key=key,
                    last_scan_time=stats.last_scan_time,
                    last_vulnerability_count=stats.current_vulnerabilities,
                )
            )
        return summaries

    def history_state(self, project_key: KeyLike) -> HistoryState:
        self._check_open()
        return HistoryState.for_count(len(self.store.get_history(project_key, limit=2)))

    def compute_trend(self, project_key: KeyLike) -> TrendResult:
        """Diff the two most recent retained snapshots of a project.

        Raises:
            InsufficientHistoryError: With fewer than two retained snapshots.
        """
        self._check_open()
        key = ProjectKey.coerce(project_key)
        latest_first = self.store.get_history(key, limit=2)
        if len(latest_first) < 2:
            raise InsufficientHistoryError(str(key), available=len(latest_first))
        current, previous = latest_first
        return diff_snapshots(previous, current)

    # ── persistence ───────────────────────────────────────────────

    def export_state(self) -> dict[str, Any]:
        """Serialisable copy of every retained history."""
        self._check_open()
        return serialization.state_to_dict(self.store.histories())

    @classmethod
    def from_state(
        cls,
        state: Mapping[str, Any],
        config: Optional[HistoryConfig] = None,
        clock: Optional[Clock] = None,
    ) -> ProjectRegistry:
        """Rebuild a registry from :meth:`export_state` output.

        Capacity bounds of ``config`` apply to the restored state: excess
        snapshots and excess projects are evicted as on a live insert.

        Raises:
            InvalidInputError: If ``state`` is malformed.
        """
        registry = cls(config, clock)
        for history in serialization.state_from_dict(state):
            registry.store.restore(history)
        registry._evict_until(registry.config.max_projects)
        logger.debug("Restored %d project histories", len(registry.store))
        return registry

    # ── internals ─────────────────────────────────────────────────

    def _make_room(self, for_key: ProjectKey) -> None:
        for victim in self._evict_until(self.config.max_projects - 1):
            logger.debug("Evicted project %s to admit %s", victim, for_key)

    def _evict_until(self, allowed: int) -> list[ProjectKey]:
        evicted = []
        while len(self.store) > allowed:
            victim = self.store.least_recently_touched()
            if victim is None:
                break
            self.store.retire(victim)
            evicted.append(victim)
        return evicted

    def _check_open(self) -> None:
        if self._closed:
            raise HistoryError("Project registry is closed")
