"""In-memory scan record store with per-project locking and bounded retention.

Locking is two-level. ``_lock`` guards only the ``project key -> history``
map and is held for O(1) lookups, inserts and removals. Each
``ProjectHistory`` carries its own re-entrant lock held while its snapshots
are purged, appended, capped or read, so scans of different projects never
contend. Lock order is always map lock before history lock.

Retention on every mutation, in order:
  1. time-based: snapshots older than ``ttl_hours`` are dropped
  2. per-project capacity: oldest snapshots beyond
     ``max_sessions_per_project`` are dropped

Process-wide eviction of whole projects is the registry's job; the store
only exposes the primitives (``least_recently_touched``, ``retire``).
"""

from __future__ import annotations

import bisect
import itertools
import threading
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional, Union

from ..config import DEFAULT_CONFIG, HistoryConfig
from ..exceptions import InvalidArgumentError
from ..logging_config import get_logger
from ..snapshot.models import ProjectKey, ScanSnapshot, ensure_utc, utc_now
from .models import ProjectHistory, ProjectStats

logger = get_logger(__name__)

Clock = Callable[[], datetime]
KeyLike = Union[ProjectKey, str]


class ScanRecordStore:
    """Bounded, thread-safe history of scan snapshots keyed by project.

    Usage::

        store = ScanRecordStore(HistoryConfig(max_sessions_per_project=5))
        store.record_scan(snapshot.project_key, snapshot)
        latest_first = store.get_history(snapshot.project_key, limit=2)
    """

    def __init__(
        self, config: Optional[HistoryConfig] = None, clock: Optional[Clock] = None
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._histories: dict[ProjectKey, ProjectHistory] = {}
        self._touches = itertools.count(1)

    # ── Public API ────────────────────────────────────────────────

    def record_scan(self, project_key: KeyLike, snapshot: ScanSnapshot, create: bool = True) -> bool:
        """Append ``snapshot`` to the project's history.

        Args:
            project_key: Project the snapshot belongs to.
            snapshot: The snapshot to retain.
            create: Start a new history if the project is not present.

        Returns:
            False if ``create`` is False and the project is not present
            (nothing recorded), True otherwise.

        Raises:
            InvalidArgumentError: If the key is empty, the snapshot is missing,
                belongs to another project, or repeats a retained timestamp.
        """
        key = ProjectKey.coerce(project_key)
        if snapshot is None:
            raise InvalidArgumentError("snapshot", "is required")
        if snapshot.project_key != key:
            raise InvalidArgumentError(
                "snapshot", f"belongs to {snapshot.project_key}, not {key}"
            )

        while True:
            with self._lock:
                history = self._histories.get(key)
                if history is None:
                    if not create:
                        return False
                    history = self._histories[key] = ProjectHistory(project_key=key)
                    logger.debug("Started history for %s", key)

            with history.lock:
                if history.retired:
                    # Evicted between lookup and lock; look the key up again
                    continue
                now = self._now()
                self._purge_expired(history, now)
                self._insert(history, snapshot)
                self._enforce_capacity(history)
                history.last_touched_at = now
                history.touch_sequence = next(self._touches)
                return True

    def get_history(self, project_key: KeyLike, limit: Optional[int] = None) -> list[ScanSnapshot]:
        """Retained snapshots, newest first, at most ``limit`` of them.

        Unknown projects yield an empty list.

        Raises:
            InvalidArgumentError: If the key is empty or ``limit`` < 1.
        """
        key = ProjectKey.coerce(project_key)
        if limit is None:
            limit = self.config.history_limit
        if limit < 1:
            raise InvalidArgumentError("limit", f"must be >= 1, got {limit}")

        history = self._get(key)
        if history is None:
            return []
        with history.lock:
            self._purge_expired(history, self._now())
            return list(reversed(history.snapshots))[:limit]

    def get_project_stats(self, project_key: KeyLike) -> Optional[ProjectStats]:
        """Statistics over the retained history, or None if nothing is retained."""
        key = ProjectKey.coerce(project_key)
        history = self._get(key)
        if history is None:
            return None
        with history.lock:
            self._purge_expired(history, self._now())
            snapshots = list(history.snapshots)

        if not snapshots:
            return None
        latest = snapshots[-1]
        previous = snapshots[-2] if len(snapshots) > 1 else None
        return ProjectStats(
            project_key=key,
            current_vulnerabilities=latest.total_vulnerabilities,
            total_scans=len(snapshots),
            last_scan_time=latest.timestamp,
            vulnerability_trend=(
                latest.total_vulnerabilities - previous.total_vulnerabilities
                if previous is not None
                else None
            ),
            previous_scan_time=previous.timestamp if previous is not None else None,
        )

    # ── Registry-facing primitives ────────────────────────────────

    def retire(self, project_key: KeyLike) -> Optional[ProjectHistory]:
        """Remove a project's whole history. Returns it, or None if absent."""
        key = ProjectKey.coerce(project_key)
        with self._lock:
            history = self._histories.pop(key, None)
            if history is None:
                return None
            with history.lock:
                history.retired = True
                retained = len(history.snapshots)
        logger.debug("Retired history for %s (%d snapshots)", key, retained)
        return history

    def least_recently_touched(self) -> Optional[ProjectKey]:
        """Key of the project whose last write is oldest, or None if empty."""
        with self._lock:
            histories = list(self._histories.values())
        if not histories:
            return None
        victim = min(histories, key=_touch_order)
        return victim.project_key

    def project_keys(self) -> list[ProjectKey]:
        with self._lock:
            return sorted(self._histories)

    def histories(self) -> list[ProjectHistory]:
        """Point-in-time copies of every history, sorted by project key."""
        with self._lock:
            histories = sorted(self._histories.values(), key=lambda h: h.project_key)
        return [h.copy() for h in histories]

    def restore(self, history: ProjectHistory) -> None:
        """Install a previously exported history, replacing any current one.

        Snapshots are re-sorted and the capacity bound is applied; nothing
        is purged until the next read or write.
        """
        if history is None:
            raise InvalidArgumentError("history", "is required")
        key = ProjectKey.coerce(history.project_key)
        restored = ProjectHistory(
            project_key=key,
            last_touched_at=(
                ensure_utc(history.last_touched_at) if history.last_touched_at else None
            ),
        )
        for snapshot in history.snapshots:
            self._insert(restored, snapshot)
        self._enforce_capacity(restored)
        restored.touch_sequence = next(self._touches)

        with self._lock:
            previous = self._histories.get(key)
            self._histories[key] = restored
        if previous is not None:
            with previous.lock:
                previous.retired = True

    def clear(self) -> None:
        """Drop every history."""
        with self._lock:
            histories = list(self._histories.values())
            self._histories.clear()
        for history in histories:
            with history.lock:
                history.retired = True
                history.snapshots.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._histories)

    def __contains__(self, project_key: object) -> bool:
        if not isinstance(project_key, (ProjectKey, str)):
            return False
        try:
            key = ProjectKey.coerce(project_key)
        except InvalidArgumentError:
            return False
        with self._lock:
            return key in self._histories

    def __iter__(self) -> Iterator[ProjectKey]:
        return iter(self.project_keys())

    # ── Internals ─────────────────────────────────────────────────

    def _get(self, key: ProjectKey) -> Optional[ProjectHistory]:
        with self._lock:
            return self._histories.get(key)

    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    def _purge_expired(self, history: ProjectHistory, now: datetime) -> None:
        if self.config.ttl_hours is None:
            return
        cutoff = now - timedelta(hours=self.config.ttl_hours)
        kept = [s for s in history.snapshots if s.timestamp >= cutoff]
        dropped = len(history.snapshots) - len(kept)
        if dropped:
            history.snapshots[:] = kept
            logger.debug(
                "Expired %d snapshot(s) of %s older than %s", dropped, history.project_key, cutoff
            )

    def _insert(self, history: ProjectHistory, snapshot: ScanSnapshot) -> None:
        timestamps = [s.timestamp for s in history.snapshots]
        position = bisect.bisect_left(timestamps, snapshot.timestamp)
        if position < len(timestamps) and timestamps[position] == snapshot.timestamp:
            raise InvalidArgumentError(
                "snapshot",
                f"{history.project_key} already has a scan at {snapshot.timestamp.isoformat()}",
            )
        history.snapshots.insert(position, snapshot)

    def _enforce_capacity(self, history: ProjectHistory) -> None:
        overflow = len(history.snapshots) - self.config.max_sessions_per_project
        if overflow > 0:
            del history.snapshots[:overflow]
            logger.debug(
                "Dropped %d oldest snapshot(s) of %s over capacity %d",
                overflow,
                history.project_key,
                self.config.max_sessions_per_project,
            )


def _touch_order(history: ProjectHistory) -> tuple:
    # Never-touched histories (restored without a timestamp) go first
    touched = history.last_touched_at
    return (touched is not None, touched or datetime.min, history.touch_sequence)
