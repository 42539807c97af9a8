"""JSON-compatible representation of snapshots, histories and trend results.

Field names follow the data model in snake_case. Timestamps are ISO-8601
strings in UTC, id collections are sorted lists. Nothing here touches the
filesystem; a persistence collaborator stores the strings or dicts wherever
it likes and hands them back to :meth:`ProjectRegistry.from_state`.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from ..diff.models import JarDiff, TrendResult
from ..exceptions import InvalidInputError
from ..snapshot.models import (
    Coordinates,
    DependencySnapshot,
    ProjectKey,
    ScanSnapshot,
    Severity,
    SeverityCounts,
)
from ..snapshot.raw import parse_timestamp
from .models import ProjectHistory

SCHEMA_VERSION = 1


# ── Snapshots ────────────────────────────────────────────────────────────────


def snapshot_to_dict(snapshot: ScanSnapshot) -> dict[str, Any]:
    return {
        "project_key": _key_to_dict(snapshot.project_key),
        "timestamp": snapshot.timestamp.isoformat(),
        "total_dependencies": snapshot.total_dependencies,
        "vulnerable_dependency_count": snapshot.vulnerable_dependency_count,
        "total_vulnerabilities": snapshot.total_vulnerabilities,
        "severity_counts": {
            "critical": snapshot.severity_counts.critical,
            "high": snapshot.severity_counts.high,
            "medium": snapshot.severity_counts.medium,
            "low": snapshot.severity_counts.low,
            "unknown": snapshot.severity_counts.unknown,
        },
        "dependencies": [_dependency_to_dict(d) for d in snapshot.dependencies],
    }


def snapshot_from_dict(data: Mapping[str, Any]) -> ScanSnapshot:
    """Rebuild a snapshot written by :func:`snapshot_to_dict`.

    Raises:
        InvalidInputError: If a field is missing or has the wrong type.
    """
    try:
        counts = data.get("severity_counts") or {}
        return ScanSnapshot(
            project_key=_key_from_dict(data["project_key"]),
            timestamp=_required_timestamp(data.get("timestamp")),
            total_dependencies=int(data.get("total_dependencies", 0)),
            vulnerable_dependency_count=int(data.get("vulnerable_dependency_count", 0)),
            total_vulnerabilities=int(data.get("total_vulnerabilities", 0)),
            severity_counts=SeverityCounts(
                critical=int(counts.get("critical", 0)),
                high=int(counts.get("high", 0)),
                medium=int(counts.get("medium", 0)),
                low=int(counts.get("low", 0)),
                unknown=int(counts.get("unknown", 0)),
            ),
            dependencies=[_dependency_from_dict(d) for d in data.get("dependencies") or []],
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidInputError(f"unreadable snapshot: {e}", field="snapshot")


# ── Histories ────────────────────────────────────────────────────────────────


def history_to_dict(history: ProjectHistory) -> dict[str, Any]:
    return {
        "project_key": _key_to_dict(history.project_key),
        "last_touched_at": _optional_iso(history.last_touched_at),
        "snapshots": [snapshot_to_dict(s) for s in history.snapshots],
    }


def history_from_dict(data: Mapping[str, Any]) -> ProjectHistory:
    if not isinstance(data, Mapping):
        raise InvalidInputError("history must be a mapping", field="history")
    try:
        project_key = _key_from_dict(data["project_key"])
        raw_snapshots = list(data.get("snapshots") or [])
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidInputError(f"unreadable history: {e}", field="history")

    snapshots = [snapshot_from_dict(s) for s in raw_snapshots]
    for snapshot in snapshots:
        if snapshot.project_key != project_key:
            raise InvalidInputError(
                f"snapshot of {snapshot.project_key} in history of {project_key}",
                field="snapshots.project_key",
            )
    return ProjectHistory(
        project_key=project_key,
        snapshots=snapshots,
        last_touched_at=parse_timestamp(data.get("last_touched_at")),
    )


# ── Registry state ───────────────────────────────────────────────────────────


def state_to_dict(histories: Iterable[ProjectHistory]) -> dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "projects": [history_to_dict(h) for h in histories],
    }


def state_from_dict(state: Mapping[str, Any]) -> list[ProjectHistory]:
    if not isinstance(state, Mapping):
        raise InvalidInputError("state must be a mapping", field="state")
    version = state.get("schema_version")
    if version != SCHEMA_VERSION:
        raise InvalidInputError(
            f"unsupported schema_version {version!r} (expected {SCHEMA_VERSION})",
            field="schema_version",
        )
    projects = state.get("projects")
    if not isinstance(projects, list):
        raise InvalidInputError("state has no projects list", field="projects")
    return [history_from_dict(p) for p in projects]


def dumps_state(histories: Iterable[ProjectHistory], indent: Optional[int] = None) -> str:
    return json.dumps(state_to_dict(histories), indent=indent)


def loads_state(text: str) -> list[ProjectHistory]:
    try:
        state = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"state is not valid JSON: {e}", field="state")
    return state_from_dict(state)


# ── Trend results ────────────────────────────────────────────────────────────


def trend_result_to_dict(result: TrendResult) -> dict[str, Any]:
    """Report-facing form of a trend result (not read back)."""
    return {
        "previous_timestamp": result.previous_timestamp.isoformat(),
        "current_timestamp": result.current_timestamp.isoformat(),
        "total_jars_analyzed": result.total_jars_analyzed,
        "resolved_jars": [_jar_to_dict(j) for j in result.resolved_jars],
        "new_vulnerable_jars": [_jar_to_dict(j) for j in result.new_vulnerable_jars],
        "pending_vulnerable_jars": [_jar_to_dict(j) for j in result.pending_vulnerable_jars],
        "severity_trend": result.severity_trend.as_dict(),
    }


def _jar_to_dict(jar: JarDiff) -> dict[str, Any]:
    return {
        "coordinates": str(jar.coordinates),
        "status": jar.status,
        "previous_vulnerability_ids": list(jar.previous_vulnerability_ids),
        "current_vulnerability_ids": list(jar.current_vulnerability_ids),
        "resolved_vulnerability_ids": list(jar.resolved_vulnerability_ids),
        "new_vulnerability_ids": list(jar.new_vulnerability_ids),
        "persisting_vulnerability_ids": list(jar.persisting_vulnerability_ids),
        "severity_breakdown": dict(jar.severity_breakdown),
        "max_severity": jar.max_severity.value,
    }


# ── Helpers ──────────────────────────────────────────────────────────────────


def _key_to_dict(key: ProjectKey) -> dict[str, str]:
    return {"group_id": key.group_id, "artifact_id": key.artifact_id}


def _key_from_dict(data: Mapping[str, Any]) -> ProjectKey:
    group = str(data["group_id"] or "").strip()
    artifact = str(data["artifact_id"] or "").strip()
    if not group or not artifact:
        raise ValueError("blank project key")
    return ProjectKey(group, artifact)


def _dependency_to_dict(dep: DependencySnapshot) -> dict[str, Any]:
    ids = sorted(dep.vulnerability_ids)
    return {
        "coordinates": {
            "group_id": dep.coordinates.group_id,
            "artifact_id": dep.coordinates.artifact_id,
            "version": dep.coordinates.version,
        },
        "is_direct": dep.is_direct,
        "scope": dep.scope,
        "vulnerability_ids": ids,
        "severity_by_vulnerability_id": {v: dep.severity_of(v).value for v in ids},
    }


def _dependency_from_dict(data: Mapping[str, Any]) -> DependencySnapshot:
    coords = data["coordinates"]
    severities = data.get("severity_by_vulnerability_id") or {}
    return DependencySnapshot(
        coordinates=Coordinates(
            group_id=str(coords.get("group_id") or ""),
            artifact_id=str(coords["artifact_id"]),
            version=str(coords.get("version") or ""),
        ),
        is_direct=bool(data.get("is_direct", False)),
        scope=str(data.get("scope") or ""),
        vulnerability_ids=frozenset(str(v) for v in data.get("vulnerability_ids") or []),
        severity_by_vulnerability_id={
            str(v): Severity.from_label(label) for v, label in severities.items()
        },
    )


def _required_timestamp(value: Any) -> datetime:
    timestamp = parse_timestamp(value)
    if timestamp is None:
        raise InvalidInputError("snapshot has no timestamp", field="timestamp")
    return timestamp


def _optional_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
