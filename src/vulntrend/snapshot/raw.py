"""Raw scan-result records as handed over by the scanning engine.

These mirror what any scanner can produce: the project identity, a list of
dependency records carrying vulnerability identifiers, and a list of
vulnerability records carrying severity and score. Nothing here is
normalised yet; see :mod:`vulntrend.snapshot.extractor`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from ..exceptions import InvalidInputError


@dataclass
class RawVulnerability:
    id: str
    severity: Optional[str] = None
    score: Optional[float] = None


@dataclass
class RawDependency:
    group_id: str
    artifact_id: str
    version: str
    scope: str = ""
    is_direct: bool = False
    vulnerability_ids: list[str] = field(default_factory=list)


@dataclass
class RawScanResult:
    project_group_id: str
    project_artifact_id: str
    project_version: str = ""
    timestamp: Optional[datetime] = None
    dependencies: list[RawDependency] = field(default_factory=list)
    vulnerabilities: list[RawVulnerability] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RawScanResult:
        """Build a raw result from a JSON-like mapping.

        Expected shape (snake_case keys)::

            {
              "project_group_id": "com.acme",
              "project_artifact_id": "shop",
              "timestamp": "2025-01-01T12:00:00Z",
              "dependencies": [
                {"group_id": "org.x", "artifact_id": "lib", "version": "1.0",
                 "scope": "compile", "is_direct": true,
                 "vulnerability_ids": ["CVE-2024-1"]}
              ],
              "vulnerabilities": [
                {"id": "CVE-2024-1", "severity": "HIGH", "score": 7.5}
              ]
            }

        Raises:
            InvalidInputError: If the mapping has the wrong shape.
        """
        if not isinstance(data, Mapping):
            raise InvalidInputError("scan result must be a mapping")

        try:
            dependencies = [_dependency_from_dict(dep) for dep in data.get("dependencies") or []]
            vulnerabilities = [
                RawVulnerability(
                    id=str(vuln.get("id") or ""),
                    severity=vuln.get("severity"),
                    score=_optional_float(vuln.get("score")),
                )
                for vuln in data.get("vulnerabilities") or []
            ]
        except (AttributeError, TypeError, ValueError) as e:
            raise InvalidInputError(f"unreadable scan result: {e}")

        return cls(
            project_group_id=str(data.get("project_group_id") or ""),
            project_artifact_id=str(data.get("project_artifact_id") or ""),
            project_version=str(data.get("project_version") or ""),
            timestamp=parse_timestamp(data.get("timestamp")),
            dependencies=dependencies,
            vulnerabilities=vulnerabilities,
        )


def _dependency_from_dict(dep: Mapping[str, Any]) -> RawDependency:
    return RawDependency(
        group_id=str(dep.get("group_id") or ""),
        artifact_id=str(dep.get("artifact_id") or ""),
        version=str(dep.get("version") or ""),
        scope=str(dep.get("scope") or ""),
        is_direct=_flag(dep.get("is_direct", False), "dependencies.is_direct"),
        vulnerability_ids=_id_list(dep.get("vulnerability_ids"), "dependencies.vulnerability_ids"),
    )


def _flag(value: Any, field_name: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off", ""):
            return False
    raise InvalidInputError(f"expected true/false, got {value!r}", field=field_name)


def _id_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    # A bare string would otherwise be split into single-character ids
    if not isinstance(value, (list, tuple)):
        raise InvalidInputError(
            f"expected a list of ids, got {type(value).__name__}", field=field_name
        )
    return list(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    # fromisoformat() only accepts a trailing "Z" from Python 3.11 on
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise InvalidInputError(f"invalid timestamp '{value}'", field="timestamp")
