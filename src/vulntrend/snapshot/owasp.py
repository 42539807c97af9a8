"""Convert an OWASP Dependency-Check JSON report into a RawScanResult.

Only the parts of the report the history needs are read: each dependency's
Maven package URL, and for each vulnerability its name, severity label and
CVSS v3 base score. The caller supplies the project identity, which the
report itself does not carry reliably.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from ..exceptions import InvalidInputError
from ..logging_config import get_logger
from .raw import RawDependency, RawScanResult, RawVulnerability, parse_timestamp

logger = get_logger(__name__)

_MAVEN_PURL_PREFIX = "pkg:maven/"
_UNKNOWN = "unknown"


def parse_dependency_check_report(
    report: Mapping[str, Any],
    project_group_id: str,
    project_artifact_id: str,
    project_version: str = "",
    timestamp: Optional[datetime] = None,
) -> RawScanResult:
    """Build a ``RawScanResult`` from a parsed Dependency-Check report.

    Args:
        report: The report as loaded from ``dependency-check-report.json``.
        project_group_id: Group id of the scanned project.
        project_artifact_id: Artifact id of the scanned project.
        project_version: Optional project version.
        timestamp: Scan time; defaults to the report's ``projectInfo.reportDate``
            when present.

    Returns:
        The raw scan result, ready for :func:`vulntrend.snapshot.extractor.extract`.

    Raises:
        InvalidInputError: If ``report`` has no ``dependencies`` list.
    """
    if not isinstance(report, Mapping):
        raise InvalidInputError("report must be a mapping")
    owasp_dependencies = report.get("dependencies")
    if not isinstance(owasp_dependencies, list):
        raise InvalidInputError("report has no dependencies list", field="dependencies")

    dependencies: list[RawDependency] = []
    vulnerabilities: dict[str, RawVulnerability] = {}

    for owasp_dep in owasp_dependencies:
        group_id, artifact_id, version = _maven_coordinates(owasp_dep)

        vulnerability_ids: list[str] = []
        for owasp_vuln in owasp_dep.get("vulnerabilities") or []:
            name = owasp_vuln.get("name")
            if not name:
                raise InvalidInputError(
                    f"vulnerability without a name in {artifact_id}",
                    field="vulnerabilities.name",
                )
            vulnerability_ids.append(name)
            if name not in vulnerabilities:
                vulnerabilities[name] = RawVulnerability(
                    id=name,
                    severity=owasp_vuln.get("severity"),
                    score=_base_score(owasp_vuln),
                )

        dependencies.append(
            RawDependency(
                group_id=group_id,
                artifact_id=artifact_id,
                version=version,
                vulnerability_ids=vulnerability_ids,
            )
        )

    logger.debug(
        "Parsed Dependency-Check report: %d dependencies, %d distinct vulnerabilities",
        len(dependencies),
        len(vulnerabilities),
    )

    return RawScanResult(
        project_group_id=project_group_id,
        project_artifact_id=project_artifact_id,
        project_version=project_version,
        timestamp=timestamp or _report_date(report),
        dependencies=dependencies,
        vulnerabilities=list(vulnerabilities.values()),
    )


def _maven_coordinates(owasp_dep: Mapping[str, Any]) -> tuple[str, str, str]:
    """Read group/artifact/version from ``pkg:maven/group/artifact@version``.

    Falls back to ``unknown`` / the file name when no Maven package is listed.
    """
    group_id = _UNKNOWN
    artifact_id = owasp_dep.get("fileName") or _UNKNOWN
    version = _UNKNOWN

    packages = owasp_dep.get("packages") or []
    if packages:
        purl = packages[0].get("id") or ""
        if purl.startswith(_MAVEN_PURL_PREFIX):
            coords, _, purl_version = purl[len(_MAVEN_PURL_PREFIX):].partition("@")
            # Drop qualifiers such as ?type=jar
            purl_version = purl_version.split("?", 1)[0]
            parts = coords.split("/")
            if purl_version and len(parts) == 2:
                group_id, artifact_id = parts
                version = purl_version

    return group_id, artifact_id, version


def _base_score(owasp_vuln: Mapping[str, Any]) -> Optional[float]:
    cvssv3 = owasp_vuln.get("cvssv3") or {}
    score = cvssv3.get("baseScore")
    if isinstance(score, (int, float)):
        return float(score)
    return None


def _report_date(report: Mapping[str, Any]) -> Optional[datetime]:
    project_info = report.get("projectInfo") or {}
    value = project_info.get("reportDate")
    try:
        return parse_timestamp(value)
    except InvalidInputError:
        # Nanosecond report dates are not ISO-parseable on every Python
        logger.debug("Ignoring unparseable reportDate %r", value)
        return None
