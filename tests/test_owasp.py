"""Tests for OWASP Dependency-Check report conversion."""

import pytest

from vulntrend.exceptions import InvalidInputError
from vulntrend.snapshot import Coordinates, Severity, extract, parse_dependency_check_report

from conftest import T0


def _make_report(dependencies, report_date="2025-01-01T12:00:00Z"):
    return {
        "reportSchema": "1.1",
        "projectInfo": {"name": "shop", "reportDate": report_date},
        "dependencies": dependencies,
    }


def _jar(purl=None, file_name="lib.jar", vulnerabilities=None):
    dep = {"fileName": file_name}
    if purl is not None:
        dep["packages"] = [{"id": purl}]
    if vulnerabilities is not None:
        dep["vulnerabilities"] = vulnerabilities
    return dep


class TestParseDependencyCheckReport:
    def test_maven_coordinates_from_purl(self):
        report = _make_report([_jar("pkg:maven/org.apache.commons/commons-text@1.9")])
        raw = parse_dependency_check_report(report, "com.acme", "shop")

        dep = raw.dependencies[0]
        assert (dep.group_id, dep.artifact_id, dep.version) == (
            "org.apache.commons",
            "commons-text",
            "1.9",
        )

    def test_purl_qualifiers_are_dropped(self):
        report = _make_report([_jar("pkg:maven/org.x/lib@2.0?type=jar")])
        raw = parse_dependency_check_report(report, "com.acme", "shop")
        assert raw.dependencies[0].version == "2.0"

    def test_falls_back_to_file_name(self):
        report = _make_report([_jar(purl="pkg:npm/left-pad@1.0", file_name="left-pad.tgz")])
        raw = parse_dependency_check_report(report, "com.acme", "shop")

        dep = raw.dependencies[0]
        assert dep.group_id == "unknown"
        assert dep.artifact_id == "left-pad.tgz"
        assert dep.version == "unknown"

    def test_vulnerabilities_and_scores(self):
        report = _make_report(
            [
                _jar(
                    "pkg:maven/org.x/lib@1.0",
                    vulnerabilities=[
                        {"name": "CVE-2022-42889", "severity": "CRITICAL", "cvssv3": {"baseScore": 9.8}},
                        {"name": "CVE-2023-0001", "cvssv3": {"baseScore": 5.3}},
                    ],
                )
            ]
        )
        raw = parse_dependency_check_report(report, "com.acme", "shop")

        assert raw.dependencies[0].vulnerability_ids == ["CVE-2022-42889", "CVE-2023-0001"]
        by_id = {v.id: v for v in raw.vulnerabilities}
        assert by_id["CVE-2022-42889"].score == 9.8
        assert by_id["CVE-2023-0001"].severity is None

        snapshot = extract(raw)
        dep = snapshot.dependencies[0]
        assert dep.coordinates == Coordinates("org.x", "lib", "1.0")
        assert dep.severity_of("CVE-2022-42889") is Severity.CRITICAL
        assert dep.severity_of("CVE-2023-0001") is Severity.MEDIUM

    def test_report_date_becomes_timestamp(self):
        raw = parse_dependency_check_report(_make_report([]), "com.acme", "shop")
        assert raw.timestamp == T0

    def test_unparseable_report_date_is_ignored(self):
        raw = parse_dependency_check_report(_make_report([], report_date="not a date"), "g", "a")
        assert raw.timestamp is None

    def test_project_identity_comes_from_caller(self):
        raw = parse_dependency_check_report(_make_report([]), "com.acme", "shop", "1.2.3")
        assert (raw.project_group_id, raw.project_artifact_id, raw.project_version) == (
            "com.acme",
            "shop",
            "1.2.3",
        )

    def test_missing_dependencies_list(self):
        with pytest.raises(InvalidInputError):
            parse_dependency_check_report({"projectInfo": {}}, "com.acme", "shop")

    def test_vulnerability_without_name(self):
        report = _make_report([_jar("pkg:maven/org.x/lib@1.0", vulnerabilities=[{"severity": "HIGH"}])])
        with pytest.raises(InvalidInputError):
            parse_dependency_check_report(report, "com.acme", "shop")
