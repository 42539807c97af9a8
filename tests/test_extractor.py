"""Tests for the dependency snapshot extractor."""

from datetime import datetime, timezone

import pytest

from vulntrend.exceptions import InvalidInputError
from vulntrend.snapshot import (
    Coordinates,
    RawDependency,
    RawScanResult,
    RawVulnerability,
    Severity,
    SeverityCounts,
    extract,
)

from conftest import T0, build_raw


def _make_raw(**kwargs):
    defaults = {
        "project_group_id": "com.acme",
        "project_artifact_id": "shop",
        "timestamp": T0,
        "dependencies": [],
        "vulnerabilities": [],
    }
    defaults.update(kwargs)
    return RawScanResult(**defaults)


class TestExtract:
    def test_counts(self):
        raw = build_raw(
            {"org.x:a:1.0": ["CVE-1", "CVE-2"], "org.x:b:2.0": ["CVE-3"]},
            severities={"CVE-1": "CRITICAL", "CVE-2": "HIGH", "CVE-3": "LOW"},
            timestamp=T0,
            clean=["org.x:c:3.0"],
        )
        snapshot = extract(raw)

        assert snapshot.total_dependencies == 3
        assert snapshot.vulnerable_dependency_count == 2
        assert snapshot.total_vulnerabilities == 3
        assert snapshot.severity_counts == SeverityCounts(critical=1, high=1, low=1)
        assert snapshot.severity_counts.total == snapshot.total_vulnerabilities

    def test_empty_dependency_list_is_valid(self):
        snapshot = extract(_make_raw())
        assert snapshot.total_dependencies == 0
        assert snapshot.total_vulnerabilities == 0
        assert snapshot.dependencies == ()

    def test_duplicate_ids_are_deduplicated(self):
        raw = _make_raw(
            dependencies=[RawDependency("org.x", "a", "1.0", vulnerability_ids=["CVE-1", "CVE-1"])]
        )
        snapshot = extract(raw)
        assert snapshot.dependencies[0].vulnerability_ids == frozenset({"CVE-1"})
        assert snapshot.total_vulnerabilities == 1

    def test_shared_vulnerability_counts_per_dependency(self):
        raw = build_raw({"org.x:a:1.0": ["CVE-1"], "org.x:b:1.0": ["CVE-1"]}, {"CVE-1": "HIGH"})
        snapshot = extract(raw)
        assert snapshot.total_vulnerabilities == 2
        assert snapshot.severity_counts.high == 2

    def test_duplicate_coordinates_are_merged(self):
        raw = _make_raw(
            dependencies=[
                RawDependency("org.x", "a", "1.0", scope="", vulnerability_ids=["CVE-1"]),
                RawDependency(
                    "org.x", "a", "1.0", scope="runtime", is_direct=True, vulnerability_ids=["CVE-2"]
                ),
            ]
        )
        snapshot = extract(raw)

        assert snapshot.total_dependencies == 1
        dep = snapshot.dependencies[0]
        assert dep.vulnerability_ids == frozenset({"CVE-1", "CVE-2"})
        assert dep.is_direct is True
        assert dep.scope == "runtime"

    def test_label_wins_over_score(self):
        raw = _make_raw(
            dependencies=[RawDependency("org.x", "a", "1.0", vulnerability_ids=["CVE-1"])],
            vulnerabilities=[RawVulnerability("CVE-1", severity="LOW", score=9.8)],
        )
        assert extract(raw).dependencies[0].severity_of("CVE-1") is Severity.LOW

    def test_score_used_without_label(self):
        raw = _make_raw(
            dependencies=[RawDependency("org.x", "a", "1.0", vulnerability_ids=["CVE-1"])],
            vulnerabilities=[RawVulnerability("CVE-1", severity=None, score=9.1)],
        )
        assert extract(raw).dependencies[0].severity_of("CVE-1") is Severity.CRITICAL

    def test_id_without_record_is_unknown(self):
        raw = _make_raw(
            dependencies=[RawDependency("org.x", "a", "1.0", vulnerability_ids=["CVE-404"])]
        )
        snapshot = extract(raw)
        assert snapshot.dependencies[0].severity_of("CVE-404") is Severity.UNKNOWN
        assert snapshot.severity_counts.unknown == 1

    def test_repeated_vulnerability_record_keeps_highest(self):
        raw = _make_raw(
            dependencies=[RawDependency("org.x", "a", "1.0", vulnerability_ids=["CVE-1"])],
            vulnerabilities=[
                RawVulnerability("CVE-1", severity="MEDIUM"),
                RawVulnerability("CVE-1", severity="HIGH"),
            ],
        )
        assert extract(raw).dependencies[0].severity_of("CVE-1") is Severity.HIGH

    def test_deterministic(self):
        raw = build_raw({"org.x:a:1.0": ["CVE-2", "CVE-1"]}, {"CVE-1": "HIGH"}, timestamp=T0)
        assert extract(raw) == extract(raw)


class TestTimestamp:
    def test_raw_timestamp_wins(self):
        other = datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert extract(_make_raw(timestamp=T0), timestamp=other).timestamp == T0

    def test_argument_used_when_raw_has_none(self):
        assert extract(_make_raw(timestamp=None), timestamp=T0).timestamp == T0

    def test_falls_back_to_now(self):
        before = datetime.now(timezone.utc)
        snapshot = extract(_make_raw(timestamp=None))
        assert snapshot.timestamp >= before

    def test_naive_timestamp_taken_as_utc(self):
        snapshot = extract(_make_raw(timestamp=datetime(2025, 1, 1, 12, 0)))
        assert snapshot.timestamp == T0


class TestMalformedInput:
    def test_missing_raw(self):
        with pytest.raises(InvalidInputError):
            extract(None)

    @pytest.mark.parametrize(
        "group, artifact, field",
        [("", "shop", "project_group_id"), ("com.acme", "  ", "project_artifact_id")],
    )
    def test_missing_project_identity(self, group, artifact, field):
        with pytest.raises(InvalidInputError) as exc_info:
            extract(_make_raw(project_group_id=group, project_artifact_id=artifact))
        assert exc_info.value.field == field

    def test_dependency_without_artifact(self):
        raw = _make_raw(dependencies=[RawDependency("org.x", "", "1.0")])
        with pytest.raises(InvalidInputError):
            extract(raw)

    def test_blank_vulnerability_id(self):
        raw = _make_raw(dependencies=[RawDependency("org.x", "a", "1.0", vulnerability_ids=[" "])])
        with pytest.raises(InvalidInputError):
            extract(raw)


class TestRawFromDict:
    def test_reads_snake_case_mapping(self):
        raw = RawScanResult.from_dict(
            {
                "project_group_id": "com.acme",
                "project_artifact_id": "shop",
                "timestamp": "2025-01-01T12:00:00Z",
                "dependencies": [
                    {
                        "group_id": "org.x",
                        "artifact_id": "lib",
                        "version": "1.0",
                        "is_direct": True,
                        "vulnerability_ids": ["CVE-1"],
                    }
                ],
                "vulnerabilities": [{"id": "CVE-1", "severity": "HIGH", "score": "7.5"}],
            }
        )
        assert raw.timestamp == T0
        assert raw.dependencies[0].is_direct is True
        assert raw.vulnerabilities[0].score == 7.5

        snapshot = extract(raw)
        assert snapshot.dependencies[0].coordinates == Coordinates("org.x", "lib", "1.0")

    def test_rejects_non_mapping(self):
        with pytest.raises(InvalidInputError):
            RawScanResult.from_dict(["not", "a", "mapping"])

    def test_rejects_bad_timestamp(self):
        with pytest.raises(InvalidInputError) as exc_info:
            RawScanResult.from_dict(
                {"project_group_id": "g", "project_artifact_id": "a", "timestamp": "yesterday"}
            )
        assert exc_info.value.field == "timestamp"

    def test_rejects_bad_dependency_record(self):
        with pytest.raises(InvalidInputError):
            RawScanResult.from_dict(
                {"project_group_id": "g", "project_artifact_id": "a", "dependencies": ["oops"]}
            )

    def test_rejects_string_vulnerability_ids(self):
        with pytest.raises(InvalidInputError) as exc_info:
            RawScanResult.from_dict(
                {
                    "project_group_id": "g",
                    "project_artifact_id": "a",
                    "dependencies": [
                        {"group_id": "org.x", "artifact_id": "lib", "version": "1.0",
                         "vulnerability_ids": "CVE-1"}
                    ],
                }
            )
        assert exc_info.value.field == "dependencies.vulnerability_ids"

    def test_missing_vulnerability_ids_means_clean(self):
        raw = RawScanResult.from_dict(
            {
                "project_group_id": "g",
                "project_artifact_id": "a",
                "dependencies": [{"group_id": "org.x", "artifact_id": "lib", "version": "1.0"}],
            }
        )
        assert raw.dependencies[0].vulnerability_ids == []

    @pytest.mark.parametrize(
        "value, expected",
        [(True, True), (False, False), ("false", False), ("True", True), ("0", False), (None, False)],
    )
    def test_is_direct_values(self, value, expected):
        raw = RawScanResult.from_dict(
            {
                "project_group_id": "g",
                "project_artifact_id": "a",
                "dependencies": [
                    {"group_id": "org.x", "artifact_id": "lib", "version": "1.0", "is_direct": value}
                ],
            }
        )
        assert raw.dependencies[0].is_direct is expected

    @pytest.mark.parametrize("value", ["maybe", 1, ["true"]])
    def test_rejects_unreadable_is_direct(self, value):
        with pytest.raises(InvalidInputError) as exc_info:
            RawScanResult.from_dict(
                {
                    "project_group_id": "g",
                    "project_artifact_id": "a",
                    "dependencies": [
                        {"group_id": "org.x", "artifact_id": "lib", "version": "1.0",
                         "is_direct": value}
                    ],
                }
            )
        assert exc_info.value.field == "dependencies.is_direct"
