"""Tests for snapshot data models."""

from datetime import datetime, timedelta, timezone

import pytest

from vulntrend.exceptions import InvalidArgumentError
from vulntrend.snapshot.models import (
    SEVERITY_ORDER,
    Coordinates,
    DependencySnapshot,
    ProjectKey,
    ScanSnapshot,
    Severity,
    SeverityCounts,
    ensure_utc,
    highest_severity,
)


class TestSeverity:
    def test_ranks(self):
        assert [s.rank for s in SEVERITY_ORDER] == [4, 3, 2, 1, 0]

    def test_from_label_is_case_insensitive(self):
        assert Severity.from_label("critical") is Severity.CRITICAL
        assert Severity.from_label(" High ") is Severity.HIGH

    def test_moderate_is_medium(self):
        assert Severity.from_label("MODERATE") is Severity.MEDIUM

    def test_unrecognised_label_is_unknown(self):
        assert Severity.from_label("SEVERE") is Severity.UNKNOWN
        assert Severity.from_label(None) is Severity.UNKNOWN
        assert Severity.from_label("") is Severity.UNKNOWN

    @pytest.mark.parametrize(
        "score, expected",
        [
            (9.8, Severity.CRITICAL),
            (9.0, Severity.CRITICAL),
            (7.5, Severity.HIGH),
            (4.0, Severity.MEDIUM),
            (0.1, Severity.LOW),
            (0.0, Severity.UNKNOWN),
            (None, Severity.UNKNOWN),
        ],
    )
    def test_from_score(self, score, expected):
        assert Severity.from_score(score) is expected

    def test_highest_severity(self):
        assert highest_severity([Severity.LOW, Severity.CRITICAL, Severity.MEDIUM]) is Severity.CRITICAL
        assert highest_severity([]) is Severity.UNKNOWN


class TestCoordinates:
    def test_string_form(self):
        assert str(Coordinates("org.x", "lib", "1.0")) == "org.x:lib:1.0"

    def test_empty_group_is_omitted(self):
        assert str(Coordinates("", "libA", "1.0")) == "libA:1.0"

    def test_parse(self):
        assert Coordinates.parse("org.x:lib:1.0") == Coordinates("org.x", "lib", "1.0")
        assert Coordinates.parse("libA:1.0") == Coordinates("", "libA", "1.0")

    def test_parse_rejects_other_shapes(self):
        with pytest.raises(ValueError):
            Coordinates.parse("just-a-name")


class TestProjectKey:
    def test_coerce_string(self):
        assert ProjectKey.coerce("com.acme:shop") == ProjectKey("com.acme", "shop")

    def test_coerce_passes_keys_through(self):
        key = ProjectKey("com.acme", "shop")
        assert ProjectKey.coerce(key) is key

    @pytest.mark.parametrize("value", [None, "", "   ", "no-colon", ":shop", "com.acme:"])
    def test_coerce_rejects_blank_or_malformed(self, value):
        with pytest.raises(InvalidArgumentError):
            ProjectKey.coerce(value)

    def test_coerce_rejects_blank_key_object(self):
        with pytest.raises(InvalidArgumentError):
            ProjectKey.coerce(ProjectKey("", "shop"))


class TestSeverityCounts:
    def test_total_and_dict_order(self):
        counts = SeverityCounts(critical=1, high=2, medium=3, low=4, unknown=5)
        assert counts.total == 15
        assert list(counts.as_dict()) == ["CRITICAL", "HIGH", "MEDIUM", "LOW", "UNKNOWN"]

    def test_from_severities(self):
        counts = SeverityCounts.from_severities([Severity.HIGH, Severity.HIGH, Severity.LOW])
        assert counts == SeverityCounts(high=2, low=1)

    def test_minus_is_signed(self):
        current = SeverityCounts(critical=1, high=1)
        previous = SeverityCounts(high=3, low=1)
        assert current.minus(previous) == SeverityCounts(critical=1, high=-2, low=-1)


class TestImmutability:
    def test_dependency_collections_are_immutable(self):
        dep = DependencySnapshot(
            coordinates=Coordinates("", "libA", "1.0"),
            vulnerability_ids={"CVE-1"},
            severity_by_vulnerability_id={"CVE-1": Severity.HIGH},
        )
        assert isinstance(dep.vulnerability_ids, frozenset)
        with pytest.raises(TypeError):
            dep.severity_by_vulnerability_id["CVE-2"] = Severity.LOW  # type: ignore[index]

    def test_snapshot_is_frozen(self):
        snapshot = ScanSnapshot(
            project_key=ProjectKey("g", "a"), timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc)
        )
        with pytest.raises(AttributeError):
            snapshot.total_dependencies = 5  # type: ignore[misc]

    def test_unknown_id_severity(self):
        dep = DependencySnapshot(Coordinates("", "libA", "1.0"), vulnerability_ids={"CVE-1"})
        assert dep.severity_of("CVE-1") is Severity.UNKNOWN


class TestTimestamps:
    def test_naive_is_taken_as_utc(self):
        naive = datetime(2025, 1, 1, 12, 0)
        assert ensure_utc(naive) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_other_zones_are_converted(self):
        plus_two = timezone(timedelta(hours=2))
        value = ensure_utc(datetime(2025, 1, 1, 14, 0, tzinfo=plus_two))
        assert value.tzinfo is timezone.utc
        assert value.hour == 12

    def test_snapshot_normalises_timestamp(self):
        snapshot = ScanSnapshot(project_key=ProjectKey("g", "a"), timestamp=datetime(2025, 1, 1))
        assert snapshot.timestamp.tzinfo is timezone.utc
