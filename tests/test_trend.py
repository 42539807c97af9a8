"""Tests for trend analysis and the scan pipeline entry point."""

import logging
from datetime import timedelta

from vulntrend.analysis import TrendReport, analyze_trend, process_scan
from vulntrend.exceptions import InvalidInputError
from vulntrend.persistence import HistoryState
from vulntrend.snapshot import RawScanResult

from conftest import T0, build_raw, build_snapshot


class TestAnalyzeTrend:
    def test_no_history(self, registry):
        report = analyze_trend(registry, "com.acme:shop")
        assert report.state is HistoryState.NO_HISTORY
        assert report.latest is None
        assert report.trend is None
        assert report.historical_scans == 0

    def test_baseline_lists_vulnerable_dependencies(self, registry):
        registry.store_scan_result(
            build_snapshot(
                {"a:1.0": ["CVE-1"], "b:1.0": ["CVE-2", "CVE-3"]}, clean=["c:1.0"], timestamp=T0
            )
        )
        report = analyze_trend(registry, "com.acme:shop")

        assert report.state is HistoryState.BASELINE
        assert report.trend is None
        assert report.previous is None
        assert [str(d.coordinates) for d in report.vulnerable_dependencies] == ["b:1.0", "a:1.0"]
        assert report.historical_scans == 1

    def test_trending(self, registry, clock):
        clock.advance(hours=2)
        registry.store_scan_result(build_snapshot({"a:1.0": ["CVE-1"]}, timestamp=T0))
        registry.store_scan_result(
            build_snapshot({"b:1.0": ["CVE-2"]}, timestamp=T0 + timedelta(hours=1))
        )
        report = analyze_trend(registry, "com.acme:shop")

        assert report.state is HistoryState.TRENDING
        assert report.previous.timestamp == T0
        assert [str(j.coordinates) for j in report.trend.resolved_jars] == ["a:1.0"]
        assert [str(j.coordinates) for j in report.trend.new_vulnerable_jars] == ["b:1.0"]
        assert report.historical_scans == 2


class TestProcessScan:
    def test_first_scan_is_baseline(self, registry):
        outcome = process_scan(registry, build_raw({"a:1.0": ["CVE-1"]}, timestamp=T0))

        assert outcome.ok
        assert isinstance(outcome.report, TrendReport)
        assert outcome.report.state is HistoryState.BASELINE
        assert outcome.snapshot.total_vulnerabilities == 1

    def test_second_scan_trends(self, registry, clock):
        clock.advance(hours=1)
        process_scan(registry, build_raw({"a:1.0": ["CVE-1"]}, timestamp=T0))
        outcome = process_scan(
            registry, build_raw({"a:1.0": []}, timestamp=T0 + timedelta(hours=1))
        )

        assert outcome.report.state is HistoryState.TRENDING
        assert outcome.report.trend.severity_trend.total == -1

    def test_malformed_input_is_returned_not_raised(self, registry, caplog):
        raw = RawScanResult(project_group_id="", project_artifact_id="shop")

        with caplog.at_level(logging.WARNING, logger="vulntrend"):
            outcome = process_scan(registry, raw)

        assert not outcome.ok
        assert isinstance(outcome.error, InvalidInputError)
        assert outcome.report is None
        assert outcome.snapshot is None
        assert "Trend analysis skipped" in caplog.text

    def test_duplicate_scan_keeps_snapshot(self, registry):
        raw = build_raw({"a:1.0": ["CVE-1"]}, timestamp=T0)
        process_scan(registry, raw)
        outcome = process_scan(registry, raw)

        assert not outcome.ok
        assert outcome.snapshot is not None
        assert registry.get_project_stats("com.acme:shop").total_scans == 1

    def test_missing_raw(self, registry):
        outcome = process_scan(registry, None)
        assert isinstance(outcome.error, InvalidInputError)
