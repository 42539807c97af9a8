"""Shared test fixtures for vuln-trend tests."""

from datetime import datetime, timedelta, timezone

import pytest

from vulntrend.config import HistoryConfig
from vulntrend.persistence import ProjectRegistry, ScanRecordStore
from vulntrend.snapshot import Coordinates, RawDependency, RawScanResult, RawVulnerability, extract

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def build_raw(deps, severities=None, project="com.acme:shop", timestamp=None, clean=()):
    """Raw scan result from ``{"group:artifact:version": [ids]}``.

    ``clean`` lists coordinates of dependencies without vulnerabilities.
    """
    group, _, artifact = project.partition(":")
    severities = severities or {}
    dependencies = []
    for coords_text, ids in list(deps.items()) + [(c, []) for c in clean]:
        coords = Coordinates.parse(coords_text)
        dependencies.append(
            RawDependency(
                group_id=coords.group_id,
                artifact_id=coords.artifact_id,
                version=coords.version,
                vulnerability_ids=list(ids),
            )
        )
    all_ids = sorted({v for ids in deps.values() for v in ids})
    vulnerabilities = [RawVulnerability(id=v, severity=severities.get(v)) for v in all_ids]
    return RawScanResult(
        project_group_id=group,
        project_artifact_id=artifact,
        timestamp=timestamp,
        dependencies=dependencies,
        vulnerabilities=vulnerabilities,
    )


def build_snapshot(deps=None, severities=None, project="com.acme:shop", timestamp=T0, clean=()):
    return extract(build_raw(deps or {}, severities, project, timestamp, clean))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_snapshot():
    """Factory fixture: ``make_snapshot({"libA:1.0": ["CVE-1"]}, timestamp=...)``."""
    return build_snapshot


@pytest.fixture
def small_config():
    return HistoryConfig(max_projects=3, max_sessions_per_project=3, ttl_hours=24.0)


@pytest.fixture
def store(small_config, clock):
    return ScanRecordStore(small_config, clock=clock)


@pytest.fixture
def registry(small_config, clock):
    with ProjectRegistry(small_config, clock=clock) as reg:
        yield reg
