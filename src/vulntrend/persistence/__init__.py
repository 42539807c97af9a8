"""Bounded in-memory scan history: store, registry and serialisation."""

from .models import HistoryState, ProjectHistory, ProjectStats, ProjectSummary
from .registry import ProjectRegistry
from .serialization import (
    SCHEMA_VERSION,
    dumps_state,
    history_from_dict,
    history_to_dict,
    loads_state,
    snapshot_from_dict,
    snapshot_to_dict,
    state_from_dict,
    state_to_dict,
    trend_result_to_dict,
)
from .store import ScanRecordStore

__all__ = [
    "HistoryState",
    "ProjectHistory",
    "ProjectRegistry",
    "ProjectStats",
    "ProjectSummary",
    "ScanRecordStore",
    "SCHEMA_VERSION",
    "dumps_state",
    "history_from_dict",
    "history_to_dict",
    "loads_state",
    "snapshot_from_dict",
    "snapshot_to_dict",
    "state_from_dict",
    "state_to_dict",
    "trend_result_to_dict",
]
