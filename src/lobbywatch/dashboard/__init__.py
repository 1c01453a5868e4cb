"""Snapshot reporting and the read-only HTTP API."""

from .models import SnapshotEntry, SnapshotPlayer
from .reporter import SnapshotReporter
from .sinks import JsonFileSink, SnapshotSink, snapshot_to_json

__all__ = [
    "JsonFileSink",
    "SnapshotEntry",
    "SnapshotPlayer",
    "SnapshotReporter",
    "SnapshotSink",
    "snapshot_to_json",
]
