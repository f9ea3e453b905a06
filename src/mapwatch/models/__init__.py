"""Typed models for snapshots, activation events and cycle reports."""

from mapwatch.models.events import ActivationEvent, CycleReport
from mapwatch.models.snapshot import MapCell, Snapshot

__all__ = [
    "ActivationEvent",
    "CycleReport",
    "MapCell",
    "Snapshot",
]
