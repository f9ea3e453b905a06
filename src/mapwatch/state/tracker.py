"""Deterministic in-memory tracker of flagged locations.

Given the same sequence of snapshots, the tracker produces the same
events and the same Active Set.
"""

from __future__ import annotations

import logging

from mapwatch.models.events import ActivationEvent
from mapwatch.models.snapshot import Snapshot

_logger = logging.getLogger(__name__)


class StateTracker:
    """Diff successive snapshots against the set of active locations.

    Only a transition into the flagged state is reported. A location
    observed unflagged is dropped from the set without an event. A
    location missing from a snapshot altogether is left as it is.
    """

    def __init__(self) -> None:
        self._active: set[str] = set()

    @property
    def active_keys(self) -> frozenset[str]:
        return frozenset(self._active)

    def is_active(self, key: str) -> bool:
        return key in self._active

    def __len__(self) -> int:
        return len(self._active)

    def diff(self, snapshot: Snapshot) -> list[ActivationEvent]:
        """Apply *snapshot* and return activation events in cell order."""
        events: list[ActivationEvent] = []
        for cell in snapshot.cells:
            key = cell.location_key
            if cell.is_flagged:
                if key in self._active:
                    continue
                self._active.add(key)
                events.append(ActivationEvent(location_key=key, detected_at=snapshot.fetched_at))
            elif key in self._active:
                self._active.discard(key)
                _logger.debug("Location %s no longer flagged", key)
        return events
