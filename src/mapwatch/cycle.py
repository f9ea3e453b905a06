"""One poll → diff → broadcast pass per scheduled tick."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from mapwatch.dispatch import Broadcaster
from mapwatch.exceptions import MapwatchError
from mapwatch.models.events import CycleReport
from mapwatch.models.snapshot import Snapshot
from mapwatch.state.tracker import StateTracker

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SnapshotSource(Protocol):
    """Anything that can produce one snapshot per cycle.

    Implementations should raise :class:`FetchError` for every network or
    parse failure. Any :class:`MapwatchError` fails only the current cycle.
    """

    async def fetch_snapshot(self) -> Snapshot:
        ...


class CycleController:
    """Orchestrates a single cycle for the external clock.

    A failed fetch leaves the tracker untouched. A tick entered while a
    previous one is still in flight is skipped rather than overlapped.
    """

    def __init__(
        self,
        source: SnapshotSource,
        tracker: StateTracker,
        broadcaster: Broadcaster,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._tracker = tracker
        self._broadcaster = broadcaster
        self._clock = clock
        self._busy = False
        self._cycles = 0
        self._last_report: CycleReport | None = None

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def cycles(self) -> int:
        """Number of cycles started (skipped ticks are not counted)."""
        return self._cycles

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    async def tick(self) -> CycleReport:
        if self._busy:
            _logger.warning("Previous cycle %d still running; skipping tick", self._cycles)
            return CycleReport(cycle=self._cycles, started_at=self._clock(), skipped=True)

        self._busy = True
        try:
            report = await self._run_cycle()
        except Exception as exc:
            self._last_report = CycleReport(cycle=self._cycles, started_at=self._clock(), error=repr(exc))
            raise
        finally:
            self._busy = False
        self._last_report = report
        return report

    async def _run_cycle(self) -> CycleReport:
        self._cycles += 1
        cycle = self._cycles
        started_at = self._clock()

        try:
            snapshot = await self._source.fetch_snapshot()
        except MapwatchError as exc:
            _logger.error("Error fetching the page: %s", exc)
            return CycleReport(cycle=cycle, started_at=started_at, error=str(exc))

        events = self._tracker.diff(snapshot)
        delivered = 0
        for event in events:
            _logger.info("%s", event.message)
            delivered += await self._broadcaster.broadcast(event)

        _logger.debug(
            "Cycle %d: %d cells, %d new, %d active, %d deliveries",
            cycle,
            len(snapshot),
            len(events),
            len(self._tracker),
            delivered,
        )
        return CycleReport(
            cycle=cycle,
            started_at=started_at,
            events=tuple(events),
            delivered=delivered,
            cell_count=len(snapshot),
        )
