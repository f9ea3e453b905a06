"""Activation events and cycle reports."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from mapwatch._constants import activation_text


class ActivationEvent(BaseModel):
    """A location that entered the flagged state during one cycle."""

    model_config = ConfigDict(frozen=True)

    location_key: str
    detected_at: datetime

    @property
    def message(self) -> str:
        """Wire text pushed to subscribers."""
        return activation_text(self.location_key)


class CycleReport(BaseModel):
    """Outcome of one scheduled cycle.

    ``error`` is set when the fetch failed and the cycle was abandoned
    before diffing. ``skipped`` is set when the cycle never started
    because a previous one was still in flight.
    """

    model_config = ConfigDict(frozen=True)

    cycle: int
    started_at: datetime
    events: tuple[ActivationEvent, ...] = ()
    delivered: int = 0
    error: str | None = None
    skipped: bool = False
    cell_count: int = Field(default=0, description="Cells seen in the snapshot")

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped
