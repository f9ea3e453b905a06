"""Map snapshot models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mapwatch.sanitize import is_flagged as _is_flagged
from mapwatch.sanitize import location_key as _location_key


class MapCell(BaseModel):
    """Raw text fragments of one map cell.

    Parameters
    ----------
    left_text : str
        Bottom-left fragment; carries the flag glyph when the cell is active.
    right_text : str
        Bottom-right fragment; first half of the location key.
    top_text : str
        Top-right fragment; second half of the location key.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    left_text: str = ""
    right_text: str = ""
    top_text: str = ""

    @classmethod
    def from_row(cls, row: tuple[str, str, str]) -> MapCell:
        left, right, top = row
        return cls(left_text=left, right_text=right, top_text=top)

    @property
    def location_key(self) -> str:
        return _location_key(self.right_text, self.top_text)

    @property
    def is_flagged(self) -> bool:
        return _is_flagged(self.left_text)


class Snapshot(BaseModel):
    """One polling cycle's extraction of every map cell, in page order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    cells: tuple[MapCell, ...] = ()
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    source_url: str = ""

    @field_validator("fetched_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[tuple[str, str, str]],
        *,
        fetched_at: datetime | None = None,
        source_url: str = "",
    ) -> Snapshot:
        """Build a snapshot from ``(left, right, top)`` text triples."""
        cells = tuple(MapCell.from_row(row) for row in rows)
        if fetched_at is None:
            return cls(cells=cells, source_url=source_url)
        return cls(cells=cells, fetched_at=fetched_at, source_url=source_url)

    def __len__(self) -> int:
        return len(self.cells)
