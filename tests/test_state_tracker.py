from __future__ import annotations

from datetime import UTC, datetime

from mapwatch.models.snapshot import Snapshot
from mapwatch.state.tracker import StateTracker

FLAG = "⚔️"


def _dt(minute: int = 0) -> datetime:
    return datetime(2026, 1, 1, 12, minute, tzinfo=UTC)


def _snap(*rows: tuple[str, str, str], minute: int = 0) -> Snapshot:
    return Snapshot.from_rows(rows, fetched_at=_dt(minute))


def test_first_cycle_reports_new_activation() -> None:
    tracker = StateTracker()

    events = tracker.diff(_snap((FLAG, "A", "1")))

    assert [e.location_key for e in events] == ["A1"]
    assert events[0].detected_at == _dt()
    assert tracker.active_keys == frozenset({"A1"})


def test_same_snapshot_twice_reports_only_once() -> None:
    tracker = StateTracker()
    snapshot = _snap((FLAG, "A", "1"), (FLAG, "B", "2"))

    first = tracker.diff(snapshot)
    second = tracker.diff(snapshot)

    assert [e.location_key for e in first] == ["A1", "B2"]
    assert second == []
    assert tracker.active_keys == frozenset({"A1", "B2"})


def test_deactivation_is_silent() -> None:
    tracker = StateTracker()
    tracker.diff(_snap((FLAG, "A", "1")))

    events = tracker.diff(_snap(("", "A", "1"), minute=1))

    assert events == []
    assert tracker.active_keys == frozenset()
    assert not tracker.is_active("A1")


def test_reactivation_after_clear_reports_again() -> None:
    tracker = StateTracker()
    tracker.diff(_snap((FLAG, "A", "1")))
    tracker.diff(_snap(("", "A", "1"), minute=1))

    events = tracker.diff(_snap((FLAG, "A", "1"), minute=2))

    assert [e.location_key for e in events] == ["A1"]
    assert events[0].detected_at == _dt(2)


def test_unflagged_unknown_key_is_ignored() -> None:
    tracker = StateTracker()

    assert tracker.diff(_snap(("🛡", "C", "3"))) == []
    assert len(tracker) == 0


def test_key_missing_from_snapshot_stays_active() -> None:
    tracker = StateTracker()
    tracker.diff(_snap((FLAG, "A", "1"), (FLAG, "B", "2")))

    events = tracker.diff(_snap((FLAG, "B", "2"), minute=1))

    assert events == []
    assert tracker.active_keys == frozenset({"A1", "B2"})


def test_events_follow_snapshot_order() -> None:
    tracker = StateTracker()

    events = tracker.diff(_snap((FLAG, "Z", "9"), (FLAG, "A", "1"), (FLAG, "M", "5")))

    assert [e.location_key for e in events] == ["Z9", "A1", "M5"]


def test_keys_only_enter_with_a_flagged_observation() -> None:
    tracker = StateTracker()
    cycles = [
        _snap((FLAG, "A", "1"), ("", "B", "2")),
        _snap(("", "A", "1"), (FLAG, "B", "2"), ("", "C", "3"), minute=1),
        _snap((FLAG, "C", "3"), minute=2),
    ]

    for snapshot in cycles:
        before = tracker.active_keys
        tracker.diff(snapshot)
        flagged = {c.location_key for c in snapshot.cells if c.is_flagged}
        for key in tracker.active_keys:
            assert key in flagged or key in before

    assert tracker.active_keys == frozenset({"B2", "C3"})


def test_sanitized_fragments_form_the_key() -> None:
    tracker = StateTracker()

    events = tracker.diff(_snap(("<i>⚔️</i>", "<b>D</b>", " 4 ")))

    assert [e.location_key for e in events] == ["bDb 4 "]
