from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import pytest

from mapwatch.cycle import CycleController
from mapwatch.dispatch import Broadcaster
from mapwatch.exceptions import FetchError, MapwatchError
from mapwatch.models.snapshot import Snapshot
from mapwatch.registry import ClientRegistry
from mapwatch.state.tracker import StateTracker

FLAG = "⚔️"
TOKEN = "token"


class ScriptedSource:
    """Returns one scripted result per fetch; exceptions are raised."""

    def __init__(self, script: Sequence[Snapshot | Exception]) -> None:
        self._script = list(script)
        self.calls = 0

    async def fetch_snapshot(self) -> Snapshot:
        item = self._script[self.calls]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


class BlockingSource:
    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.entered = asyncio.Event()

    async def fetch_snapshot(self) -> Snapshot:
        self.entered.set()
        await self.release.wait()
        return Snapshot.from_rows([(FLAG, "A", "1")])


def _snap(*rows: tuple[str, str, str]) -> Snapshot:
    return Snapshot.from_rows(rows, fetched_at=datetime(2026, 1, 1, tzinfo=UTC))


def _controller(source: Any, registry: ClientRegistry | None = None) -> tuple[CycleController, StateTracker]:
    tracker = StateTracker()
    registry = registry or ClientRegistry(TOKEN)
    return CycleController(source, tracker, Broadcaster(registry)), tracker


@pytest.mark.asyncio
async def test_scenario_repeat_snapshot_reports_once(make_socket: Any) -> None:
    registry = ClientRegistry(TOKEN)
    socket = make_socket()
    await registry.admit(socket, TOKEN)
    source = ScriptedSource([_snap((FLAG, "A", "1")), _snap((FLAG, "A", "1"))])
    controller, tracker = _controller(source, registry)

    first = await controller.tick()
    assert tracker.active_keys == frozenset({"A1"})
    assert [e.location_key for e in first.events] == ["A1"]
    assert first.delivered == 1

    second = await controller.tick()
    assert second.events == ()
    assert socket.sent == ["New ⚔️ detected at location: A1"]


@pytest.mark.asyncio
async def test_scenario_unflagged_clears_without_event() -> None:
    source = ScriptedSource([_snap((FLAG, "A", "1")), _snap(("", "A", "1"))])
    controller, tracker = _controller(source)

    await controller.tick()
    report = await controller.tick()

    assert report.events == ()
    assert tracker.active_keys == frozenset()


@pytest.mark.asyncio
async def test_scenario_fetch_failure_leaves_state_and_recovers(make_socket: Any) -> None:
    registry = ClientRegistry(TOKEN)
    socket = make_socket()
    await registry.admit(socket, TOKEN)
    source = ScriptedSource(
        [
            _snap((FLAG, "A", "1")),
            FetchError("HTTP 502 from map", status_code=502),
            _snap((FLAG, "A", "1"), (FLAG, "B", "2")),
        ]
    )
    controller, tracker = _controller(source, registry)

    await controller.tick()
    failed = await controller.tick()

    assert failed.error == "HTTP 502 from map"
    assert not failed.ok
    assert failed.events == ()
    assert tracker.active_keys == frozenset({"A1"})
    assert len(socket.sent) == 1

    recovered = await controller.tick()
    assert recovered.ok
    assert [e.location_key for e in recovered.events] == ["B2"]
    assert controller.cycles == 3
    assert controller.last_report == recovered


@pytest.mark.asyncio
async def test_events_broadcast_in_snapshot_order(make_socket: Any) -> None:
    registry = ClientRegistry(TOKEN)
    socket = make_socket()
    await registry.admit(socket, TOKEN)
    controller, _ = _controller(ScriptedSource([_snap((FLAG, "C", "3"), (FLAG, "A", "1"))]), registry)

    await controller.tick()

    assert socket.sent == [
        "New ⚔️ detected at location: C3",
        "New ⚔️ detected at location: A1",
    ]


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped() -> None:
    source = BlockingSource()
    controller, tracker = _controller(source)

    first = asyncio.create_task(controller.tick())
    await source.entered.wait()
    assert controller.busy

    skipped = await controller.tick()
    assert skipped.skipped
    assert not skipped.ok

    source.release.set()
    report = await first
    assert report.ok
    assert tracker.active_keys == frozenset({"A1"})
    assert controller.cycles == 1
    assert not controller.busy


@pytest.mark.asyncio
async def test_any_source_error_fails_only_the_cycle() -> None:
    source = ScriptedSource([MapwatchError("Source not initialized"), _snap((FLAG, "A", "1"))])
    controller, tracker = _controller(source)

    failed = await controller.tick()
    assert failed.error == "Source not initialized"
    assert controller.last_report == failed
    assert tracker.active_keys == frozenset()

    recovered = await controller.tick()
    assert [e.location_key for e in recovered.events] == ["A1"]


@pytest.mark.asyncio
async def test_unexpected_error_is_recorded_and_propagates() -> None:
    source = ScriptedSource([RuntimeError("boom")])
    controller, _ = _controller(source)

    with pytest.raises(RuntimeError):
        await controller.tick()

    report = controller.last_report
    assert report is not None
    assert report.cycle == 1
    assert report.error == "RuntimeError('boom')"
    assert not controller.busy
