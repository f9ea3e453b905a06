"""Fixed-rate clock driving the cycle controller."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from mapwatch.cycle import CycleController

_logger = logging.getLogger(__name__)


class PeriodicTrigger:
    """Call ``controller.tick()`` every ``interval`` seconds.

    Ticks are scheduled at a fixed rate from the loop clock and each one
    runs as its own task, so a slow fetch does not push later ticks
    back. Overlap is left to the controller, which skips a tick while
    another is in flight.
    """

    def __init__(self, controller: CycleController, interval: float) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._controller = controller
        self._interval = interval
        self._runner: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def is_running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._runner = asyncio.get_running_loop().create_task(self._run(), name="mapwatch-trigger")

    async def stop(self) -> None:
        """Stop scheduling and wait for in-flight ticks to finish."""
        runner = self._runner
        self._runner = None
        if runner is not None:
            runner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await runner
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while True:
            self._fire()
            next_at += self._interval
            # Missed slots are dropped rather than fired back to back.
            now = loop.time()
            while next_at <= now:
                next_at += self._interval
            await asyncio.sleep(next_at - now)

    def _fire(self) -> None:
        task = asyncio.get_running_loop().create_task(self._tick())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _tick(self) -> None:
        _logger.info("Checking for new entries...")
        try:
            await self._controller.tick()
        except Exception:
            _logger.exception("Unexpected error during cycle")
