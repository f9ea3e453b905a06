"""aiohttp host for the notification service.

Wires the tracker, registry, rate limiter, broadcaster and cycle
controller together and exposes them over one port:

* ``GET /`` upgrades to a WebSocket. The subscriber token travels in the
  ``Sec-WebSocket-Protocol`` header.
* ``GET /status`` reports the active locations and connection count.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import signal
import time
from collections import deque
from typing import Any

import aiohttp
from aiohttp import hdrs, web

from mapwatch._constants import (
    CLOSE_GOING_AWAY,
    HTTP_RATE_LIMIT_TEXT,
    RATE_LIMIT_TEXT,
    SHUTDOWN_REASON,
    WELCOME_TEXT,
)
from mapwatch._redact import redact_for_log
from mapwatch.config import WatchConfig
from mapwatch.connection import Connection
from mapwatch.cycle import CycleController, SnapshotSource
from mapwatch.dispatch import Broadcaster
from mapwatch.exceptions import AuthRejectedError, RateLimitedError
from mapwatch.ratelimit import SlidingWindowRateLimiter
from mapwatch.registry import ClientRegistry
from mapwatch.schedule import PeriodicTrigger
from mapwatch.source import MapPageSource
from mapwatch.state.tracker import StateTracker

_logger = logging.getLogger(__name__)


class NotifierServer:
    """Owns every component of one service process.

    Usage::

        server = NotifierServer(config)
        await server.serve()  # until SIGINT/SIGTERM
    """

    def __init__(
        self,
        config: WatchConfig,
        *,
        source: SnapshotSource | None = None,
    ) -> None:
        self._config = config
        self._owned_source: MapPageSource | None = None
        if source is None:
            self._owned_source = MapPageSource(config.map_url, timeout=config.fetch_timeout)
            source = self._owned_source
        self.source = source

        self.tracker = StateTracker()
        self.registry = ClientRegistry(config.auth_token)
        self.limiter = SlidingWindowRateLimiter(limit=config.rate_limit_max, window=config.rate_limit_window)
        self.broadcaster = Broadcaster(self.registry)
        self.controller = CycleController(source, self.tracker, self.broadcaster)
        self.trigger = PeriodicTrigger(self.controller, config.poll_interval)

        self._accepting = True
        self._http_histories: dict[str, deque[float]] = {}
        self._runner: web.AppRunner | None = None

    @property
    def accepting(self) -> bool:
        return self._accepting

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self._websocket_handler)
        app.router.add_get("/status", self._status_handler)
        return app

    async def _websocket_handler(self, request: web.Request) -> web.StreamResponse:
        if not self._accepting:
            return web.Response(status=503, text="Server shutting down")

        _logger.debug("Upgrade request headers: %s", redact_for_log(dict(request.headers)))

        token = request.headers.get(hdrs.SEC_WEBSOCKET_PROTOCOL)
        # Echo the offered subprotocol so browser clients complete the handshake.
        ws = web.WebSocketResponse(protocols=(token,) if token else ())
        await ws.prepare(request)

        # Shutdown may have started while the handshake was in flight.
        if not self._accepting:
            await ws.close(code=CLOSE_GOING_AWAY, message=SHUTDOWN_REASON.encode("utf-8"))
            return ws

        try:
            connection = await self.registry.admit(ws, token)
        except AuthRejectedError as exc:
            _logger.warning("Rejected client %s from %s: %s", exc.handle[:8], request.remote, exc)
            return ws

        _logger.info("New client connected")
        try:
            if connection.is_open:
                await connection.send(WELCOME_TEXT)
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    await self._on_client_message(connection)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    _logger.error("Connection %s error: %s", connection.handle[:8], ws.exception())
        finally:
            self.registry.forget(connection)
            _logger.info("Client disconnected")

        return ws

    async def _on_client_message(self, connection: Connection) -> None:
        try:
            self.limiter.require(connection, time.monotonic())
        except RateLimitedError as exc:
            _logger.warning("Rate limit exceeded for client %s (retry in %.0fs)", connection.handle[:8], exc.retry_after)
            if connection.is_open:
                await connection.send(RATE_LIMIT_TEXT)

    def _http_admit(self, remote: str) -> bool:
        now = time.monotonic()
        history = self._http_histories.setdefault(remote, deque())
        allowed = self.limiter.admit(history, now)
        # Drop addresses whose window has emptied out.
        for key, other in list(self._http_histories.items()):
            self.limiter.prune(other, now)
            if not other:
                del self._http_histories[key]
        return allowed

    async def _status_handler(self, request: web.Request) -> web.Response:
        if not self._http_admit(request.remote or ""):
            return web.Response(status=429, text=HTTP_RATE_LIMIT_TEXT)

        last = self.controller.last_report
        body: dict[str, Any] = {
            "active_locations": sorted(self.tracker.active_keys),
            "connections": len(self.registry),
            "cycles": self.controller.cycles,
            "last_cycle": last.model_dump(mode="json") if last is not None else None,
        }
        return web.json_response(body)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the source, bind the listener and start the trigger."""
        _logger.debug("Config: %s", redact_for_log(dataclasses.asdict(self._config)))
        if self._owned_source is not None:
            await self._owned_source.open()

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()
        _logger.info("WebSocket server running on ws://%s:%d", self._config.host, self._config.port)

        self.trigger.start()

    async def close_connections(self) -> int:
        """First half of shutdown: stop accepting, drain, close sockets.

        Returns the number of connections closed.
        """
        self._accepting = False
        await self.trigger.stop()
        closed = await self.registry.close_all()
        _logger.info("Closed %d client connection(s)", closed)
        return closed

    async def shutdown(self) -> None:
        """Graceful shutdown in order: connections, then listener, then source."""
        _logger.info("Shutting down server...")
        await self.close_connections()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            _logger.info("HTTP server closed.")
        if self._owned_source is not None:
            await self._owned_source.close()
        _logger.info("WebSocket server closed.")

    async def serve(self) -> None:
        """Run until SIGINT or SIGTERM, then shut down gracefully."""
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, stop.set)

        await self.start()
        try:
            await stop.wait()
        finally:
            for signum in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(signum)
            await self.shutdown()
