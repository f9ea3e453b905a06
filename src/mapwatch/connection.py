"""Per-subscriber connection state machine.

A connection starts ``PENDING`` when the upgrade is accepted, moves to
``AUTHORIZED`` or ``CLOSED`` once the handshake token is checked, and
ends ``CLOSED`` on close or error. ``CLOSED`` is terminal.
"""

from __future__ import annotations

import secrets
from collections import deque
from enum import StrEnum
from typing import Protocol

from mapwatch.exceptions import ConnectionStateError


class ConnectionState(StrEnum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CLOSED = "closed"


class WireSocket(Protocol):
    """Structural interface of the underlying socket.

    ``aiohttp.web.WebSocketResponse`` satisfies it; tests pass doubles.
    """

    @property
    def closed(self) -> bool:
        ...

    async def send_str(self, data: str) -> None:
        ...

    async def close(self, *, code: int = ..., message: bytes = ...) -> bool:
        ...


_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.PENDING: frozenset({ConnectionState.AUTHORIZED, ConnectionState.CLOSED}),
    ConnectionState.AUTHORIZED: frozenset({ConnectionState.CLOSED}),
    ConnectionState.CLOSED: frozenset(),
}


class Connection:
    """One live subscriber.

    ``history`` holds timestamps of recently admitted inbound messages
    and is maintained by the rate limiter.
    """

    __slots__ = ("handle", "socket", "history", "_state")

    def __init__(self, socket: WireSocket, *, handle: str | None = None) -> None:
        self.handle = handle or secrets.token_hex(16)
        self.socket = socket
        self.history: deque[float] = deque()
        self._state = ConnectionState.PENDING

    def __repr__(self) -> str:
        return f"Connection(handle={self.handle[:8]!r}, state={self._state.value!r})"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_authorized(self) -> bool:
        return self._state is ConnectionState.AUTHORIZED

    @property
    def is_open(self) -> bool:
        """Authorized and the socket has not been closed underneath us."""
        return self.is_authorized and not self.socket.closed

    def _transition(self, target: ConnectionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise ConnectionStateError(f"Cannot move connection {self.handle[:8]} from {self._state} to {target}")
        self._state = target

    def authorize(self) -> None:
        self._transition(ConnectionState.AUTHORIZED)

    def mark_closed(self) -> None:
        """Move to ``CLOSED`` and drop the rate-limit history. Idempotent."""
        if self._state is not ConnectionState.CLOSED:
            self._transition(ConnectionState.CLOSED)
        self.history.clear()

    async def send(self, text: str) -> None:
        if not self.is_open:
            raise ConnectionStateError(f"Connection {self.handle[:8]} is not open")
        await self.socket.send_str(text)
