"""Registry of connected subscribers."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterator

from mapwatch._constants import (
    CLOSE_GOING_AWAY,
    CLOSE_POLICY_VIOLATION,
    SHUTDOWN_REASON,
    UNAUTHORIZED_REASON,
)
from mapwatch.connection import Connection, WireSocket
from mapwatch.exceptions import AuthRejectedError

_logger = logging.getLogger(__name__)


class ClientRegistry:
    """Tracks admitted connections against a single shared secret.

    Only connections that passed the handshake are ever stored, so a
    rejected peer can never be reached by a broadcast.
    """

    def __init__(self, auth_token: str) -> None:
        self._auth_token = auth_token
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return isinstance(connection, Connection) and self._connections.get(connection.handle) is connection

    def _token_matches(self, presented: str | None) -> bool:
        if presented is None:
            return False
        return secrets.compare_digest(presented.encode("utf-8"), self._auth_token.encode("utf-8"))

    async def admit(self, socket: WireSocket, token: str | None) -> Connection:
        """Check the handshake token and register the connection.

        Raises
        ------
        AuthRejectedError
            The token was wrong or missing. The socket has been closed
            with status 1008 and nothing was registered.
        """
        connection = Connection(socket)
        if not self._token_matches(token):
            connection.mark_closed()
            await socket.close(code=CLOSE_POLICY_VIOLATION, message=UNAUTHORIZED_REASON.encode("utf-8"))
            raise AuthRejectedError("Handshake token rejected", handle=connection.handle)

        connection.authorize()
        self._connections[connection.handle] = connection
        return connection

    def forget(self, connection: Connection) -> None:
        """Drop *connection* and its rate-limit history. Idempotent."""
        if self._connections.get(connection.handle) is connection:
            del self._connections[connection.handle]
        connection.mark_closed()

    def open_authorized(self) -> Iterator[Connection]:
        """Yield connections that are authorized and still open.

        Iterates over a copy, so forgetting a connection mid-iteration
        is safe.
        """
        for connection in tuple(self._connections.values()):
            if connection.is_open:
                yield connection

    async def close_all(self, *, code: int = CLOSE_GOING_AWAY, reason: str = SHUTDOWN_REASON) -> int:
        """Close and forget every registered connection.

        Returns the number of connections closed.
        """
        connections = tuple(self._connections.values())
        for connection in connections:
            try:
                await connection.socket.close(code=code, message=reason.encode("utf-8"))
            except Exception:
                _logger.debug("Closing connection %s failed", connection.handle[:8], exc_info=True)
            self.forget(connection)
        return len(connections)
