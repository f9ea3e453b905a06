"""Sliding-window admission control for inbound client chatter.

Outbound broadcasts are never rate limited; only messages a subscriber
sends to the server count against its window.
"""

from __future__ import annotations

from collections import deque

from mapwatch._constants import DEFAULT_RATE_LIMIT_MAX, DEFAULT_RATE_LIMIT_WINDOW
from mapwatch.connection import Connection
from mapwatch.exceptions import RateLimitedError


class SlidingWindowRateLimiter:
    """Admit at most ``limit`` messages per ``window`` seconds.

    The limiter itself is stateless; each subject carries its own
    history of admitted timestamps (``Connection.history`` for sockets),
    so the history goes away together with the subject.
    """

    def __init__(
        self,
        *,
        limit: int = DEFAULT_RATE_LIMIT_MAX,
        window: float = DEFAULT_RATE_LIMIT_WINDOW,
    ) -> None:
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")
        self.limit = limit
        self.window = window

    def prune(self, history: deque[float], now: float) -> None:
        """Drop timestamps that have left the window."""
        while history and now - history[0] >= self.window:
            history.popleft()

    def admit(self, history: deque[float], now: float) -> bool:
        """Record *now* in *history* if there is capacity left."""
        self.prune(history, now)
        if len(history) >= self.limit:
            return False
        history.append(now)
        return True

    def retry_after(self, history: deque[float], now: float) -> float:
        """Seconds until the oldest recorded message leaves the window."""
        self.prune(history, now)
        if len(history) < self.limit:
            return 0.0
        return max(0.0, history[0] + self.window - now)

    def admit_message(self, connection: Connection, now: float) -> bool:
        return self.admit(connection.history, now)

    def require(self, connection: Connection, now: float) -> None:
        """Like :meth:`admit_message` but raise when over the cap.

        Raises
        ------
        RateLimitedError
            The connection has used its quota for the current window.
        """
        if self.admit_message(connection, now):
            return
        raise RateLimitedError(
            f"Rate limit exceeded for connection {connection.handle[:8]}",
            retry_after=self.retry_after(connection.history, now),
        )
