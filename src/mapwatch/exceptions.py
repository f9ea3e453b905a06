"""Custom exception hierarchy for mapwatch."""

from __future__ import annotations


class MapwatchError(Exception):
    """Base exception for all mapwatch errors."""


class ConfigMissingError(MapwatchError):
    """Required configuration (the shared auth secret) is absent."""


class FetchError(MapwatchError):
    """The map page was unreachable or returned unparseable content."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class AuthRejectedError(MapwatchError):
    """A connecting peer presented a wrong or missing token.

    The socket has already been closed with a policy-violation status
    by the time this is raised.
    """

    def __init__(self, message: str, *, handle: str = "") -> None:
        self.handle = handle
        super().__init__(message)


class RateLimitedError(MapwatchError):
    """Inbound message cap exceeded for a connection.

    ``retry_after`` is the number of seconds until the oldest recorded
    message leaves the window and capacity frees up.
    """

    def __init__(self, message: str, *, retry_after: float = 0.0) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class ConnectionStateError(MapwatchError):
    """Illegal connection state transition."""
