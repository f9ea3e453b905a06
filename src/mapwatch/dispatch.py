"""Fan activation events out to connected subscribers."""

from __future__ import annotations

import logging

from mapwatch.models.events import ActivationEvent
from mapwatch.registry import ClientRegistry

_logger = logging.getLogger(__name__)


class Broadcaster:
    """Best-effort delivery of events to every open, authorized connection.

    A failure on one socket never prevents delivery to the others; the
    failing connection is forgotten.
    """

    def __init__(self, registry: ClientRegistry) -> None:
        self._registry = registry

    async def broadcast(self, event: ActivationEvent) -> int:
        """Send *event* to every open subscriber.

        Returns:
            Number of connections the text was delivered to.

        """
        text = event.message
        delivered = 0
        for connection in self._registry.open_authorized():
            # A previous send may have suspended long enough for this one to close.
            if not connection.is_open:
                continue
            try:
                await connection.send(text)
            except Exception:
                _logger.warning("Delivery to connection %s failed", connection.handle[:8], exc_info=True)
                self._registry.forget(connection)
                continue
            delivered += 1
        return delivered
