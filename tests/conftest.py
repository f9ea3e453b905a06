from __future__ import annotations

from dataclasses import dataclass, field

import pytest


@dataclass
class FakeSocket:
    """In-memory stand-in for ``aiohttp.web.WebSocketResponse``."""

    fail_sends: bool = False
    sent: list[str] = field(default_factory=list)
    closed: bool = False
    close_code: int | None = None
    close_message: bytes = b""

    async def send_str(self, data: str) -> None:
        if self.fail_sends:
            raise ConnectionResetError("peer went away")
        self.sent.append(data)

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        if self.closed:
            return False
        self.closed = True
        self.close_code = code
        self.close_message = message
        return True


@pytest.fixture
def make_socket() -> type[FakeSocket]:
    return FakeSocket
