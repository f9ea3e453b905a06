"""Helpers for safe debug logging.

mapwatch handles one secret, the shared subscriber token, which travels
in the WebSocket subprotocol header and lives in the config.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "auth_token",
        "sec-websocket-protocol",
        "authorization",
        "cookie",
    }
)


def redact_for_log(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of the flat mapping *fields* with secret values masked.

    Keys match case-insensitively, so raw HTTP headers work as well.
    """
    return {key: "<redacted>" if key.lower() in _SENSITIVE_KEYS else value for key, value in fields.items()}
