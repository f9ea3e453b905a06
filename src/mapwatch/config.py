"""Service configuration for mapwatch."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from mapwatch._constants import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RATE_LIMIT_MAX,
    DEFAULT_RATE_LIMIT_WINDOW,
    MAP_URL,
)
from mapwatch.exceptions import ConfigMissingError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _first_env(env: Mapping[str, str], *keys: str) -> str | None:
    for key in keys:
        val = env.get(key)
        if val is not None:
            return val
    return None


@dataclasses.dataclass(frozen=True)
class WatchConfig:
    """Service configuration.

    Parameters
    ----------
    auth_token : str
        Shared secret every subscriber must present in the
        ``Sec-WebSocket-Protocol`` handshake header.
    host : str
        Listening address.
    port : int
        Listening port for both the WebSocket upgrade and ``/status``.
    environment : str
        Deployment environment. Anything other than ``"production"``
        adds console logging.
    map_url : str
        Page polled for map cells.
    poll_interval : float
        Seconds between scheduled cycles.
    fetch_timeout : float
        Total timeout in seconds for one page fetch.
    log_file : str
        Path of the JSON-lines log file.
    rate_limit_max : int
        Inbound messages admitted per connection within the window.
    rate_limit_window : float
        Sliding rate-limit window in seconds.
    verbose : bool
        Emit DEBUG diagnostics.
    """

    auth_token: str
    host: str = "0.0.0.0"
    port: int = 8080
    environment: str = "development"
    map_url: str = MAP_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    fetch_timeout: float = 30.0
    log_file: str = "ws.log"
    rate_limit_max: int = DEFAULT_RATE_LIMIT_MAX
    rate_limit_window: float = DEFAULT_RATE_LIMIT_WINDOW
    verbose: bool = False

    def __post_init__(self) -> None:
        if not self.auth_token or not self.auth_token.strip():
            raise ConfigMissingError("Missing WS_AUTH_TOKEN in environment variables.")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @classmethod
    def from_env(cls, **overrides: Any) -> WatchConfig:
        """Create configuration from environment variables.

        Reads ``MAPWATCH_*`` variables. The auth token falls back to
        ``WS_AUTH_TOKEN`` and the port to ``PORT``. Explicit keyword
        arguments override environment values.

        Raises
        ------
        ConfigMissingError
            If no auth token is available from either source.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "MAPWATCH_HOST": "host",
            "MAPWATCH_ENV": "environment",
            "MAPWATCH_MAP_URL": "map_url",
            "MAPWATCH_LOG_FILE": "log_file",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        token = _first_env(env, "MAPWATCH_AUTH_TOKEN", "WS_AUTH_TOKEN")
        config_kwargs["auth_token"] = token or ""

        port_env = _first_env(env, "MAPWATCH_PORT", "PORT")
        if port_env is not None and "port" not in overrides:
            config_kwargs["port"] = int(port_env)

        interval_env = env.get("MAPWATCH_POLL_INTERVAL")
        if interval_env is not None and "poll_interval" not in overrides:
            config_kwargs["poll_interval"] = float(interval_env)

        timeout_env = env.get("MAPWATCH_FETCH_TIMEOUT")
        if timeout_env is not None and "fetch_timeout" not in overrides:
            config_kwargs["fetch_timeout"] = float(timeout_env)

        max_env = env.get("MAPWATCH_RATE_LIMIT_MAX")
        if max_env is not None and "rate_limit_max" not in overrides:
            config_kwargs["rate_limit_max"] = int(max_env)

        window_env = env.get("MAPWATCH_RATE_LIMIT_WINDOW")
        if window_env is not None and "rate_limit_window" not in overrides:
            config_kwargs["rate_limit_window"] = float(window_env)

        if "verbose" not in overrides:
            config_kwargs["verbose"] = _env_bool(env.get("MAPWATCH_VERBOSE"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
