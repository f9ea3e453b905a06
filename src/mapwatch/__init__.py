"""mapwatch - push new ⚔️ map locations to authenticated WebSocket subscribers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mapwatch")
except PackageNotFoundError:
    __version__ = "0+local"
from mapwatch.config import WatchConfig
from mapwatch.connection import Connection, ConnectionState
from mapwatch.cycle import CycleController, SnapshotSource
from mapwatch.dispatch import Broadcaster
from mapwatch.exceptions import (
    AuthRejectedError,
    ConfigMissingError,
    ConnectionStateError,
    FetchError,
    MapwatchError,
    RateLimitedError,
)
from mapwatch.models import ActivationEvent, CycleReport, MapCell, Snapshot
from mapwatch.ratelimit import SlidingWindowRateLimiter
from mapwatch.registry import ClientRegistry
from mapwatch.sanitize import is_flagged, location_key, sanitize
from mapwatch.state import StateTracker

__all__ = [
    "__version__",
    "ActivationEvent",
    "AuthRejectedError",
    "Broadcaster",
    "ClientRegistry",
    "ConfigMissingError",
    "Connection",
    "ConnectionState",
    "ConnectionStateError",
    "CycleController",
    "CycleReport",
    "FetchError",
    "MapCell",
    "MapwatchError",
    "RateLimitedError",
    "SlidingWindowRateLimiter",
    "Snapshot",
    "SnapshotSource",
    "StateTracker",
    "WatchConfig",
    "is_flagged",
    "location_key",
    "sanitize",
]
