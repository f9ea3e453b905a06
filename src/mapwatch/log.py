"""Logging setup for the service process.

Library modules only ever call ``logging.getLogger(__name__)``; handlers
are installed here, once, by the CLI.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from mapwatch.config import WatchConfig

_CONSOLE_FORMAT = "%(levelname)s: %(message)s"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, str] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["stack"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(config: WatchConfig) -> logging.Logger:
    """Install the file handler, plus a console handler outside production.

    Returns the package logger.
    """
    level = logging.DEBUG if config.verbose else logging.INFO
    logger = logging.getLogger("mapwatch")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
    file_handler.setFormatter(JsonLineFormatter())
    logger.addHandler(file_handler)

    if not config.is_production:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        logger.addHandler(console)

    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    return logger
