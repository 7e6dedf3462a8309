"""
Logging configuration.

Called once from the server startup hook and the CLI callback. Supports text
(human-readable) and JSON formats via LOG_FORMAT. LOG_LEVEL defaults to INFO.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from .config import settings


class JSONFormatter(logging.Formatter):
    """Single-line JSON log formatter for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "uvicorn.access",
    "sqlalchemy.engine",
]

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Set up the root logger.

    Args:
        level: Log level name (defaults to settings.LOG_LEVEL)
        log_format: "text" or "json" (defaults to settings.LOG_FORMAT)
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    resolved_level = getattr(logging, level_name, logging.INFO)
    fmt = (log_format or settings.LOG_FORMAT).lower()

    root = logging.getLogger()
    root.setLevel(resolved_level)

    # Remove any existing handlers to avoid duplicates on re-init
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved_level)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))
