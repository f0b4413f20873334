"""
Logging configuration for the calendar core.

Provides human-readable console logging by default and JSON-formatted
records for structured collection.

Loggers:
- schoolcal.api: Events API requests and failures
- schoolcal.service: Event lifecycle operations
- schoolcal.distribution: Targeting decisions (ignored class ids)
- schoolcal.integrity: State-machine violations that indicate a stale or
  mis-filtered caller view
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Dict, Optional

from schoolcal.config import DEFAULT_LOG_LEVEL, ENV_LOG_LEVEL


LOGGER_NAMES = (
    "schoolcal.api",
    "schoolcal.service",
    "schoolcal.distribution",
    "schoolcal.integrity",
)


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs log records as JSON.

    Each record includes timestamp, level, logger, message, module,
    function and line, plus exception info and ``extra_fields`` if present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # logger.info("msg", extra={"extra_fields": {...}})
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter.

    Format: [TIMESTAMP] LEVEL - LOGGER - MESSAGE
    """

    def __init__(self):
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _resolve_level(level: Optional[str]) -> int:
    level_str = (level or os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)).upper()
    return getattr(logging, level_str, logging.INFO)


def configure_logging(
    level: Optional[str] = None,
    json_output: bool = False,
) -> Dict[str, logging.Logger]:
    """
    Configure the calendar core's loggers.

    Args:
        level: Log level name; falls back to SCHOOLCAL_LOG_LEVEL, then INFO
        json_output: Emit JSON records instead of console lines

    Returns:
        Dictionary mapping logger names to configured Logger instances

    Example:
        >>> loggers = configure_logging("DEBUG")
        >>> loggers["schoolcal.service"].info("Created event evt_1")
    """
    log_level = _resolve_level(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else ConsoleFormatter())

    root = logging.getLogger("schoolcal")
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False

    loggers = {}
    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        logger.setLevel(log_level)
        loggers[name] = logger
    return loggers
