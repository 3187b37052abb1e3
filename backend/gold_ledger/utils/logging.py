# backend/gold_ledger/utils/logging.py
"""
Logging setup for the gold ledger service.

One stdout handler on the root logger, carrying the request correlation ID
on every record. Two output formats:

    LOG_FORMAT=text   timestamp | level | correlation_id | logger | message
    LOG_FORMAT=json   one JSON object per line, for log shippers

Level guide used across the code base:
    DEBUG   - cost-basis folds, price resolution per account
    INFO    - ledger mutations (purchase/sale recorded, deleted, imported),
              quote refreshes, config changes
    WARNING - a quote fetch failed, an import batch was rejected
    ERROR   - unexpected failures

Usage:
    from gold_ledger.utils import setup_logging

    setup_logging()                       # from settings
    setup_logging(level="DEBUG")          # override
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from gold_ledger.config import settings
from gold_ledger.utils.context import get_correlation_id

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "no-correlation-id"

# Raised to WARNING so request-level chatter does not drown ledger events
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "urllib3",
    "asyncio",
    "sqlalchemy.engine",
]

# LogRecord attributes that are not user-supplied "extra" fields
_STANDARD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "correlation_id", "message", "taskName",
})


# =============================================================================
# FILTER / FORMATTER
# =============================================================================

class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the current correlation ID (or a placeholder)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    Render a record as a single JSON line.

    Output:
    {
        "timestamp": "2026-01-15T10:30:00.123+00:00",
        "level": "INFO",
        "logger": "gold_ledger.services.ledger.service",
        "correlation_id": "abc-123",
        "message": "Recorded SALE on CMBC: -4 g @ 520",
        "extra": {"transaction_id": 7}
    }

    Extra values that json cannot encode (Decimal, date) are written with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extra[key] = value
            except (TypeError, ValueError):
                extra[key] = str(value)

        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry)


# =============================================================================
# SETUP
# =============================================================================

def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Configure the root logger. Call once at startup, before the app is built.

    Args:
        level: Log level name; defaults to settings.log_level
        log_format: 'text' or 'json'; defaults to settings.log_format
        suppress_noisy_loggers: Raise third-party loggers to WARNING

    Raises:
        ValueError: If level is not a known log level name
    """
    log_level_str = level or settings.log_level
    log_level = _get_log_level(log_level_str)
    format_type = log_format or settings.log_format

    if format_type.lower() == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=DEFAULT_TEXT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if suppress_noisy_loggers:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={log_level_str}, format={format_type}",
        extra={"config": {"level": log_level_str, "format": format_type}},
    )


def _get_log_level(level_str: str) -> int:
    level_str = level_str.upper().strip()

    level_mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    if level_str not in level_mapping:
        valid_levels = ", ".join(level_mapping.keys())
        raise ValueError(f"Invalid log level: '{level_str}'. Valid levels are: {valid_levels}")

    return level_mapping[level_str]
