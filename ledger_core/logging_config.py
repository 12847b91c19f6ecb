"""
Logging configuration.

Two output formats are supported:
- console: human-readable lines for local development
- json: one JSON object per line for log aggregation

Structured fields are passed through ``extra={...}`` at the call
site and appear as top-level keys in JSON output.
"""

import json
import logging
import logging.config
from datetime import date, datetime, timezone
from decimal import Decimal

# Attributes every LogRecord carries; anything else came from extra={}
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Render a log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


def _json_default(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def get_logging_config(level: str = "INFO", log_format: str = "console") -> dict:
    """Build a dictConfig for the application loggers."""
    formatter = "json" if log_format == "json" else "console"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "ledger_core.logging_config.JsonFormatter",
            },
            "console": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "ledger_core": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }


def configure_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Apply the logging configuration. Safe to call more than once."""
    logging.config.dictConfig(get_logging_config(level, log_format))
