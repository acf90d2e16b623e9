"""
Centralized logging configuration.
"""
import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

from mocktest.config import settings

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for production logging.

    Produces one JSON object per record with consistent fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_entry: Dict[str, Any] = {
            "timestamp": timestamp.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in ("user_id", "mock_test_id", "attempt_id", "state"):
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        if record.levelno >= logging.ERROR:
            log_entry["source"] = f"{record.pathname}:{record.lineno}"

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging() -> None:
    """
    Configure application-wide logging.

    Uses the JSON formatter when LOG_FORMAT is "json", a human-readable
    single-line format otherwise.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter = "json" if settings.LOG_FORMAT == "json" else "text"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "text": {"format": TEXT_FORMAT},
                "json": {"()": JSONFormatter},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter,
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                "mocktest": {"level": log_level, "propagate": True},
                # SQL echo is controlled by DATABASE_ECHO, keep the logger quiet
                "sqlalchemy.engine": {"level": logging.WARNING},
            },
            "root": {"level": log_level, "handlers": ["console"]},
        }
    )
