"""
Logging setup for the assessment engine.

Development runs get a human-readable console format; production runs emit one
JSON object per line. Entries logged while a session is being driven carry its
id through session_id_context.
"""
import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from adaptive_assessment.core.config import settings

# Adaptive session id for log correlation. Set by callers that drive a
# session (e.g. the cohort simulation).
session_id_context: ContextVar[Optional[str]] = ContextVar("session_id", default=None)

# Attributes copied from LogRecord when passed via extra={...}
STRUCTURED_FIELDS = ("respondent_id", "item_id", "theta", "standard_error")

PACKAGE_LOGGER = "adaptive_assessment"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        session_id = session_id_context.get()
        if session_id:
            log_entry["session_id"] = session_id

        for field_name in STRUCTURED_FIELDS:
            if hasattr(record, field_name):
                log_entry[field_name] = getattr(record, field_name)

        if record.levelno >= logging.ERROR:
            log_entry["source"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def build_logging_config(level: str, json_output: bool) -> Dict[str, Any]:
    """
    Build the dictConfig mapping for the given level and output style.

    Args:
        level: Level name for the package logger and the console handler.
        json_output: Use JSONFormatter instead of the plain text format.

    Returns:
        A mapping accepted by logging.config.dictConfig.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {"()": JSONFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "json" if json_output else "text",
                "stream": sys.stdout,
            },
        },
        "root": {"level": log_level, "handlers": ["console"]},
        "loggers": {
            PACKAGE_LOGGER: {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for the process.

    Args:
        level: Level name overriding settings.LOG_LEVEL.
    """
    logging.config.dictConfig(
        build_logging_config(
            level or settings.LOG_LEVEL,
            json_output=settings.ENV == "production",
        )
    )
