"""Structured JSON logging configuration."""

import logging
import sys
from typing import Any

from pythonjsonlogger import jsonlogger

from quiz_engine.core.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with consistent fields across API and job processes."""

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict) -> None:
        """Add custom fields to log record."""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["event"] = record.getMessage()
        log_record["env"] = settings.ENV

        log_record.pop("message", None)
        log_record.pop("asctime", None)


def setup_logging(level: str | None = None) -> None:
    """Configure root logging for the API or a job process."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    root_logger.handlers.clear()

    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(logger)s %(event)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
