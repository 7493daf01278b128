"""
Structured logging for the hexgraph routing library.

Every hexgraph logger lives below the ``hexgraph`` logger, which owns the one
stdout handler. Records are emitted as JSON unless structured logging is
switched off.
"""

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from .config import config

ROOT_LOGGER = "hexgraph"


class StructuredFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping service, environment and UTC time on each record."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = ROOT_LOGGER
        log_record["environment"] = config.environment


def setup_logging(
    level: Optional[str] = None, structured: Optional[bool] = None
) -> logging.Logger:
    """
    Configure the ``hexgraph`` logger, replacing any handler set up before.

    Args:
        level: Log level, defaults to LOG_LEVEL
        structured: JSON output, defaults to ENABLE_STRUCTURED_LOGGING

    Returns:
        The ``hexgraph`` logger
    """
    if structured is None:
        structured = config.logging.enable_structured_logging

    handler = logging.StreamHandler(sys.stdout)
    if structured:
        handler.setFormatter(
            StructuredFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        )
    else:
        handler.setFormatter(logging.Formatter(config.logging.format_str))

    root = logging.getLogger(ROOT_LOGGER)
    root.handlers = [handler]
    root.setLevel((level or config.logging.level).upper())
    root.propagate = False
    return root


def log_data_processing(
    stage: str, records_processed: int, records_failed: int = 0, **context
) -> Dict[str, Any]:
    """``extra`` payload summarising one processing stage."""
    total = records_processed + records_failed
    return {
        "event": "data_processing",
        "stage": stage,
        "records_processed": records_processed,
        "records_failed": records_failed,
        "success_rate": records_processed / total if total else 0,
        **context,
    }


class TimedLogger:
    """Logs the start, completion or failure of an operation with its duration."""

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self._started: Optional[float] = None

    def _extra(self, event: str, **fields) -> Dict[str, Any]:
        return {"event": event, "operation": self.operation, **fields, **self.context}

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.info(
            f"Starting {self.operation}", extra=self._extra("operation_start")
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.perf_counter() - self._started) * 1000
        if exc_type is None:
            self.logger.info(
                f"Completed {self.operation}",
                extra=self._extra(
                    "operation_complete", duration_ms=duration_ms, success=True
                ),
            )
        else:
            self.logger.error(
                f"Failed {self.operation}: {exc_val}",
                extra=self._extra(
                    "operation_failed",
                    duration_ms=duration_ms,
                    success=False,
                    error_type=exc_type.__name__,
                    error_message=str(exc_val),
                ),
            )
        return False


logger = setup_logging()


def get_logger(name: str) -> logging.Logger:
    """Logger of one hexgraph component, e.g. ``get_logger("routing.batch")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
