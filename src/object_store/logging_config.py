"""Structured logging configuration for object-store.

Emits JSON log lines carrying the correlation ID of the request or tool
call being served, plus the object and operation it concerns.
"""

import contextvars
import json
import logging
from datetime import datetime, timezone
from typing import Any

# Correlation ID of the HTTP request / tool call currently being served
correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    'correlation_id', default=None
)

HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs timestamp, level, logger name and message, plus object_id,
    operation, duration_ms and correlation_id when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        timestamp = datetime.now(timezone.utc).replace(tzinfo=None)
        log_data = {
            "timestamp": timestamp.isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if hasattr(record, "object_id"):
            log_data["object_id"] = record.object_id
        if hasattr(record, "operation"):
            log_data["operation"] = record.operation
        if hasattr(record, "duration_ms"):
            log_data["duration_ms"] = record.duration_ms
        if hasattr(record, "extra"):
            log_data["extra"] = record.extra

        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """Thin wrapper over a stdlib logger that attaches structured fields."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def log_operation(
        self,
        level: str,
        message: str,
        object_id: str | None = None,
        operation: str | None = None,
        duration_ms: int | None = None,
        **extra: Any
    ) -> None:
        """Log with structured fields.

        Args:
            level: Log level (INFO, WARNING, ERROR, etc.)
            message: Log message
            object_id: Optional object identifier the message concerns
            operation: Optional operation name (e.g., "objstore.object.create")
            duration_ms: Optional operation duration in milliseconds
            **extra: Additional fields to include in log
        """
        log_level = getattr(logging, level.upper())
        if not self.logger.isEnabledFor(log_level):
            return

        record = self.logger.makeRecord(
            self.logger.name,
            log_level,
            "(structured)",
            0,
            message,
            (),
            None
        )

        if object_id:
            record.object_id = object_id
        if operation:
            record.operation = operation
        if duration_ms is not None:
            record.duration_ms = duration_ms
        if extra:
            record.extra = extra

        self.logger.handle(record)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log_operation("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log_operation("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log_operation("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log_operation("DEBUG", message, **kwargs)


def configure_logging(
    log_level: str = "INFO",
    structured: bool = True,
    log_file: str | None = None
) -> None:
    """Configure application logging.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        structured: If True, use JSON formatter; if False, use human-readable
        log_file: Optional file path to write logs to
    """
    root_logger = logging.getLogger("object_store")
    root_logger.setLevel(log_level.upper())

    # Reconfiguring must not duplicate output
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter
    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(HUMAN_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
