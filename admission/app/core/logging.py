"""Structured logging configuration for the admission engine.

This module provides a structured logging setup using Python's standard
logging module with JSON formatting for production environments.
"""

import hashlib
import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from admission.app.core.config import settings


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON objects for consumption by log aggregation
    systems like ELK Stack or Grafana Loki.

    Attributes:
        fields: List of fields to include in JSON output
    """

    STANDARD_FIELDS = ["name", "levelname", "message", "timestamp"]

    # Contextual fields for admission decisions
    CONTEXT_FIELDS = [
        "request_id",    # Request ID from X-Request-ID header
        "rule",          # Rule type that produced the decision
        "cache_key",     # Rule-scoped storage key (identity hashed)
        "retry_after",   # Advisory retry delay in seconds
        "path",          # Request path
        "method",        # HTTP method
        "status_code",   # HTTP response status
    ]

    # LogRecord attributes that are never copied into "extra"
    _RESERVED = (
        "name", "msg", "args", "levelname", "levelno", "pathname",
        "filename", "module", "exc_info", "exc_text", "stack_info",
        "lineno", "funcName", "created", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "message",
        "asctime", "timestamp", "logger", "level", "source", "taskName",
    )

    def __init__(
        self,
        fields: Optional[list] = None,
        datefmt: Optional[str] = None,
    ):
        super().__init__(datefmt=datefmt)
        self.fields = fields or (self.STANDARD_FIELDS + self.CONTEXT_FIELDS)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string representation of the log record
        """
        log_data: Dict[str, Any] = {}

        record.message = record.getMessage()

        log_data["timestamp"] = datetime.now().astimezone().isoformat()
        log_data["level"] = record.levelname
        log_data["logger"] = record.name
        log_data["message"] = record.message

        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        for field in self.CONTEXT_FIELDS:
            if hasattr(record, field):
                value = getattr(record, field)
                if value is not None and value != "-":
                    log_data[field] = value

        for key, value in record.__dict__.items():
            if key in self._RESERVED or key in self.CONTEXT_FIELDS:
                continue
            log_data.setdefault("extra", {})[key] = value

        if record.exc_info and record.exc_info != (None, None, None):
            log_data["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Logging filter that adds contextual fields to log records.

    Adds default values for request_id, rule, cache_key and the other
    contextual fields if not already present in the log record.
    """

    CONTEXT_DEFAULTS = {field: None for field in JSONFormatter.CONTEXT_FIELDS}

    def filter(self, record: logging.LogRecord) -> bool:
        for field, default in self.CONTEXT_DEFAULTS.items():
            if not hasattr(record, field):
                setattr(record, field, default)
        return True


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration dictionary.

    Returns:
        Logging configuration dict compatible with logging.config.dictConfig
    """
    log_format = getattr(settings, "log_format", "text").lower()
    log_level = getattr(settings, "log_level", "INFO").upper()

    formatters = {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "structured": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s - rule=%(rule)s - cache_key=%(cache_key)s - request_id=%(request_id)s"
        },
    }

    if log_format == "json":
        formatters["json"] = {
            "()": "admission.app.core.logging.JSONFormatter",
        }
        default_formatter = "json"
    else:
        default_formatter = "structured" if log_format == "structured" else "standard"

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": default_formatter,
            "stream": sys.stdout,
            "filters": ["context"],
        },
        "error_console": {
            "class": "logging.StreamHandler",
            "level": "ERROR",
            "formatter": default_formatter,
            "stream": sys.stderr,
            "filters": ["context"],
        },
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {
            "context": {
                "()": "admission.app.core.logging.ContextFilter",
            },
        },
        "handlers": handlers,
        "loggers": {
            "admission": {
                "level": log_level,
                "handlers": ["console", "error_console"],
                "propagate": False,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    }


def setup_logging() -> None:
    """Configure logging for the admission engine."""
    logging.config.dictConfig(get_logging_config())

    # Reduce noise from the redis client
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str = "admission") -> logging.Logger:
    """Get a logger instance with the specified name.

    Args:
        name: Logger name, defaults to "admission"

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def hash_identity(identity: str) -> str:
    """Return a short SHA-256 digest of an identity key for log output.

    Identity keys are access credentials, so they never reach the logs raw.
    """
    return hashlib.sha256(identity.encode()).hexdigest()[:16]


def get_log_context(
    request_id: Optional[str] = None,
    rule: Optional[str] = None,
    cache_key: Optional[str] = None,
    retry_after: Optional[float] = None,
    **extra
) -> Dict[str, Any]:
    """Create a log context dictionary for use with extra parameter.

    Args:
        request_id: Request ID
        rule: Rule type name
        cache_key: Rule-scoped storage key, already hashed
        retry_after: Advisory retry delay in seconds
        **extra: Additional custom fields

    Returns:
        Dictionary suitable for passing as extra= parameter to logging calls

    Example:
        >>> logger.info(
        ...     "Request denied",
        ...     extra=get_log_context(rule="FixedWindowRule", retry_after=12)
        ... )
    """
    context = {
        "request_id": request_id,
        "rule": rule,
        "cache_key": cache_key,
        "retry_after": retry_after,
    }
    context.update(extra)
    return {k: v for k, v in context.items() if v is not None}
