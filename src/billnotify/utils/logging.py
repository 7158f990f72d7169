"""
Structured JSON logging utility for the BillNotify service.

This module provides structured logging with JSON output, making dispatch
attempts and provider calls easy to search in production. Customer data
(phone numbers, names, message bodies) is kept out of log records by the
helpers below.
"""

import json
import logging
import sys
from typing import Any

# LogRecord attributes that are not user-supplied extras
RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "correlation_id",
    }
)

# Keys dropped by log_event
PII_FIELDS = frozenset(
    {
        "phone",
        "phone_number",
        "recipient",
        "mobile",
        "customer_name",
        "name",
        "message",
        "message_text",
        "text",
        "body",
        "template_args",
        "bill_link",
    }
)

SENSITIVE_SUBSTRINGS = ("password", "token", "secret", "key", "credential", "authorization")


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Formats log records as JSON objects with timestamp, level, logger name,
    message, and any additional fields passed via the 'extra' parameter.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as a JSON string.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted string representation of the log record
        """
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if getattr(record, "correlation_id", None):
            log_data["correlation_id"] = record.correlation_id

        for key, value in record.__dict__.items():
            if key not in RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Enums, datetimes and exceptions fall back to str()
        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO") -> None:
    """
    Configure application logging with JSON formatting.

    Sets up the root logger with JSON formatter and console handler.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module

    Returns:
        A configured logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Dispatching notification", extra={"kind": "invoice"})
    """
    return logging.getLogger(name)


def log_api_call(
    service: str,
    endpoint: str,
    method: str,
    status_code: int | None,
    duration_ms: float,
    correlation_id: str | None = None,
    error_type: str | None = None,
) -> None:
    """
    Log a provider API call with metadata only (no request/response bodies).

    Args:
        service: Provider name (e.g., "Zoko WhatsApp", "Fast2SMS")
        endpoint: Provider endpoint URL
        method: HTTP method
        status_code: HTTP response status code, None when no response arrived
        duration_ms: Round-trip duration in milliseconds
        correlation_id: Request correlation ID for tracing
        error_type: Exception type if the round trip failed

    Example:
        >>> log_api_call(
        ...     service="Fast2SMS",
        ...     endpoint="https://www.fast2sms.com/dev/bulkV2",
        ...     method="POST",
        ...     status_code=200,
        ...     duration_ms=245.5,
        ... )
    """
    logger = get_logger(__name__)
    extra_data: dict[str, Any] = {
        "service": service,
        "endpoint": endpoint,
        "method": method,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }

    if correlation_id:
        extra_data["correlation_id"] = correlation_id

    if error_type:
        extra_data["error_type"] = error_type

    logger.info(f"API call to {service}", extra=extra_data)


def filter_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Drop PII and secret-looking keys from a metadata dict."""
    filtered = {}
    for key, value in metadata.items():
        lowered = key.lower()
        if lowered in PII_FIELDS:
            continue
        if any(substring in lowered for substring in SENSITIVE_SUBSTRINGS):
            continue
        filtered[key] = value
    return filtered


def log_event(
    event: str,
    level: str = "INFO",
    correlation_id: str | None = None,
    **metadata: Any,
) -> None:
    """
    Log an event with privacy-compliant metadata.

    PII fields (phone, customer_name, message, ...) and keys containing
    token/secret/key substrings are removed before logging.

    Example:
        >>> log_event(
        ...     "Notification dispatched",
        ...     correlation_id="abc-123",
        ...     kind="invoice",
        ...     provider="Fast2SMS",
        ... )
    """
    filtered_metadata = filter_metadata(metadata)

    if correlation_id:
        filtered_metadata["correlation_id"] = correlation_id

    logger = get_logger(__name__)
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger.log(log_level, event, extra=filtered_metadata)
