"""
Tests for privacy-compliant logging utilities.

Tests verify that:
1. Log format is valid JSON
2. PII and secret-looking fields are dropped by log_event
3. Provider calls are logged with metadata only
"""

import json
import logging
import sys
from enum import Enum

from src.billnotify.utils.logging import (
    JSONFormatter,
    filter_metadata,
    log_api_call,
    log_event,
)


def _record(msg: str = "Test message", level: int = logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJSONFormatter:
    """Test the JSON formatter for structured logging."""

    def test_json_formatter_basic(self):
        """Test that JSONFormatter produces valid JSON with the core fields."""
        log_data = json.loads(JSONFormatter().format(_record()))

        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test"
        assert log_data["message"] == "Test message"
        assert "timestamp" in log_data

    def test_json_formatter_with_correlation_id(self):
        """Test that correlation_id is included in JSON output."""
        record = _record()
        record.correlation_id = "test-correlation-123"

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["correlation_id"] == "test-correlation-123"

    def test_json_formatter_with_extra_fields(self):
        """Test that extra fields are included in JSON output."""
        record = _record()
        record.kind = "invoice"
        record.to_state = "ATTEMPTING_PRIMARY"

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["kind"] == "invoice"
        assert log_data["to_state"] == "ATTEMPTING_PRIMARY"

    def test_json_formatter_serializes_non_json_values(self):
        """Test that enum values fall back to their string form."""

        class Color(Enum):
            RED = "red"

        record = _record()
        record.color = Color.RED

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["color"] == "Color.RED"

    def test_json_formatter_with_exception(self):
        """Test that exceptions are formatted properly."""
        try:
            raise ValueError("Test error")
        except ValueError:
            record = _record("Error occurred", logging.ERROR, sys.exc_info())

        log_data = json.loads(JSONFormatter().format(record))

        assert "ValueError: Test error" in log_data["exception"]


class TestLogEvent:
    """Test the log_event function for PII filtering."""

    def test_log_event_filters_pii_fields(self, caplog):
        """Test that phone numbers, names and message bodies are dropped."""
        caplog.set_level(logging.INFO)

        log_event(
            "Notification dispatched",
            kind="invoice",
            phone_number="9876543210",
            customer_name="Asha",
            message="Dear Asha, ...",
            bill_link="https://shop.example/public/invoice/abc",
            provider="Fast2SMS",
        )

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert not hasattr(record, "phone_number")
        assert not hasattr(record, "customer_name")
        assert not hasattr(record, "bill_link")
        assert record.getMessage() == "Notification dispatched"
        assert record.kind == "invoice"
        assert record.provider == "Fast2SMS"

    def test_log_event_filters_sensitive_field_names(self, caplog):
        """Test that fields with secret-looking names are dropped."""
        caplog.set_level(logging.INFO)

        log_event(
            "Provider configured",
            provider="Zoko WhatsApp",
            api_key="zk-123",
            bill_token="abc",
            authorization="fast2sms-key",
        )

        record = caplog.records[0]
        assert not hasattr(record, "api_key")
        assert not hasattr(record, "bill_token")
        assert not hasattr(record, "authorization")
        assert record.provider == "Zoko WhatsApp"

    def test_log_event_with_correlation_id(self, caplog):
        """Test that correlation_id is attached to the record."""
        caplog.set_level(logging.INFO)

        log_event("Notification dispatched", correlation_id="abc-123", kind="advance")

        assert caplog.records[0].correlation_id == "abc-123"

    def test_log_event_level(self, caplog):
        """Test that the requested level is used."""
        caplog.set_level(logging.INFO)

        log_event("Notification dispatch failed", level="WARNING", kind="completion")

        assert caplog.records[0].levelno == logging.WARNING


class TestFilterMetadata:
    """Test metadata filtering on its own."""

    def test_keeps_operational_fields(self):
        """Test that non-sensitive keys pass through unchanged."""
        metadata = {"kind": "invoice", "attempt_count": 2, "error_code": "TIMEOUT"}
        assert filter_metadata(metadata) == metadata

    def test_filtering_is_case_insensitive(self):
        """Test that PII keys are matched regardless of case."""
        assert filter_metadata({"Phone": "9876543210", "API_KEY": "x"}) == {}


class TestLogApiCall:
    """Test provider call logging."""

    def test_log_api_call_records_metadata(self, caplog):
        """Test that service, status and rounded duration are logged."""
        caplog.set_level(logging.INFO)

        log_api_call(
            service="Fast2SMS",
            endpoint="https://www.fast2sms.com/dev/bulkV2",
            method="POST",
            status_code=200,
            duration_ms=245.5678,
            correlation_id="corr-1",
        )

        record = caplog.records[0]
        assert record.getMessage() == "API call to Fast2SMS"
        assert record.status_code == 200
        assert record.duration_ms == 245.57
        assert record.correlation_id == "corr-1"
        assert not hasattr(record, "error_type")

    def test_log_api_call_with_error_type(self, caplog):
        """Test that a failed round trip records its exception type."""
        caplog.set_level(logging.INFO)

        log_api_call(
            service="Zoko WhatsApp",
            endpoint="https://chat.zoko.io/v2/message",
            method="POST",
            status_code=None,
            duration_ms=20000.0,
            error_type="TimeoutError",
        )

        record = caplog.records[0]
        assert record.status_code is None
        assert record.error_type == "TimeoutError"
