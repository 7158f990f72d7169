"""
Unit tests for request schemas and response shaping.
"""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.billnotify.models import (
    Channel,
    DispatchAttempt,
    DispatchResult,
    ErrorKind,
    NotificationKind,
    ProviderFailure,
    ProviderSuccess,
)
from src.billnotify.schemas import (
    AdvancePaymentNotificationRequest,
    AttemptSummary,
    DeliveryReceipt,
    InvoiceNotificationRequest,
    PaymentCompletionNotificationRequest,
    failure_body,
    result_body,
    success_body,
)

STARTED = datetime(2026, 3, 1, 10, 30, tzinfo=timezone.utc)


def make_attempt(outcome, error_kind=None, provider="Zoko WhatsApp", channel=Channel.WHATSAPP):
    return DispatchAttempt(
        provider=provider,
        channel=channel,
        request_payload={},
        outcome=outcome,
        started_at=STARTED,
        duration_ms=123.456,
        error_kind=error_kind,
    )


class TestNotificationRequests:
    """Test suite for the request schemas."""

    def test_invoice_camel_case_body(self):
        """Test that camelCase keys map onto the dispatcher request."""
        body = InvoiceNotificationRequest.model_validate(
            {
                "phoneNumber": "+91 98765 43210",
                "customerName": "Asha",
                "orderNumber": "MA-1042",
                "billToken": "abc123",
                "totalAmount": "1250",
            }
        )

        request = body.to_notification_request(origin="https://shop.example")

        assert request.kind is NotificationKind.INVOICE
        assert request.phone_number == "+91 98765 43210"
        assert request.total_amount == 1250.0
        assert request.request_origin == "https://shop.example"

    def test_numeric_phone_and_order_accepted(self):
        """Test that numeric values are coerced to strings."""
        body = InvoiceNotificationRequest.model_validate(
            {"phoneNumber": 9876543210, "customerName": "Asha", "orderNumber": 1042}
        )

        assert body.phone_number == "9876543210"
        assert body.order_number == "1042"

    def test_unknown_fields_rejected(self):
        """Test that request bodies forbid unknown fields."""
        with pytest.raises(ValidationError):
            InvoiceNotificationRequest.model_validate({"phoneNumber": "9876543210", "kind": "completion"})

    def test_wrong_amount_type_rejected(self):
        """Test that a non-numeric amount is a validation error."""
        with pytest.raises(ValidationError):
            PaymentCompletionNotificationRequest.model_validate({"finalAmount": "lots"})

    @pytest.mark.parametrize(
        "model, body",
        [
            (PaymentCompletionNotificationRequest, {"finalAmount": float("nan")}),
            (PaymentCompletionNotificationRequest, {"finalAmount": float("inf")}),
            (InvoiceNotificationRequest, {"totalAmount": float("-inf")}),
            (AdvancePaymentNotificationRequest, {"advanceAmount": float("nan")}),
        ],
    )
    def test_non_finite_amounts_rejected(self, model, body):
        """Test that NaN and infinite amounts fail schema validation."""
        with pytest.raises(ValidationError):
            model.model_validate(body)

    def test_missing_fields_left_to_dispatcher(self):
        """Test that absent required strings parse as None."""
        body = AdvancePaymentNotificationRequest.model_validate({})
        request = body.to_notification_request()

        assert request.kind is NotificationKind.ADVANCE_PAYMENT
        assert request.phone_number is None
        assert request.advance_amount is None

    def test_completion_amount(self):
        body = PaymentCompletionNotificationRequest.model_validate({"finalAmount": 150.5})
        assert body.to_notification_request().final_amount == 150.5


class TestDeliveryReceipt:
    """Test suite for DeliveryReceipt."""

    def test_extra_fields_allowed(self):
        receipt = DeliveryReceipt.model_validate(
            {"request_id": 42, "status": "delivered", "operator": "Jio"}
        )
        assert receipt.request_id == "42"
        assert receipt.model_dump()["operator"] == "Jio"


class TestResponseShaping:
    """Test suite for success_body and failure_body."""

    def test_attempt_summary_success(self):
        summary = AttemptSummary.from_attempt(
            make_attempt(ProviderSuccess(message_id="wamid-1", status="queued"))
        ).model_dump(by_alias=True, exclude_none=True)

        assert summary == {
            "provider": "Zoko WhatsApp",
            "channel": "WhatsApp",
            "success": True,
            "messageId": "wamid-1",
            "providerStatus": "queued",
            "startedAt": STARTED.isoformat(),
            "durationMs": 123.46,
        }

    def test_success_body(self):
        """Test the success body carries the winning provider and details."""
        result = DispatchResult(
            kind=NotificationKind.INVOICE,
            success=True,
            attempts=[make_attempt(ProviderSuccess(message_id="wamid-1", status="queued"))],
            provider="Zoko WhatsApp",
            channel=Channel.WHATSAPP,
            message_id="wamid-1",
            sent_at=STARTED,
            phone_number="+919876543210",
            bill_link="https://shop.example/public/invoice/abc",
            details={"orderDetails": {"orderNumber": "MA-1042", "totalAmount": 1250.0}},
        )

        body = success_body(result)

        assert body["success"] is True
        assert body["messageId"] == "wamid-1"
        assert body["channel"] == "WhatsApp"
        assert body["sentAt"] == STARTED.isoformat()
        assert body["phoneNumber"] == "+919876543210"
        assert body["orderDetails"] == {"orderNumber": "MA-1042", "totalAmount": 1250.0}
        assert result_body(result) == body

    def test_failure_body_all_providers(self):
        """Test the failure body for a double failure lists both causes."""
        result = DispatchResult(
            kind=NotificationKind.INVOICE,
            success=False,
            attempts=[
                make_attempt(ProviderFailure(status_code=500, body="oops"), ErrorKind.UPSTREAM_SERVER_ERROR),
                make_attempt(
                    ProviderFailure(error="Insufficient balance"),
                    ErrorKind.API_ERROR,
                    provider="Fast2SMS",
                    channel=Channel.SMS,
                ),
            ],
            provider="Fast2SMS",
            channel=Channel.SMS,
            attempted_at=STARTED,
            phone_number="+919876543210",
            error_kind=ErrorKind.ALL_PROVIDERS_UNAVAILABLE,
            error_message=ErrorKind.ALL_PROVIDERS_UNAVAILABLE.message,
            causes=[ErrorKind.UPSTREAM_SERVER_ERROR, ErrorKind.API_ERROR],
            details={"orderDetails": {"orderNumber": "MA-1042", "totalAmount": 0}},
        )

        body = failure_body(result)

        assert body["success"] is False
        assert body["errorCode"] == "ALL_PROVIDERS_UNAVAILABLE"
        assert body["error"] == "All messaging providers are currently unavailable."
        assert body["causes"] == ["UPSTREAM_SERVER_ERROR", "API_ERROR"]
        assert body["attemptedAt"] == STARTED.isoformat()
        assert body["orderDetails"]["orderNumber"] == "MA-1042"
        assert body["attempts"][0]["statusCode"] == 500
        assert body["attempts"][0]["rawMessage"] == "oops"
        assert body["attempts"][1]["errorCode"] == "API_ERROR"
        assert "fallbackOptions" not in body

    def test_failure_body_manual_fallback(self):
        """Test that a manual link is offered under fallbackOptions.manual."""
        result = DispatchResult(
            kind=NotificationKind.INVOICE,
            success=False,
            provider="Fast2SMS",
            channel=Channel.SMS,
            attempted_at=STARTED,
            phone_number="+919876543210",
            error_kind=ErrorKind.ALL_PROVIDERS_UNAVAILABLE,
            error_message=ErrorKind.ALL_PROVIDERS_UNAVAILABLE.message,
            manual_link="https://wa.me/919876543210?text=Hi",
            details={"orderDetails": {"orderNumber": "MA-1042", "totalAmount": 1250.0}},
        )

        body = failure_body(result)

        assert body["fallbackOptions"] == {
            "manual": {
                "whatsappLink": "https://wa.me/919876543210?text=Hi",
                "customerPhone": "+919876543210",
            }
        }
        assert type(body["orderDetails"]) is dict
        json.dumps(body)

    def test_failure_body_payment_context(self):
        """Test that payment kinds carry their details under paymentContext."""
        result = DispatchResult(
            kind=NotificationKind.PAYMENT_COMPLETION,
            success=False,
            provider="Zoko WhatsApp",
            channel=Channel.WHATSAPP,
            attempted_at=STARTED,
            error_kind=ErrorKind.INVALID_AMOUNT,
            error_message=ErrorKind.INVALID_AMOUNT.message,
            error_detail="Amount must be greater than zero for finalAmount: 0",
            details={"paymentDetails": {"finalAmount": 0, "status": "PAID_IN_FULL"}},
        )

        body = failure_body(result)

        assert body["errorCode"] == "INVALID_AMOUNT"
        assert body["paymentContext"] == {"finalAmount": 0, "status": "PAID_IN_FULL"}
        assert body["details"].startswith("Amount must be greater than zero")
        assert "causes" not in body
        assert body["attempts"] == []
