"""
Pydantic schemas for API request/response validation.

Defines Pydantic v2 models for the three notification endpoints and the SMS
delivery-receipt webhook, plus the functions that shape a DispatchResult
into the outward JSON body. All wire names are camelCase.
"""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import (
    DispatchAttempt,
    DispatchResult,
    NotificationKind,
    NotificationRequest,
    ProviderFailure,
    ProviderSuccess,
)


class NotificationRequestBase(BaseModel):
    """
    Fields shared by every notification request.

    Required strings are declared optional here so that absent and blank
    values are reported uniformly by the dispatcher as a validation failure.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        allow_inf_nan=False,
    )

    kind: ClassVar[NotificationKind] = NotificationKind.INVOICE

    phone_number: Optional[str] = Field(
        None,
        description="Indian mobile number, with or without +91",
        examples=["+91 98765 43210"],
    )
    customer_name: Optional[str] = Field(None, description="Customer display name", examples=["Asha"])
    order_number: Optional[str] = Field(None, description="Order reference", examples=["MA-1042"])
    bill_token: Optional[str] = Field(
        None,
        description="Opaque token of the public invoice page, or 'none'",
        examples=["b7f3c2"],
    )

    @field_validator("phone_number", "customer_name", "order_number", "bill_token", mode="before")
    @classmethod
    def coerce_to_string(cls, v: Any) -> Any:
        """Accept numeric phone and order numbers as sent by some clients."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def to_notification_request(self, origin: Optional[str] = None) -> NotificationRequest:
        """Build the dispatcher input from this request body."""
        return NotificationRequest(
            kind=self.kind,
            phone_number=self.phone_number,
            customer_name=self.customer_name,
            order_number=self.order_number,
            bill_token=self.bill_token,
            request_origin=origin,
            **self._amounts(),
        )

    def _amounts(self) -> Dict[str, Optional[float]]:
        return {}


class InvoiceNotificationRequest(NotificationRequestBase):
    """Request schema for the invoice-created notification."""

    kind: ClassVar[NotificationKind] = NotificationKind.INVOICE
    total_amount: Optional[float] = Field(None, description="Invoice total in rupees", examples=[1250.0])

    def _amounts(self) -> Dict[str, Optional[float]]:
        return {"total_amount": self.total_amount}


class AdvancePaymentNotificationRequest(NotificationRequestBase):
    """Request schema for the advance-payment-received notification."""

    kind: ClassVar[NotificationKind] = NotificationKind.ADVANCE_PAYMENT
    advance_amount: Optional[float] = Field(None, description="Amount received", examples=[500.0])
    remaining_amount: Optional[float] = Field(None, description="Balance still due", examples=[750.0])

    def _amounts(self) -> Dict[str, Optional[float]]:
        return {
            "advance_amount": self.advance_amount,
            "remaining_amount": self.remaining_amount,
        }


class PaymentCompletionNotificationRequest(NotificationRequestBase):
    """
    Request schema for the payment-completed notification.

    ``finalAmount`` must be a strictly positive number; an absent, zero or
    negative value is rejected by the dispatcher with INVALID_AMOUNT.
    """

    kind: ClassVar[NotificationKind] = NotificationKind.PAYMENT_COMPLETION
    final_amount: Optional[float] = Field(None, description="Final amount paid", examples=[150.5])

    def _amounts(self) -> Dict[str, Optional[float]]:
        return {"final_amount": self.final_amount}


class DeliveryReceipt(BaseModel):
    """Delivery receipt posted back by the SMS provider."""

    model_config = ConfigDict(extra="allow")

    request_id: Optional[str] = Field(None, description="Request id returned at send time")
    mobile: Optional[str] = Field(None, description="Recipient number")
    status: Optional[str] = Field(None, description="Delivery status")
    delivered_at: Optional[str] = Field(None, description="Delivery timestamp")
    message_id: Optional[str] = Field(None, description="Per-recipient message id")

    @field_validator("request_id", "mobile", "message_id", "delivered_at", mode="before")
    @classmethod
    def coerce_to_string(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class AttemptSummary(BaseModel):
    """Outward view of one provider attempt."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    provider: str
    channel: str
    success: bool
    message_id: Optional[str] = None
    provider_status: Optional[str] = None
    error_code: Optional[str] = None
    raw_message: Optional[str] = None
    status_code: Optional[int] = None
    started_at: str
    duration_ms: float

    @classmethod
    def from_attempt(cls, attempt: DispatchAttempt) -> "AttemptSummary":
        outcome = attempt.outcome
        fields: Dict[str, Any] = {}
        if isinstance(outcome, ProviderSuccess):
            fields = {"message_id": outcome.message_id, "provider_status": outcome.status}
        elif isinstance(outcome, ProviderFailure):
            fields = {
                "error_code": attempt.error_kind.value if attempt.error_kind else None,
                "raw_message": outcome.raw_message or None,
                "status_code": outcome.status_code,
            }
        return cls(
            provider=attempt.provider,
            channel=attempt.channel.value,
            success=attempt.succeeded,
            started_at=_isoformat(attempt.started_at),
            duration_ms=round(attempt.duration_ms, 2),
            **fields,
        )


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _thaw(value: Any) -> Any:
    """Copy frozen result details back into JSON-serializable dicts and lists."""
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


def _attempts(result: DispatchResult) -> List[Dict[str, Any]]:
    return [
        AttemptSummary.from_attempt(attempt).model_dump(by_alias=True, exclude_none=True)
        for attempt in result.attempts
    ]


def success_body(result: DispatchResult) -> Dict[str, Any]:
    """Shape a successful DispatchResult into the outward JSON body."""
    return {
        "success": True,
        "messageId": result.message_id,
        "provider": result.provider,
        "channel": result.channel.value if result.channel else None,
        "sentAt": _isoformat(result.sent_at),
        "phoneNumber": result.phone_number,
        "billLink": result.bill_link,
        "attempts": _attempts(result),
        **_thaw(result.details),
    }


def failure_body(result: DispatchResult) -> Dict[str, Any]:
    """
    Shape a failed DispatchResult into the outward JSON body.

    The kind-specific object travels under ``orderDetails`` for invoices and
    ``paymentContext`` for payment notifications. When every provider failed,
    ``fallbackOptions.manual`` carries a click-to-chat link for a manual send.
    """
    body: Dict[str, Any] = {
        "success": False,
        "error": result.error_message,
        "errorCode": result.error_kind.value if result.error_kind else None,
        "provider": result.provider,
        "channel": result.channel.value if result.channel else None,
        "attemptedAt": _isoformat(result.attempted_at),
        "phoneNumber": result.phone_number,
        "attempts": _attempts(result),
    }
    if result.error_detail:
        body["details"] = result.error_detail
    if result.causes:
        body["causes"] = [cause.value for cause in result.causes]

    context = result.details.get("orderDetails") or result.details.get("paymentDetails")
    if context is not None:
        key = "orderDetails" if result.kind is NotificationKind.INVOICE else "paymentContext"
        body[key] = _thaw(context)

    if result.manual_link:
        body["fallbackOptions"] = {
            "manual": {
                "whatsappLink": result.manual_link,
                "customerPhone": result.phone_number,
            }
        }
    return body


def result_body(result: DispatchResult) -> Dict[str, Any]:
    """Shape any DispatchResult into the outward JSON body."""
    return success_body(result) if result.success else failure_body(result)
