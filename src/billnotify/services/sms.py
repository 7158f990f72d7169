"""
SMS client for BillNotify using the Fast2SMS bulk API.

This module provides the SmsClient used as the fallback channel when
WhatsApp delivery of an invoice fails, and parsing of the delivery receipts
Fast2SMS posts back to the webhook.
"""

from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..models import (
    Channel,
    ComposedMessage,
    NormalizedPhoneNumber,
    ProviderFailure,
    ProviderOutcome,
    ProviderSuccess,
    TextMessage,
)
from ..utils.logging import get_logger
from ..utils.phone import mask_phone_number
from .base import ProviderClient

# Set up logger
logger = get_logger(__name__)


class SmsClient(ProviderClient):
    """
    Client for the Fast2SMS bulk-SMS endpoint.

    Success is decided solely by the boolean ``return`` flag in the response
    body; the HTTP status is recorded but does not decide the outcome.
    """

    provider_name = "Fast2SMS"
    channel = Channel.SMS

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        route: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            url=url or settings.fast2sms_url,
            api_key=settings.fast2sms_api_key if api_key is None else api_key,
            timeout=timeout or settings.provider_timeout_seconds,
            transport=transport,
        )
        self.route = route or settings.fast2sms_route

    def build_headers(self) -> Dict[str, str]:
        return {
            "authorization": self.api_key,
            "Content-Type": "application/json",
            "cache-control": "no-cache",
        }

    def build_payload(
        self, message: ComposedMessage, recipient: NormalizedPhoneNumber
    ) -> Dict[str, Any]:
        if not isinstance(message, TextMessage):
            raise TypeError("SmsClient sends text messages only")
        return {
            "route": self.route,
            "message": message.text,
            "language": "english",
            "flash": 0,
            "numbers": recipient.digits,
        }

    def parse_response(self, response: httpx.Response) -> ProviderOutcome:
        data = self.read_json(response)

        if data is not None and data.get("return") is True:
            request_id = data.get("request_id")
            logger.info(
                "SMS accepted by Fast2SMS",
                extra={"request_id": request_id, "status_code": response.status_code},
            )
            return ProviderSuccess(
                message_id=str(request_id) if request_id else None,
                status="queued",
                raw=data,
            )

        error = self.error_text(data, "Unknown error from Fast2SMS")
        logger.error(
            "Fast2SMS rejected the message",
            extra={
                "status_code": response.status_code,
                "error": error,
                "response": response.text,
            },
        )
        # A 2xx status carries no information about a rejected SMS
        return ProviderFailure(
            status_code=None if response.is_success else response.status_code,
            error=error,
            body=response.text,
        )


def parse_delivery_receipt(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Parse a delivery receipt callback from Fast2SMS.

    Delivery receipts typically include:
    - request_id: The id returned when the SMS was accepted
    - mobile: Recipient's phone number
    - status: Delivery status (delivered, failed, ...)
    - delivered_at: Delivery timestamp (optional)
    - message_id: Per-recipient message id (optional)

    Args:
        payload: The delivery receipt payload from Fast2SMS

    Returns:
        Dictionary with parsed data, or None if the payload is not an object
    """
    if not isinstance(payload, dict):
        logger.error(
            "Failed to parse delivery receipt",
            extra={"payload_type": type(payload).__name__},
        )
        return None

    result = {
        "request_id": payload.get("request_id"),
        "message_id": payload.get("message_id"),
        "status": payload.get("status"),
        "delivered_at": payload.get("delivered_at"),
        "mobile": payload.get("mobile"),
    }

    logger.info(
        "Delivery receipt parsed",
        extra={
            "request_id": result["request_id"],
            "status": result["status"],
            "mobile": mask_phone_number(result["mobile"]),
        },
    )

    return result
