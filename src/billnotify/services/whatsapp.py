"""
WhatsApp Business messaging clients for BillNotify (Zoko API).

This module provides the two WhatsApp channel variants: free-text messages
and pre-registered template messages. Both authenticate with Zoko's
``apikey`` header and share the same success rules.
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
    TemplateMessage,
    TextMessage,
)
from ..utils.logging import get_logger
from .base import ProviderClient

logger = get_logger(__name__)

MESSAGE_ID_KEYS = ("messageId", "id", "message_id")
REQUEST_ID_KEYS = ("requestId", "request_id")


def _first_present(data: Dict[str, Any], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value:
            return str(value)
    return None


class ZokoClient(ProviderClient):
    """
    Shared behaviour of the Zoko WhatsApp clients.

    A response is a success only when the HTTP status is 2xx, the body does
    not carry ``success: false``, and the body carries at least one of an
    explicit ``success: true``, a message id or a request id. A 2xx body with
    none of those is reported as a failure without an error message, which
    the classifier maps to Unknown.
    """

    provider_name = "Zoko WhatsApp"
    channel = Channel.WHATSAPP

    def build_headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "apikey": self.api_key,
        }

    def parse_response(self, response: httpx.Response) -> ProviderOutcome:
        data = self.read_json(response)

        if not response.is_success:
            logger.error(
                "Zoko API returned error status",
                extra={"status_code": response.status_code, "response": response.text},
            )
            return ProviderFailure(
                status_code=response.status_code,
                error=self.error_text(
                    data, f"Zoko API returned status {response.status_code}"
                ),
                body=response.text,
            )

        if data is None:
            return ProviderFailure(status_code=response.status_code, body=response.text)

        if data.get("success") is False:
            return ProviderFailure(
                status_code=response.status_code,
                error=self.error_text(data, "Zoko reported success=false"),
                body=response.text,
            )

        message_id = _first_present(data, MESSAGE_ID_KEYS)
        request_id = _first_present(data, REQUEST_ID_KEYS)

        if data.get("success") is not True and not message_id and not request_id:
            logger.warning(
                "Zoko response carried no success flag or message id",
                extra={"status_code": response.status_code, "response_keys": list(data.keys())},
            )
            return ProviderFailure(status_code=response.status_code, body=response.text)

        status = str(data.get("status") or "accepted")
        logger.info(
            "WhatsApp message accepted by Zoko",
            extra={"message_id": message_id or request_id, "status": status},
        )
        return ProviderSuccess(message_id=message_id or request_id, status=status, raw=data)


class WhatsAppTextClient(ZokoClient):
    """Sends free-form WhatsApp text messages."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            url=url or settings.zoko_text_url,
            api_key=settings.zoko_api_key if api_key is None else api_key,
            timeout=timeout or settings.provider_timeout_seconds,
            transport=transport,
        )

    def build_payload(
        self, message: ComposedMessage, recipient: NormalizedPhoneNumber
    ) -> Dict[str, Any]:
        if not isinstance(message, TextMessage):
            raise TypeError(f"{type(self).__name__} sends text messages only")
        return {
            "channel": "whatsapp",
            "recipient": recipient.whatsapp,
            "type": "text",
            "message": message.text,
        }


class WhatsAppTemplateClient(ZokoClient):
    """Sends pre-registered WhatsApp template messages with positional arguments."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            url=url or settings.zoko_template_url,
            api_key=settings.zoko_api_key if api_key is None else api_key,
            timeout=timeout or settings.provider_timeout_seconds,
            transport=transport,
        )

    def build_payload(
        self, message: ComposedMessage, recipient: NormalizedPhoneNumber
    ) -> Dict[str, Any]:
        if not isinstance(message, TemplateMessage):
            raise TypeError(f"{type(self).__name__} sends template messages only")
        return {
            "channel": "whatsapp",
            "recipient": recipient.whatsapp,
            "type": "template",
            "templateId": message.template_id,
            "templateLanguage": message.language,
            "templateArgs": list(message.args),
        }
