"""
Shared fixtures: fake provider clients and a dispatcher built on them.
"""

from typing import Any, Dict, List, Optional

import pytest

from src.billnotify.models import (
    Channel,
    NormalizedPhoneNumber,
    ProviderOutcome,
    ProviderSuccess,
    TemplateMessage,
)
from src.billnotify.routers import notifications
from src.billnotify.services.base import ProviderClient
from src.billnotify.services.dispatcher import NotificationDispatcher


class FakeProviderClient(ProviderClient):
    """Provider client double that records calls and returns a scripted outcome."""

    def __init__(
        self,
        provider_name: str,
        channel: Channel,
        outcome: Optional[ProviderOutcome] = None,
        error: Optional[Exception] = None,
    ) -> None:
        super().__init__(url="https://provider.test", api_key="test-key")
        self.provider_name = provider_name
        self.channel = channel
        self.outcome = outcome or ProviderSuccess(message_id=f"{provider_name}-1", status="queued")
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def build_headers(self) -> Dict[str, str]:
        return {}

    def build_payload(self, message, recipient: NormalizedPhoneNumber) -> Dict[str, Any]:
        if isinstance(message, TemplateMessage):
            return {"recipient": recipient.whatsapp, "templateArgs": list(message.args)}
        return {"recipient": recipient.whatsapp, "message": message.text}

    def parse_response(self, response):
        raise NotImplementedError

    async def send(self, message, recipient, correlation_id=None, payload=None) -> ProviderOutcome:
        self.calls.append({"message": message, "recipient": recipient, "payload": payload})
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture
def text_client() -> FakeProviderClient:
    return FakeProviderClient("Zoko WhatsApp", Channel.WHATSAPP)


@pytest.fixture
def template_client() -> FakeProviderClient:
    return FakeProviderClient("Zoko WhatsApp", Channel.WHATSAPP)


@pytest.fixture
def sms_client() -> FakeProviderClient:
    return FakeProviderClient("Fast2SMS", Channel.SMS)


@pytest.fixture
def dispatcher(text_client, template_client, sms_client) -> NotificationDispatcher:
    return NotificationDispatcher(
        text_client=text_client,
        template_client=template_client,
        sms_client=sms_client,
        use_invoice_template=True,
        template_id="invoice_generated",
        template_language="en",
        public_base_url="https://shop.example",
        fallback_link_host="invoice.shop.example",
        allowed_link_hosts=[],
    )


@pytest.fixture(autouse=True)
def disable_rate_limit():
    """Keep the per-IP limit from tripping across the test session."""
    notifications.limiter.enabled = False
    yield
    notifications.limiter.enabled = True
