"""
Base class for outbound messaging provider clients.

        correlation_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
reports the outcome as a value: ProviderSuccess, or ProviderFailure carrying
the raw status and text. Interpretation of failures is left to the
classifier, and retry or fallback decisions to the dispatcher.
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..models import (
    Channel,
    ComposedMessage,
    NormalizedPhoneNumber,
    ProviderFailure,
    ProviderOutcome,
)
from ..utils.logging import get_logger, log_api_call
from ..utils.phone import mask_phone_number

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 20.0


class ProviderClient(ABC):
    """
    One upstream provider reached over one channel.

    Subclasses build the request payload and interpret the provider's
    response body; this class owns the HTTP round trip, the timeout and the
    mapping of transport exceptions to ProviderFailure.
    """

    provider_name: str = "provider"
    channel: Channel = Channel.WHATSAPP

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            url: Provider endpoint URL
            api_key: Provider credential
            timeout: Upper bound in seconds on the whole round trip
            transport: Optional httpx transport (used by tests)
        """
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @abstractmethod
    def build_payload(
        self, message: ComposedMessage, recipient: NormalizedPhoneNumber
    ) -> Dict[str, Any]:
        """Build the JSON body sent to the provider."""

    @abstractmethod
    def build_headers(self) -> Dict[str, str]:
        """Build the request headers, including authentication."""

    @abstractmethod
    def parse_response(self, response: httpx.Response) -> ProviderOutcome:
        """Decide success or failure from a response that arrived."""

    async def send(
        self,
        message: ComposedMessage,
        recipient: NormalizedPhoneNumber,
        correlation_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> ProviderOutcome:
        """
        Send one message to one recipient.

        A round trip that exceeds ``self.timeout`` is cancelled, which closes
        its connection, and reported as a timeout failure. Cancellation of the
        caller propagates unchanged.

        Args:
            message: The composed message for this client's channel
            recipient: Validated recipient number
            correlation_id: Request correlation ID for tracing
            payload: Prebuilt request body; built from message and recipient when omitted

        Returns:
            ProviderSuccess or ProviderFailure
        """
        if not self.api_key:
            logger.error(
                f"{self.provider_name} API key not configured",
                extra={"provider": self.provider_name},
            )
            return ProviderFailure(
                error=f"{self.provider_name} API key not configured",
                error_type="ConfigurationError",
            )

        if payload is None:
            payload = self.build_payload(message, recipient)

        logger.info(
            f"Sending {self.channel.value} message via {self.provider_name}",
            extra={
                "provider": self.provider_name,
                "to": mask_phone_number(recipient),
                "message_length": message.length,
                "correlation_id": correlation_id,
            },
        )

        start = time.perf_counter()
        status_code: Optional[int] = None
        error_type: Optional[str] = None

        try:
            response = await asyncio.wait_for(self._post(payload), timeout=self.timeout)
            status_code = response.status_code
            return self.parse_response(response)

        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            error_type = type(e).__name__
            logger.error(
                f"{self.provider_name} request timed out",
                extra={"provider": self.provider_name, "timeout": self.timeout},
            )
            return ProviderFailure(
                error=f"{self.provider_name} request timed out after {self.timeout}s",
                transport="timeout",
                error_type=error_type,
            )

        except httpx.TransportError as e:
            error_type = type(e).__name__
            logger.error(
                f"Failed to reach {self.provider_name} (network error)",
                extra={"provider": self.provider_name, "error": str(e)},
                exc_info=True,
            )
            return ProviderFailure(
                error=f"Failed to connect to {self.provider_name}: {e}",
                transport="network",
                error_type=error_type,
            )

        finally:
            log_api_call(
                service=self.provider_name,
                endpoint=self.url,
                method="POST",
                status_code=status_code,
                duration_ms=(time.perf_counter() - start) * 1000,
                correlation_id=correlation_id,
                error_type=error_type,
            )

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout), transport=self.transport
        ) as client:
            return await client.post(self.url, json=payload, headers=self.build_headers())

    @staticmethod
    def read_json(response: httpx.Response) -> Optional[Dict[str, Any]]:
        """Return the JSON object body, or None when the body is not a JSON object."""
        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def error_text(data: Optional[Dict[str, Any]], default: str) -> str:
        """Extract a provider error message, joining list-valued messages."""
        if not data:
            return default
        message = data.get("message") or data.get("error") or data.get("error_message")
        if isinstance(message, list):
            return ", ".join(str(item) for item in message)
        if isinstance(message, dict):
            return json.dumps(message)
        return str(message) if message else default
