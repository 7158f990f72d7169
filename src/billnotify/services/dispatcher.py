"""
Notification dispatcher for BillNotify.

This module sequences validation, link resolution, composition, provider
calls and error classification for one notification request, and returns a
single immutable DispatchResult describing every attempt made.

The dispatch of one request moves through these states:

    VALIDATING -> COMPOSING -> ATTEMPTING_PRIMARY -> [ATTEMPTING_FALLBACK] -> DONE

Only the invoice kind has a fallback route (WhatsApp template, then SMS);
advance-payment and payment-completion notifications get exactly one
WhatsApp text attempt.
"""

import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..config import settings
from ..exceptions import InvalidAmount, InvalidPhoneNumber, MessageTooLong, MissingFields
from ..models import (
    Channel,
    ComposedMessage,
    DispatchAttempt,
    DispatchResult,
    ErrorKind,
    NormalizedPhoneNumber,
    NotificationKind,
    NotificationRequest,
    ProviderFailure,
    ProviderSuccess,
)
from ..utils.links import resolve_invoice_link, whatsapp_chat_link
from ..utils.logging import get_logger, log_event
from ..utils.phone import format_e164, validate_phone_number
from .base import ProviderClient
from .classifier import classify
from .composer import (
    compose_advance_payment_text,
    compose_invoice_sms,
    compose_invoice_template,
    compose_invoice_text,
    compose_payment_completion_text,
    ensure_positive_amount,
)
from .sms import SmsClient
from .whatsapp import WhatsAppTemplateClient, WhatsAppTextClient

logger = get_logger(__name__)

Composer = Callable[[NotificationRequest, str], ComposedMessage]


class DispatchState(str, Enum):
    VALIDATING = "VALIDATING"
    COMPOSING = "COMPOSING"
    ATTEMPTING_PRIMARY = "ATTEMPTING_PRIMARY"
    ATTEMPTING_FALLBACK = "ATTEMPTING_FALLBACK"
    DONE = "DONE"


@dataclass(frozen=True)
class Route:
    """A provider client paired with the composer producing its message."""

    client: ProviderClient
    compose: Composer

    @property
    def provider(self) -> str:
        return self.client.provider_name

    @property
    def channel(self) -> Channel:
        return self.client.channel


@dataclass(frozen=True)
class DispatchPolicy:
    """Per-kind fallback policy: a primary route and an optional fallback."""

    primary: Route
    fallback: Optional[Route] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDispatcher:
    """
    Dispatches notifications according to a per-kind fallback policy.

    Holds no per-request state; one instance can serve concurrent requests.
    """

    def __init__(
        self,
        text_client: Optional[ProviderClient] = None,
        template_client: Optional[ProviderClient] = None,
        sms_client: Optional[ProviderClient] = None,
        use_invoice_template: Optional[bool] = None,
        template_id: Optional[str] = None,
        template_language: Optional[str] = None,
        public_base_url: Optional[str] = None,
        fallback_link_host: Optional[str] = None,
        allowed_link_hosts: Optional[Iterable[str]] = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Clients and options default to the application settings.

        Args:
            text_client: WhatsApp free-text client
            template_client: WhatsApp template client
            sms_client: SMS client used as the invoice fallback
            use_invoice_template: Send invoices as a template (True) or as text
            template_id: Registered invoice template id
            template_language: Registered invoice template language
            public_base_url: Explicit invoice link origin
            fallback_link_host: Host used when no origin can be derived
            allowed_link_hosts: Hosts accepted as invoice link origins
        """
        self.text_client = text_client or WhatsAppTextClient()
        self.template_client = template_client or WhatsAppTemplateClient()
        self.sms_client = sms_client or SmsClient()
        self.use_invoice_template = (
            settings.use_invoice_template if use_invoice_template is None else use_invoice_template
        )
        self.template_id = template_id or settings.zoko_invoice_template_id
        self.template_language = template_language or settings.zoko_template_language
        self.public_base_url = public_base_url or settings.public_base_url
        self.fallback_link_host = fallback_link_host or settings.fallback_link_host
        self.allowed_link_hosts = list(
            settings.allowed_link_hosts if allowed_link_hosts is None else allowed_link_hosts
        )

    def policy_for(self, kind: NotificationKind) -> DispatchPolicy:
        """Return the dispatch policy for a notification kind."""
        if kind is NotificationKind.INVOICE:
            if self.use_invoice_template:
                primary = Route(
                    self.template_client,
                    partial(
                        compose_invoice_template,
                        template_id=self.template_id,
                        language=self.template_language,
                    ),
                )
            else:
                primary = Route(self.text_client, compose_invoice_text)
            return DispatchPolicy(primary=primary, fallback=Route(self.sms_client, compose_invoice_sms))

        if kind is NotificationKind.ADVANCE_PAYMENT:
            return DispatchPolicy(primary=Route(self.text_client, compose_advance_payment_text))

        return DispatchPolicy(primary=Route(self.text_client, compose_payment_completion_text))

    async def dispatch(
        self,
        request: NotificationRequest,
        headers: Optional[Mapping[str, str]] = None,
        correlation_id: Optional[str] = None,
    ) -> DispatchResult:
        """
        Dispatch one notification.

        Never raises for validation or provider failures; every outcome is a
        DispatchResult.

        Args:
            request: The notification request
            headers: Request headers used to derive the invoice link origin
            correlation_id: Request correlation ID for tracing

        Returns:
            The terminal DispatchResult
        """
        kind = request.kind
        policy = self.policy_for(kind)
        details = self._details(request)
        state = DispatchState.VALIDATING

        try:
            phone = self._validate(request)
        except (MissingFields, InvalidPhoneNumber) as e:
            self._transition(state, DispatchState.DONE, kind, correlation_id, "validation_failed")
            return self._failure(
                request, policy.primary, ErrorKind.VALIDATION_ERROR, details,
                error_detail=e.message, correlation_id=correlation_id,
            )
        except InvalidAmount as e:
            self._transition(state, DispatchState.DONE, kind, correlation_id, "invalid_amount")
            return self._failure(
                request, policy.primary, ErrorKind.INVALID_AMOUNT, details,
                error_detail=e.message, correlation_id=correlation_id,
            )

        bill_link = resolve_invoice_link(
            self.public_base_url or request.request_origin,
            request.bill_token,
            headers=headers,
            fallback_host=self.fallback_link_host,
            allowed_hosts=self.allowed_link_hosts,
        )
        state = self._transition(state, DispatchState.COMPOSING, kind, correlation_id)

        try:
            message = self._compose(policy.primary, request, bill_link)
        except MessageTooLong as e:
            self._transition(state, DispatchState.DONE, kind, correlation_id, "message_too_long")
            return self._failure(
                request, policy.primary, ErrorKind.MESSAGE_TOO_LONG, details,
                phone=phone, bill_link=bill_link, error_detail=e.message,
                correlation_id=correlation_id,
            )
        except InvalidAmount as e:
            self._transition(state, DispatchState.DONE, kind, correlation_id, "invalid_amount")
            return self._failure(
                request, policy.primary, ErrorKind.INVALID_AMOUNT, details,
                phone=phone, bill_link=bill_link, error_detail=e.message,
                correlation_id=correlation_id,
            )

        state = self._transition(state, DispatchState.ATTEMPTING_PRIMARY, kind, correlation_id)
        attempts: List[DispatchAttempt] = [
            await self._attempt(policy.primary, message, phone, correlation_id)
        ]

        if not attempts[0].succeeded and policy.fallback is not None:
            state = self._transition(
                state, DispatchState.ATTEMPTING_FALLBACK, kind, correlation_id, "primary_failed"
            )
            attempts.append(
                await self._attempt_fallback(policy.fallback, request, bill_link, phone, correlation_id)
            )
            if attempts[-1].succeeded:
                details = {
                    **details,
                    "fallbackUsed": True,
                    "fallbackReason": (
                        f"{attempts[0].provider} failed: {attempts[0].error_kind.value}"
                    ),
                }

        self._transition(state, DispatchState.DONE, kind, correlation_id)

        winner = attempts[-1]
        if winner.succeeded:
            return self._success(request, winner, attempts, phone, bill_link, details, correlation_id)

        if len(attempts) > 1:
            manual_text = compose_invoice_text(request, bill_link).text
            return self._failure(
                request, winner, ErrorKind.ALL_PROVIDERS_UNAVAILABLE, details,
                phone=phone, bill_link=bill_link, attempts=attempts,
                causes=[attempt.error_kind for attempt in attempts],
                manual_link=whatsapp_chat_link(phone.whatsapp, manual_text),
                error_detail="; ".join(
                    f"{attempt.provider}: {attempt.outcome.raw_message}" for attempt in attempts
                ),
                correlation_id=correlation_id,
            )

        return self._failure(
            request, winner, winner.error_kind or ErrorKind.UNKNOWN, details,
            phone=phone, bill_link=bill_link, attempts=attempts,
            error_detail=winner.outcome.raw_message, correlation_id=correlation_id,
        )

    def _validate(self, request: NotificationRequest) -> NormalizedPhoneNumber:
        required = (
            ("phoneNumber", request.phone_number),
            ("customerName", request.customer_name),
            ("orderNumber", request.order_number),
        )
        missing = [name for name, value in required if not value or not str(value).strip()]
        if missing:
            raise MissingFields(missing)

        phone = validate_phone_number(request.phone_number)

        if request.kind is NotificationKind.PAYMENT_COMPLETION:
            ensure_positive_amount("finalAmount", request.final_amount)

        for field, amount in (
            ("totalAmount", request.total_amount),
            ("advanceAmount", request.advance_amount),
            ("remainingAmount", request.remaining_amount),
        ):
            if amount is not None and (not math.isfinite(amount) or amount < 0):
                raise InvalidAmount(field, amount, "Amount must be a finite, non-negative number")

        return phone

    @staticmethod
    def _compose(route: Route, request: NotificationRequest, bill_link: str) -> ComposedMessage:
        message = route.compose(request, bill_link)
        limit = route.channel.max_length
        if message.length > limit:
            raise MessageTooLong(route.channel.value, message.length, limit)
        return message

    async def _attempt(
        self,
        route: Route,
        message: ComposedMessage,
        phone: NormalizedPhoneNumber,
        correlation_id: Optional[str],
    ) -> DispatchAttempt:
        started_at = _now()
        start = time.perf_counter()
        payload: Dict[str, Any] = {}

        try:
            payload = route.client.build_payload(message, phone)
            outcome = await route.client.send(
                message, phone, correlation_id=correlation_id, payload=payload
            )
        except Exception as e:
            logger.error(
                f"Unexpected error sending via {route.provider}",
                extra={"provider": route.provider, "error": str(e), "correlation_id": correlation_id},
                exc_info=True,
            )
            outcome = ProviderFailure(error=str(e) or type(e).__name__, error_type=type(e).__name__)

        error_kind = None if isinstance(outcome, ProviderSuccess) else classify(outcome)
        return DispatchAttempt(
            provider=route.provider,
            channel=route.channel,
            request_payload=payload,
            outcome=outcome,
            started_at=started_at,
            duration_ms=(time.perf_counter() - start) * 1000,
            error_kind=error_kind,
        )

    async def _attempt_fallback(
        self,
        route: Route,
        request: NotificationRequest,
        bill_link: str,
        phone: NormalizedPhoneNumber,
        correlation_id: Optional[str],
    ) -> DispatchAttempt:
        logger.info(
            "SMS fallback triggered",
            extra={"kind": request.kind.value, "provider": route.provider, "correlation_id": correlation_id},
        )
        try:
            message = self._compose(route, request, bill_link)
        except MessageTooLong as e:
            # Recorded as a failed attempt; the provider is never called
            return DispatchAttempt(
                provider=route.provider,
                channel=route.channel,
                request_payload={},
                outcome=ProviderFailure(error=e.message, error_type=type(e).__name__),
                started_at=_now(),
                duration_ms=0.0,
                error_kind=ErrorKind.MESSAGE_TOO_LONG,
            )
        return await self._attempt(route, message, phone, correlation_id)

    @staticmethod
    def _transition(
        from_state: DispatchState,
        to_state: DispatchState,
        kind: NotificationKind,
        correlation_id: Optional[str],
        trigger: Optional[str] = None,
    ) -> DispatchState:
        logger.info(
            "Dispatch state transition",
            extra={
                "from_state": from_state.value,
                "to_state": to_state.value,
                "kind": kind.value,
                "trigger": trigger or "next",
                "correlation_id": correlation_id,
            },
        )
        return to_state

    @staticmethod
    def _details(request: NotificationRequest) -> Dict[str, Any]:
        if request.kind is NotificationKind.INVOICE:
            return {
                "orderDetails": {
                    "orderNumber": (request.order_number or "").strip(),
                    "totalAmount": request.total_amount or 0,
                }
            }

        if request.kind is NotificationKind.ADVANCE_PAYMENT:
            payment: Dict[str, Any] = {}
            if request.advance_amount is not None:
                payment["advanceAmount"] = request.advance_amount
            if request.remaining_amount is not None:
                payment["remainingAmount"] = request.remaining_amount
            if request.advance_amount is not None and request.remaining_amount is not None:
                payment["totalAmount"] = request.advance_amount + request.remaining_amount
            return {"paymentDetails": payment}

        return {"paymentDetails": {"finalAmount": request.final_amount, "status": "PAID_IN_FULL"}}

    @staticmethod
    def _success(
        request: NotificationRequest,
        winner: DispatchAttempt,
        attempts: List[DispatchAttempt],
        phone: NormalizedPhoneNumber,
        bill_link: str,
        details: Dict[str, Any],
        correlation_id: Optional[str],
    ) -> DispatchResult:
        sent_at = _now()
        log_event(
            "Notification dispatched",
            correlation_id=correlation_id,
            kind=request.kind.value,
            provider=winner.provider,
            channel=winner.channel.value,
            attempt_count=len(attempts),
        )
        return DispatchResult(
            kind=request.kind,
            success=True,
            attempts=tuple(attempts),
            provider=winner.provider,
            channel=winner.channel,
            message_id=winner.outcome.message_id,
            sent_at=sent_at,
            attempted_at=attempts[0].started_at,
            phone_number=format_e164(phone),
            bill_link=bill_link,
            details=details,
        )

    @staticmethod
    def _failure(
        request: NotificationRequest,
        source: Any,
        error_kind: ErrorKind,
        details: Dict[str, Any],
        phone: Optional[NormalizedPhoneNumber] = None,
        bill_link: Optional[str] = None,
        attempts: Iterable[DispatchAttempt] = (),
        causes: Iterable[ErrorKind] = (),
        manual_link: Optional[str] = None,
        error_detail: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> DispatchResult:
        attempts = tuple(attempts)
        log_event(
            "Notification dispatch failed",
            level="WARNING",
            correlation_id=correlation_id,
            kind=request.kind.value,
            provider=source.provider,
            error_code=error_kind.value,
            attempt_count=len(attempts),
        )
        return DispatchResult(
            kind=request.kind,
            success=False,
            attempts=attempts,
            provider=source.provider,
            channel=source.channel,
            attempted_at=attempts[0].started_at if attempts else _now(),
            phone_number=format_e164(phone) if phone else request.phone_number,
            bill_link=bill_link,
            error_kind=error_kind,
            error_message=error_kind.message,
            error_detail=error_detail,
            causes=tuple(causes),
            manual_link=manual_link,
            details=details,
        )
