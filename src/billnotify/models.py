"""
Domain model for the BillNotify dispatch engine.

Defines the enums (notification kind, channel, error kind) and the immutable
value objects that flow between the validator, composer, provider clients
and dispatcher. Nothing here is persisted; every value is created fresh per
request.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


class NotificationKind(str, Enum):
    """Kinds of transactional notification the service sends."""

    INVOICE = "invoice"
    ADVANCE_PAYMENT = "advance"
    PAYMENT_COMPLETION = "completion"


class Channel(str, Enum):
    """Upstream transport a message travels over."""

    WHATSAPP = "WhatsApp"
    SMS = "SMS"

    @property
    def max_length(self) -> int:
        """Hard limit on the rendered message length for this channel."""
        return CHANNEL_LIMITS[self]


CHANNEL_LIMITS = {
    Channel.WHATSAPP: 4096,
    Channel.SMS: 1000,
}


class ErrorKind(str, Enum):
    """
    Stable error taxonomy exposed to callers.

    The value doubles as the outward ``errorCode``. Each kind maps to exactly
    one HTTP status and one human-readable sentence; both mappings are a
    public contract.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    MESSAGE_TOO_LONG = "MESSAGE_TOO_LONG"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    AUTH_ERROR = "AUTH_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    BAD_REQUEST = "BAD_REQUEST"
    UNPROCESSABLE_ENTITY = "UNPROCESSABLE_ENTITY"
    UPSTREAM_SERVER_ERROR = "UPSTREAM_SERVER_ERROR"
    API_ERROR = "API_ERROR"
    ALL_PROVIDERS_UNAVAILABLE = "ALL_PROVIDERS_UNAVAILABLE"
    UNKNOWN = "UNKNOWN"

    @property
    def http_status(self) -> int:
        return ERROR_HTTP_STATUS[self]

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self]


ERROR_HTTP_STATUS = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.MESSAGE_TOO_LONG: 400,
    ErrorKind.INVALID_AMOUNT: 400,
    ErrorKind.NETWORK_ERROR: 503,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.AUTH_ERROR: 401,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNPROCESSABLE_ENTITY: 422,
    ErrorKind.UPSTREAM_SERVER_ERROR: 502,
    ErrorKind.API_ERROR: 500,
    ErrorKind.ALL_PROVIDERS_UNAVAILABLE: 503,
    ErrorKind.UNKNOWN: 500,
}

ERROR_MESSAGES = {
    ErrorKind.VALIDATION_ERROR: "The notification request is missing required fields or has an invalid phone number.",
    ErrorKind.MESSAGE_TOO_LONG: "The message is too long for the selected channel.",
    ErrorKind.INVALID_AMOUNT: "The payment amount must be a positive number.",
    ErrorKind.NETWORK_ERROR: "Could not connect to the messaging provider.",
    ErrorKind.TIMEOUT: "The messaging provider did not respond in time. Please try again.",
    ErrorKind.AUTH_ERROR: "The messaging provider rejected our credentials.",
    ErrorKind.RATE_LIMITED: "Too many messages were sent. Please wait and try again.",
    ErrorKind.BAD_REQUEST: "The messaging provider rejected the message request.",
    ErrorKind.UNPROCESSABLE_ENTITY: "The messaging provider could not process the message.",
    ErrorKind.UPSTREAM_SERVER_ERROR: "The messaging provider is experiencing an outage.",
    ErrorKind.API_ERROR: "The messaging provider returned an error.",
    ErrorKind.ALL_PROVIDERS_UNAVAILABLE: "All messaging providers are currently unavailable.",
    ErrorKind.UNKNOWN: "The message could not be sent for an unknown reason.",
}


@dataclass(frozen=True)
class NormalizedPhoneNumber:
    """A validated 10-digit Indian mobile number."""

    digits: str

    @property
    def e164(self) -> str:
        return f"+91{self.digits}"

    @property
    def whatsapp(self) -> str:
        """Recipient form expected by the WhatsApp provider (no plus sign)."""
        return f"91{self.digits}"

    def __str__(self) -> str:
        return self.digits


@dataclass(frozen=True)
class NotificationRequest:
    """
    Input to the dispatcher.

    Strings are kept exactly as received; the dispatcher validates and the
    composer trims. Amount fields are only meaningful for the kinds that use
    them (total for invoices, advance/remaining for advance payments, final
    for payment completion).
    """

    kind: NotificationKind
    phone_number: Optional[str]
    customer_name: Optional[str]
    order_number: Optional[str]
    bill_token: Optional[str] = None
    total_amount: Optional[float] = None
    advance_amount: Optional[float] = None
    remaining_amount: Optional[float] = None
    final_amount: Optional[float] = None
    request_origin: Optional[str] = None


@dataclass(frozen=True)
class TextMessage:
    """Free-form body for a text channel."""

    text: str

    @property
    def length(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class TemplateMessage:
    """
    Pre-registered template reference plus its positional arguments.

    Argument order is part of the contract with the registered template.
    """

    template_id: str
    args: tuple[str, ...]
    language: str = "en"

    @property
    def length(self) -> int:
        return sum(len(arg) for arg in self.args)


ComposedMessage = Union[TextMessage, TemplateMessage]


@dataclass(frozen=True)
class ProviderSuccess:
    message_id: Optional[str]
    status: str
    raw: Any = None


@dataclass(frozen=True)
class ProviderFailure:
    """
    Uninterpreted failure of one provider call.

    ``transport`` is ``"network"`` or ``"timeout"`` when the round trip
    itself failed, ``None`` when the provider answered. ``error`` is the
    provider's or exception's message; ``body`` is the raw response text.
    """

    status_code: Optional[int] = None
    error: Optional[str] = None
    body: Optional[str] = None
    transport: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def raw_message(self) -> str:
        return self.error or self.body or ""


ProviderOutcome = Union[ProviderSuccess, ProviderFailure]


@dataclass(frozen=True)
class DispatchAttempt:
    """One record per provider call, in execution order."""

    provider: str
    channel: Channel
    request_payload: Mapping[str, Any]
    outcome: ProviderOutcome
    started_at: datetime
    duration_ms: float
    error_kind: Optional[ErrorKind] = None

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, ProviderSuccess)


def freeze(value: Any) -> Any:
    """Return a read-only copy: mappings become MappingProxyType, sequences tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


@dataclass(frozen=True)
class DispatchResult:
    """
    Terminal value returned by the dispatcher.

    On success ``provider``/``channel``/``message_id``/``sent_at`` describe
    the winning attempt. On failure ``error_kind``/``error_message`` describe
    the single top-level error and ``causes`` lists the underlying kinds when
    every provider failed, with ``manual_link`` a click-to-chat URL staff can
    use to send the message by hand.
    """

    kind: NotificationKind
    success: bool
    attempts: tuple[DispatchAttempt, ...] = ()
    provider: Optional[str] = None
    channel: Optional[Channel] = None
    message_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    attempted_at: Optional[datetime] = None
    phone_number: Optional[str] = None
    bill_link: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    error_detail: Optional[str] = None
    causes: tuple[ErrorKind, ...] = ()
    manual_link: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attempts", tuple(self.attempts))
        object.__setattr__(self, "causes", tuple(self.causes))
        object.__setattr__(self, "details", freeze(self.details))

    @property
    def http_status(self) -> int:
        if self.success:
            return 200
        return (self.error_kind or ErrorKind.UNKNOWN).http_status
