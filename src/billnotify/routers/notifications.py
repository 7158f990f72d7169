"""
Notification router for BillNotify.

This module exposes one POST endpoint per notification kind. Each endpoint
hands the request to the NotificationDispatcher and answers with the
dispatch result, using the HTTP status fixed for its error kind.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import settings
from ..dependencies import get_dispatcher
from ..schemas import (
    AdvancePaymentNotificationRequest,
    InvoiceNotificationRequest,
    NotificationRequestBase,
    PaymentCompletionNotificationRequest,
    result_body,
)
from ..services.dispatcher import NotificationDispatcher
from ..utils.logging import get_logger
from ..utils.phone import mask_phone_number

# Set up logger
logger = get_logger(__name__)

# Create router
router = APIRouter()

# Initialize rate limiter (uses client IP address as key)
limiter = Limiter(key_func=get_remote_address)


async def _dispatch(
    request: Request,
    body: NotificationRequestBase,
    dispatcher: NotificationDispatcher,
) -> JSONResponse:
    correlation_id: Optional[str] = getattr(request.state, "correlation_id", None)

    logger.info(
        "Notification requested",
        extra={
            "kind": body.kind.value,
            "to": mask_phone_number(body.phone_number),
            "correlation_id": correlation_id,
        },
    )

    result = await dispatcher.dispatch(
        body.to_notification_request(origin=request.headers.get("origin")),
        headers=request.headers,
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=result.http_status, content=result_body(result))


@router.post("/send-sms")
@limiter.limit(settings.rate_limit)
async def send_invoice_notification(
    request: Request,
    body: InvoiceNotificationRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """
    Send the invoice-created notification.

    Tries the WhatsApp invoice message first and falls back to SMS with a
    freshly composed body when WhatsApp fails.

    Args:
        request: The HTTP request (required for rate limiting)
        body: Invoice notification fields
        dispatcher: Notification dispatcher

    Returns:
        Success body with messageId/provider/channel, or failure body with
        errorCode and attempts; status per error kind
    """
    return await _dispatch(request, body, dispatcher)


@router.post("/send-advance-sms")
@limiter.limit(settings.rate_limit)
async def send_advance_payment_notification(
    request: Request,
    body: AdvancePaymentNotificationRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """Send the advance-payment-received notification over WhatsApp."""
    return await _dispatch(request, body, dispatcher)


@router.post("/send-completion-sms")
@limiter.limit(settings.rate_limit)
async def send_payment_completion_notification(
    request: Request,
    body: PaymentCompletionNotificationRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """
    Send the payment-completed notification over WhatsApp.

    ``finalAmount`` must be strictly positive; otherwise the response is 400
    INVALID_AMOUNT and no provider is contacted.
    """
    return await _dispatch(request, body, dispatcher)
