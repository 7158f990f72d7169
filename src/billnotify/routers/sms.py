"""
SMS webhook router for BillNotify.

This module receives delivery-receipt callbacks from Fast2SMS. Receipts are
logged and acknowledged; delivery history is not stored.
"""

from typing import Any

from fastapi import APIRouter, Request

from ..schemas import DeliveryReceipt
from ..services.sms import parse_delivery_receipt
from ..utils.logging import get_logger

# Set up logger
logger = get_logger(__name__)

# Create router
router = APIRouter()


@router.post("/webhook")
async def receive_delivery_receipt(
    request: Request,
    receipt: DeliveryReceipt,
) -> dict[str, Any]:
    """
    Receive an SMS delivery receipt from Fast2SMS.

    Args:
        request: The HTTP request
        receipt: The delivery receipt payload

    Returns:
        Acknowledgement body expected by the provider
    """
    parsed = parse_delivery_receipt(receipt.model_dump())

    logger.info(
        "SMS delivery receipt received",
        extra={
            "request_id": parsed["request_id"] if parsed else None,
            "delivery_status": parsed["status"] if parsed else None,
            "correlation_id": getattr(request.state, "correlation_id", None),
        },
    )

    return {
        "success": True,
        "message": "Webhook received successfully",
        "processed": True,
    }
