"""
Message composition for BillNotify notifications.

One pure function per notification variant. Each renders a ComposedMessage
from the request fields and the resolved invoice link; none of them reads the
clock, the environment or any other hidden state, so identical inputs always
produce identical output. Channel length limits are enforced by the
dispatcher, not here.
"""

import math
from typing import Optional

from ..exceptions import InvalidAmount
from ..models import NotificationRequest, TemplateMessage, TextMessage

BUSINESS_NAME = "Mitti Arts"
BUSINESS_PHONES = "9441550927 / 7382150250"
BUSINESS_PRIMARY_PHONE = "9441550927"
BUSINESS_LOCATION = "Opp. Romoji Film City, Hyderabad"
BUSINESS_EMAIL = "info@mittiarts.com"

# Number of positional arguments the registered invoice template expects
INVOICE_TEMPLATE_ARG_COUNT = 4


def format_amount(amount: Optional[float]) -> str:
    """
    Format an amount with exactly two decimals; missing amounts render as 0.00.

    Examples:
        >>> format_amount(150.5)
        '150.50'
        >>> format_amount(None)
        '0.00'
    """
    return f"{(amount or 0):.2f}"


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def ensure_positive_amount(field: str, amount: Optional[float]) -> float:
    """
    Require a strictly positive amount.

    Raises:
        InvalidAmount: If the amount is missing, zero, negative or not finite
    """
    if amount is None or not math.isfinite(amount) or amount <= 0:
        raise InvalidAmount(field, amount, "Amount must be greater than zero")
    return amount


def compose_invoice_text(request: NotificationRequest, bill_link: str) -> TextMessage:
    """
    Render the WhatsApp free-text invoice message.

    Args:
        request: The invoice notification request
        bill_link: Resolved public invoice URL

    Returns:
        TextMessage with the full invoice body
    """
    text = (
        f"🏺 *{BUSINESS_NAME} - Invoice Generated*\n"
        f"\n"
        f"Dear {_clean(request.customer_name)},\n"
        f"\n"
        f"Thank you for choosing our handcrafted pottery!\n"
        f"\n"
        f"*Order Details:*\n"
        f"📋 Order Number: {_clean(request.order_number)}\n"
        f"💰 Amount: ₹{format_amount(request.total_amount)}\n"
        f"\n"
        f"*View & Download Your Invoice:*\n"
        f"{bill_link}\n"
        f"\n"
        f"Your beautiful pottery pieces are ready! 🎨\n"
        f"\n"
        f"*Contact & Location:*\n"
        f"📞 {BUSINESS_PHONES}\n"
        f"🏪 {BUSINESS_LOCATION}\n"
        f"📧 {BUSINESS_EMAIL}\n"
        f"\n"
        f"*{BUSINESS_NAME} Team*\n"
        f"_Handcrafted with Love 🎨_"
    )
    return TextMessage(text=text)


def compose_invoice_template(
    request: NotificationRequest,
    bill_link: str,
    template_id: str,
    language: str = "en",
) -> TemplateMessage:
    """
    Build the positional arguments for the registered invoice template.

    The order {customer name, order number, amount, invoice link} is fixed by
    the template registered with the provider. Changing the count or order
    does not fail at the provider; the customer receives a garbled message.

    Args:
        request: The invoice notification request
        bill_link: Resolved public invoice URL
        template_id: Provider template identifier
        language: Template language code

    Returns:
        TemplateMessage with exactly four arguments
    """
    args = (
        _clean(request.customer_name),
        _clean(request.order_number),
        format_amount(request.total_amount),
        bill_link,
    )
    return TemplateMessage(template_id=template_id, args=args, language=language)


def compose_invoice_sms(request: NotificationRequest, bill_link: str) -> TextMessage:
    """
    Render the plain SMS invoice body used when WhatsApp delivery fails.

    Kept short and free of emoji and markdown for SMS handsets.
    """
    text = (
        f"{BUSINESS_NAME} Invoice\n"
        f"Dear {_clean(request.customer_name)},\n"
        f"Order: {_clean(request.order_number)}\n"
        f"Amount: Rs.{format_amount(request.total_amount)}\n"
        f"Invoice: {bill_link}\n"
        f"Contact: {BUSINESS_PRIMARY_PHONE}\n"
        f"- {BUSINESS_NAME} Team"
    )
    return TextMessage(text=text)


def compose_advance_payment_text(
    request: NotificationRequest, bill_link: str
) -> TextMessage:
    """
    Render the advance-payment acknowledgement.

    The advance and balance lines are included only when the caller supplied
    those amounts.
    """
    lines = [
        f"Dear {_clean(request.customer_name)},",
        "",
        f"🏺 Advance payment received for {BUSINESS_NAME}!",
        "",
        f"Order: {_clean(request.order_number)}",
    ]
    if request.advance_amount is not None:
        lines.append(f"Advance Paid: ₹{format_amount(request.advance_amount)}")
    if request.remaining_amount is not None:
        lines.append(f"Balance Due: ₹{format_amount(request.remaining_amount)}")
    lines.extend(
        [
            "",
            "View & Download Invoice:",
            bill_link,
            "",
            f"Thank you for choosing {BUSINESS_NAME} handcrafted pottery!",
            "",
            f"Contact: {BUSINESS_PRIMARY_PHONE}",
            f"- {BUSINESS_NAME} Team",
        ]
    )
    return TextMessage(text="\n".join(lines))


def compose_payment_completion_text(
    request: NotificationRequest, bill_link: str
) -> TextMessage:
    """
    Render the payment-completed message.

    Raises:
        InvalidAmount: If final_amount is missing or not strictly positive
    """
    final_amount = ensure_positive_amount("finalAmount", request.final_amount)
    text = (
        f"🏺 Dear {_clean(request.customer_name)},\n"
        f"\n"
        f"🎉 Payment completed for {BUSINESS_NAME} order!\n"
        f"\n"
        f"Order: {_clean(request.order_number)}\n"
        f"Final Payment: ₹{format_amount(final_amount)}\n"
        f"Status: PAID IN FULL ✅\n"
        f"\n"
        f"Download Final Invoice: {bill_link}\n"
        f"\n"
        f"Thank you for your business!\n"
        f"- {BUSINESS_NAME} Team"
    )
    return TextMessage(text=text)
