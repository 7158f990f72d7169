"""
Phone number validation and normalization for Indian mobile numbers.

Recipients are validated with a fixed rule rather than full numbering-plan
metadata: a leading ``+91`` is stripped, then every non-digit character, and
the remainder must be exactly 10 digits starting with 6, 7, 8 or 9. Nothing
else is coerced. Once a number is valid, Google's libphonenumbers (via the
phonenumbers package) renders it in E.164 for display.

Supported input formats:
- Bare 10-digit numbers (e.g., 9876543210)
- With country code and separators (e.g., +91 98765 43210, +91-98765-43210)
"""

import re

import phonenumbers

from ..exceptions import InvalidPhoneNumber
from ..models import NormalizedPhoneNumber


# Leading country code stripped before digit extraction
COUNTRY_CODE_PREFIX = re.compile(r"^\+91")

# Ten digits, first digit 6-9
INDIAN_MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")

DEFAULT_REGION = "IN"


def clean_phone_number(phone: str | None) -> str:
    """
    Strip a leading +91 and every non-digit character.

    Args:
        phone: The raw phone number string

    Returns:
        The remaining digits (possibly empty)

    Examples:
        >>> clean_phone_number("+91 98765 43210")
        '9876543210'

        >>> clean_phone_number("98765-43210")
        '9876543210'
    """
    if not phone:
        return ""
    return re.sub(r"\D", "", COUNTRY_CODE_PREFIX.sub("", str(phone)))


def validate_phone_number(phone: str | None) -> NormalizedPhoneNumber:
    """
    Validate a raw phone number as a 10-digit Indian mobile number.

    Args:
        phone: The raw, untrusted phone number string

    Returns:
        The normalized phone number

    Raises:
        InvalidPhoneNumber: If the cleaned number is not exactly 10 digits
                            starting with 6, 7, 8 or 9

    Examples:
        >>> validate_phone_number("+91 98765 43210").digits
        '9876543210'

        >>> validate_phone_number("12345")
        Traceback (most recent call last):
        ...
        billnotify.exceptions.InvalidPhoneNumber: ...
    """
    cleaned = clean_phone_number(phone)

    if not INDIAN_MOBILE_PATTERN.match(cleaned):
        raise InvalidPhoneNumber(phone)

    return NormalizedPhoneNumber(digits=cleaned)


def is_valid_phone_number(phone: str | None) -> bool:
    """Return True if validate_phone_number would accept the input."""
    try:
        validate_phone_number(phone)
    except InvalidPhoneNumber:
        return False
    return True


def format_e164(number: NormalizedPhoneNumber) -> str:
    """
    Render a validated number in E.164 format (e.g., +919876543210).

    Args:
        number: A number already accepted by validate_phone_number

    Returns:
        The E.164 representation with + prefix
    """
    parsed = phonenumbers.parse(number.digits, DEFAULT_REGION)
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def mask_phone_number(phone: str | NormalizedPhoneNumber | None) -> str:
    """
    Mask a phone number for logging, keeping the first five digits.

    Examples:
        >>> mask_phone_number("9876543210")
        '98765*****'
    """
    digits = clean_phone_number(str(phone)) if phone is not None else ""
    if len(digits) <= 5:
        return "*" * len(digits)
    return f"{digits[:5]}{'*' * (len(digits) - 5)}"
