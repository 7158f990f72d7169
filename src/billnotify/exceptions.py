"""
Custom exception classes for BillNotify.

This module defines the validation-class exceptions raised before any
provider is contacted. The dispatcher converts each of them into a terminal
DispatchResult; provider-class failures are values, not exceptions.
"""

from typing import Sequence


class InvalidPhoneNumber(ValueError):
    """
    Exception raised when a phone number is not a valid Indian mobile number.

    Attributes:
        phone_number: The raw phone number that failed validation
        message: Explanation of the error
    """

    def __init__(
        self,
        phone_number: str | None,
        message: str = "Invalid Indian mobile number. Must be 10 digits starting with 6, 7, 8, or 9",
    ) -> None:
        """
        Initialize InvalidPhoneNumber exception.

        Args:
            phone_number: The raw phone number that failed validation
            message: Custom error message (optional)
        """
        self.phone_number = phone_number
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the exception."""
        return f"InvalidPhoneNumber(phone_number={self.phone_number!r}, message={self.message})"


class MissingFields(ValueError):
    """
    Exception raised when required request fields are absent or blank.

    Attributes:
        fields: Names of the missing fields, in request order
        message: Explanation of the error
    """

    def __init__(self, fields: Sequence[str], message: str = "Missing required fields") -> None:
        self.fields = list(fields)
        self.message = f"{message}: {', '.join(self.fields)}"
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the exception."""
        return f"MissingFields(fields={self.fields}, message={self.message})"


class InvalidAmount(ValueError):
    """
    Exception raised when a monetary amount is missing, negative or zero
    where a strictly positive value is required.

    Attributes:
        field: Name of the offending amount field
        amount: The rejected value
        message: Explanation of the error
    """

    def __init__(self, field: str, amount: object, message: str = "Invalid amount") -> None:
        self.field = field
        self.amount = amount
        self.message = f"{message} for {field}: {amount}"
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the exception."""
        return f"InvalidAmount(field={self.field}, amount={self.amount}, message={self.message})"


class MessageTooLong(ValueError):
    """
    Exception raised when a composed message exceeds its channel's hard limit.

    Attributes:
        channel: The channel whose limit was exceeded
        length: Rendered length of the message
        max_length: The channel limit
    """

    def __init__(self, channel: str, length: int, max_length: int) -> None:
        self.channel = channel
        self.length = length
        self.max_length = max_length
        self.message = (
            f"Message too long for {channel}: {length} characters (limit {max_length})"
        )
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the exception."""
        return (
            f"MessageTooLong(channel={self.channel}, length={self.length}, "
            f"max_length={self.max_length})"
        )
