"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
from typing import Any
import re


def parse_amount(value: Any) -> Decimal:
    """Parse an amount into a Decimal without changing its units.

    Handles numbers as sent by the provider (int, float, Decimal) and
    strings in various formats:
    - "123.45"
    - "£123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        value: Amount value

    Returns:
        Decimal amount

    Raises:
        ValueError: If the amount cannot be parsed
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Invalid amount {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        amount_str = str(value).strip()
        if not amount_str:
            raise ValueError("Empty amount string")

        # Handle parentheses notation (negative)
        is_negative = False
        if amount_str.startswith("(") and amount_str.endswith(")"):
            is_negative = True
            amount_str = amount_str[1:-1]

        # Remove currency symbols and thousands separators
        amount_str = re.sub(r"[$€£¥]", "", amount_str)
        amount_str = amount_str.replace(",", "").strip()

        try:
            amount = Decimal(amount_str)
        except InvalidOperation:
            raise ValueError(f"Could not parse amount '{value}'")
        if is_negative:
            amount = -amount

    if not amount.is_finite():
        raise ValueError(f"Invalid amount {value!r}")
    return amount
