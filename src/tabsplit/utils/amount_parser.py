"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

from tabsplit.domain.errors import InvalidAmount, invalid_amount
from tabsplit.domain.money import to_scaled


def parse_amount(amount_str: str) -> Decimal:
    """Parse a user-entered amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45", "€123.45"
    - "1,234.56" (comma is a thousands separator)
    - "-123.45"

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        InvalidAmount: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise InvalidAmount("Empty amount string")

    # Remove whitespace
    cleaned = amount_str.strip()

    # Remove currency symbols
    cleaned = re.sub(r"[$€£¥]", "", cleaned)

    # Remove thousands separators
    cleaned = cleaned.replace(",", "").strip()

    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise InvalidAmount(invalid_amount(amount_str, "not a number")) from e
    if not amount.is_finite():
        raise InvalidAmount(invalid_amount(amount_str, "not a finite number"))
    return amount


def parse_scaled_amount(amount_str: str, allow_negative: bool = False) -> int:
    """Parse a user-entered amount string straight into scaled units."""
    return to_scaled(parse_amount(amount_str), allow_negative=allow_negative)
