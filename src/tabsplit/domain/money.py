"""Fixed-point money primitives.

Every monetary value is an ``int`` holding the amount multiplied by
``SCALE`` (four decimal digits). Exchange rates use the same scale, so a rate
of 1.0 is ``SCALE``. Nothing in this module performs I/O.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Union

from tabsplit.domain.errors import InvalidAmount, invalid_amount

SCALE = 10_000

# Largest magnitude the application supports, in scaled units.
MAX_SCALED = 10**15

AmountInput = Union[Decimal, str, int, float]

_TWO_PLACES = Decimal("0.01")


def _to_decimal(value: AmountInput) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary value")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # repr() gives the shortest string that round-trips, e.g. 0.1 -> "0.1"
        return Decimal(repr(value))
    if isinstance(value, int):
        return Decimal(value)
    return Decimal(value.strip())


def to_scaled(value: AmountInput, allow_negative: bool = False) -> int:
    """Convert a decimal amount to its scaled integer representation.

    The value is multiplied by ``SCALE`` and rounded to the nearest integer,
    half away from zero.

    Args:
        value: Amount as Decimal, str, int or float
        allow_negative: Whether negative amounts are acceptable here

    Returns:
        Scaled integer amount

    Raises:
        InvalidAmount: If the value is not a finite number, is negative while
            negatives are disallowed, or exceeds the supported magnitude
    """
    try:
        amount = _to_decimal(value)
    except (InvalidOperation, TypeError, AttributeError) as exc:
        raise InvalidAmount(invalid_amount(value, "not a number")) from exc

    if not amount.is_finite():
        raise InvalidAmount(invalid_amount(value, "not a finite number"))
    if amount < 0 and not allow_negative:
        raise InvalidAmount(invalid_amount(value, "cannot be negative"))

    if abs(amount) * SCALE > MAX_SCALED:
        raise InvalidAmount(invalid_amount(value, "exceeds the supported range"))

    scaled = int((amount * SCALE).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    if abs(scaled) > MAX_SCALED:
        raise InvalidAmount(invalid_amount(value, "exceeds the supported range"))
    return scaled


def from_scaled(scaled: int) -> Decimal:
    """Return the exact decimal value of a scaled amount."""
    return Decimal(scaled) / SCALE


def format_scaled(scaled: int, currency_symbol: str = "") -> str:
    """Format a scaled amount with two decimals (half away from zero)."""
    text = str(from_scaled(scaled).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))
    return f"{currency_symbol}{text}" if currency_symbol else text


def format_rate(rate_scaled: int) -> str:
    """Format a scaled rate with all four decimals."""
    return str(from_scaled(rate_scaled).quantize(Decimal("0.0001")))


def sum_scaled(amounts: Iterable[int]) -> int:
    """Sum scaled amounts exactly.

    Raises:
        OverflowError: If the result leaves the supported magnitude range.
            This is a programming error, not a recoverable condition.
    """
    total = sum(amounts, 0)
    if abs(total) > MAX_SCALED:
        raise OverflowError(f"Scaled sum {total} exceeds supported magnitude {MAX_SCALED}")
    return total


def divide_rounded(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero."""
    if denominator == 0:
        raise ZeroDivisionError("division by zero")
    if denominator < 0:
        numerator, denominator = -numerator, -denominator
    quotient, remainder = divmod(abs(numerator), denominator)
    if 2 * remainder >= denominator:
        quotient += 1
    return quotient if numerator >= 0 else -quotient


def scale_by_rate(amount: int, rate_scaled: int) -> int:
    """Multiply a scaled amount by a scaled rate.

    Computes ``round(amount * rate_scaled / SCALE)`` on exact integers and
    rounds once, at the end, half away from zero.
    """
    return divide_rounded(amount * rate_scaled, SCALE)
