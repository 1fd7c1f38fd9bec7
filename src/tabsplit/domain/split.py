"""Split allocation.

Turns a scaled total into per-participant scaled shares. Every policy
guarantees the shares add up to the total exactly. Leftover units are handed
out one at a time to participants in input order, so earlier participants
absorb the extra units. That ordering is part of the contract and must not be
randomised or sorted.
"""

from decimal import Decimal
from typing import Optional, Sequence, Union

from tabsplit.domain.entities import SplitMethod
from tabsplit.domain.errors import (
    InvalidAmount,
    InvalidParticipantCount,
    SplitValidationError,
    exact_amounts_do_not_sum,
    invalid_amount,
    length_mismatch,
    percentages_do_not_sum,
)
from tabsplit.domain.money import SCALE, divide_rounded, from_scaled, sum_scaled, to_scaled

FULL_PERCENT = 100 * SCALE

# Percentages may miss 100 by at most 0.01 (scaled).
PERCENT_TOLERANCE = to_scaled("0.01")

PercentInput = Union[Decimal, str, int, float]


def _check_total(total: int) -> None:
    if total < 0:
        raise InvalidAmount(invalid_amount(total, "split totals cannot be negative"))


def _distribute_units(shares: list[int], units: int, eligible: Sequence[int]) -> list[int]:
    """Add ``units`` one at a time to the ``eligible`` indexes in input order."""
    if not eligible:
        raise SplitValidationError(f"Cannot distribute {units} remaining units")
    remaining = units
    while remaining:
        for index in eligible:
            if remaining == 0:
                break
            shares[index] += 1
            remaining -= 1
    return shares


def equal_split(total: int, count: int) -> list[int]:
    """Split a total evenly; the first ``total % count`` participants get one extra unit.

    Args:
        total: Scaled total (non-negative)
        count: Number of participants

    Returns:
        List of scaled shares in participant order

    Raises:
        InvalidParticipantCount: If count is zero or negative
        InvalidAmount: If total is negative
    """
    if count <= 0:
        raise InvalidParticipantCount("A split needs at least one participant")
    _check_total(total)

    base_share, remainder = divmod(total, count)
    return [base_share + 1 if index < remainder else base_share for index in range(count)]


def percentage_weights(percentages: Sequence[PercentInput]) -> list[int]:
    """Validate percentages and return them scaled (100% == ``FULL_PERCENT``).

    Raises:
        SplitValidationError: If a percentage is outside 0..100 or the
            percentages do not sum to 100 within ``PERCENT_TOLERANCE``
    """
    weights = []
    for index, percentage in enumerate(percentages):
        weight = to_scaled(percentage, allow_negative=True)
        if weight < 0 or weight > FULL_PERCENT:
            raise SplitValidationError(
                f"percentages[{index}] must be between 0 and 100, got {percentage}"
            )
        weights.append(weight)

    weight_total = sum(weights)
    if abs(weight_total - FULL_PERCENT) > PERCENT_TOLERANCE:
        raise SplitValidationError(percentages_do_not_sum(from_scaled(weight_total).normalize()))
    return weights


def percentage_split(total: int, percentages: Sequence[PercentInput]) -> list[int]:
    """Split a total by percentage.

    Each share is ``total * percentage / 100`` truncated, so the leftover is
    never negative and is smaller than the participant count. Percentages that
    are within tolerance of 100 but not exact act as weights over their own
    sum. Leftover units go one at a time to the first participants with a
    non-zero percentage, as in :func:`equal_split`.
    """
    if not percentages:
        raise InvalidParticipantCount("A split needs at least one participant")
    _check_total(total)

    weights = percentage_weights(percentages)
    weight_total = sum(weights)
    shares = [total * weight // weight_total for weight in weights]

    remainder = total - sum(shares)
    if remainder:
        receivers = [index for index, weight in enumerate(weights) if weight > 0]
        _distribute_units(shares, remainder, receivers)
    return shares


def percentages_from_shares(shares: Sequence[int], total: int) -> list[Decimal]:
    """Recover the percentage of ``total`` each share stands for.

    Percentages are rounded to four decimals. Their sum stays within
    ``PERCENT_TOLERANCE`` of 100 for any realistic participant count.
    """
    if total <= 0:
        raise InvalidAmount(invalid_amount(from_scaled(total), "must be greater than zero"))
    return [from_scaled(divide_rounded(share * FULL_PERCENT, total)) for share in shares]


def normalize_exact_split(amounts: Sequence[int], total: int) -> list[int]:
    """Rescale exact amounts proportionally so they sum to ``total``.

    Each amount is scaled down (floor) by ``total / sum(amounts)``; the
    remaining units go to the first participants with a non-zero amount.

    Raises:
        InvalidAmount: If an amount or the total is negative
        SplitValidationError: If every amount is zero but the total is not
    """
    _check_total(total)
    for amount in amounts:
        if amount < 0:
            raise InvalidAmount(invalid_amount(from_scaled(amount), "cannot be negative"))

    current_total = sum(amounts)
    if current_total == total:
        return list(amounts)
    if current_total == 0:
        raise SplitValidationError("Cannot normalize amounts that are all zero")

    shares = [amount * total // current_total for amount in amounts]
    remainder = total - sum(shares)
    if remainder:
        receivers = [index for index, amount in enumerate(amounts) if amount > 0]
        _distribute_units(shares, remainder, receivers)
    return shares


def exact_split(total: int, amounts: Sequence[int], normalize: bool = False) -> list[int]:
    """Accept explicit per-participant amounts.

    Amounts that already sum to the total are returned unchanged. Otherwise
    the split fails unless ``normalize`` is requested explicitly.

    Raises:
        InvalidParticipantCount: If no amounts are given
        SplitValidationError: If the amounts do not sum to the total and
            normalization was not requested
    """
    if not amounts:
        raise InvalidParticipantCount("A split needs at least one participant")
    _check_total(total)

    if normalize:
        return normalize_exact_split(amounts, total)

    for amount in amounts:
        if amount < 0:
            raise InvalidAmount(invalid_amount(from_scaled(amount), "cannot be negative"))

    shares_total = sum_scaled(amounts)
    if shares_total != total:
        raise SplitValidationError(exact_amounts_do_not_sum(shares_total, total))
    return list(amounts)


def allocate_shares(
    method: Union[SplitMethod, str],
    total: int,
    member_ids: Sequence[str],
    percentages: Optional[Sequence[PercentInput]] = None,
    exact_amounts: Optional[Sequence[PercentInput]] = None,
    normalize: bool = False,
) -> list[tuple[str, int]]:
    """Allocate a total among members using the given split method.

    Args:
        method: Split method
        total: Scaled total in the transaction currency
        member_ids: Participants, in the order that decides remainder units
        percentages: Percentages per member (percentage split)
        exact_amounts: Decimal amounts per member (exact split)
        normalize: Rescale exact amounts that do not sum to the total

    Returns:
        List of (member_id, scaled share) pairs in member order
    """
    split_method = SplitMethod(method)
    members = list(member_ids)
    if not members:
        raise InvalidParticipantCount("A split needs at least one participant")
    if len(set(members)) != len(members):
        raise SplitValidationError("Each member can only appear once in a split")

    if split_method == SplitMethod.EQUAL:
        shares = equal_split(total, len(members))
    elif split_method == SplitMethod.PERCENTAGE:
        if percentages is None or len(percentages) != len(members):
            got = 0 if percentages is None else len(percentages)
            raise SplitValidationError(length_mismatch("percentages", got, len(members)))
        shares = percentage_split(total, percentages)
    else:
        if exact_amounts is None or len(exact_amounts) != len(members):
            got = 0 if exact_amounts is None else len(exact_amounts)
            raise SplitValidationError(length_mismatch("amounts", got, len(members)))
        scaled_amounts = [to_scaled(amount) for amount in exact_amounts]
        shares = exact_split(total, scaled_amounts, normalize=normalize)

    return list(zip(members, shares))
