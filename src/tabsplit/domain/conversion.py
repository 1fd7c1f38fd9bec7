"""Currency conversion with snapshotted rates.

A transaction is converted with exactly one rate, captured when it is saved.
The total and every share go through the same rate; fetching a rate per
share, or using different rates for the total and the shares, would make the
converted shares disagree with the converted total.
"""

from datetime import datetime, UTC
from typing import Optional, Sequence

from tabsplit.domain.entities import (
    ExchangeRateQuote,
    ExpenseDraft,
    ExpenseRecord,
    Share,
    SplitMethod,
)
from tabsplit.domain.money import SCALE, scale_by_rate


def apply_rate(amount_scaled: int, rate_scaled: int) -> int:
    """Convert a scaled amount with a scaled rate."""
    return scale_by_rate(amount_scaled, rate_scaled)


def same_currency_rate(currency_code: str, now: Optional[datetime] = None) -> ExchangeRateQuote:
    """Return the 1.0 quote for a currency converted into itself.

    This is a pure function: no cache tier or rate source is consulted.
    """
    code = currency_code.upper()
    return ExchangeRateQuote(
        base_currency_code=code,
        quote_currency_code=code,
        rate_scaled=SCALE,
        fetched_at=now if now is not None else datetime.now(UTC),
    )


def convert_shares(shares: Sequence[int], rate_scaled: int, total_in_main: int) -> list[int]:
    """Convert shares with one rate so they sum to the converted total.

    Each share is converted on its own; the per-share rounding residual is
    smaller than the number of shares and is corrected one unit at a time
    starting with the first share (skipping zero shares when removing units).
    """
    converted = [apply_rate(share, rate_scaled) for share in shares]
    residual = total_in_main - sum(converted)
    step = 1 if residual > 0 else -1
    eligible = [index for index, share in enumerate(shares) if share != 0]

    while residual:
        progressed = False
        for index in eligible:
            if residual == 0:
                break
            if step < 0 and converted[index] <= 0:
                continue
            converted[index] += step
            residual -= step
            progressed = True
        if not progressed:
            raise ArithmeticError("Converted shares cannot be reconciled with the total")
    return converted


def build_expense_record(
    draft: ExpenseDraft,
    total_scaled: int,
    allocation: Sequence[tuple[str, int]],
    quote: ExchangeRateQuote,
) -> ExpenseRecord:
    """Convert an allocated expense with one quote and build its record.

    Args:
        draft: The user's input
        total_scaled: Scaled total in the transaction currency
        allocation: (member_id, scaled share) pairs summing to the total
        quote: Rate snapshot from the transaction currency to the main currency

    Returns:
        ExpenseRecord ready for persistence
    """
    rate_scaled = quote.rate_scaled
    total_in_main = apply_rate(total_scaled, rate_scaled)
    shares_in_main = convert_shares(
        [amount for _, amount in allocation], rate_scaled, total_in_main
    )

    shares = tuple(
        Share(
            member_id=member_id,
            share_amount_scaled=amount,
            share_in_main_scaled=in_main,
        )
        for (member_id, amount), in_main in zip(allocation, shares_in_main)
    )

    return ExpenseRecord(
        group_id=draft.group_id,
        description=draft.description,
        date_time=draft.date_time if draft.date_time is not None else datetime.now(UTC),
        currency_code=draft.currency_code.upper(),
        main_currency_code=draft.main_currency_code.upper(),
        total_amount_scaled=total_scaled,
        exchange_rate_to_main_scaled=rate_scaled,
        rate_fetched_at=quote.fetched_at,
        total_in_main_scaled=total_in_main,
        payer_member_id=draft.payer_member_id,
        split_method=SplitMethod(draft.split_method),
        payment_type=draft.payment_type,
        shares=shares,
    )
