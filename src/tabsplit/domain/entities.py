"""Domain model entities for tabsplit.

These are pure data classes representing business concepts, independent of
database schema and of the rate source wire format. Every monetary field is a
scaled integer (see ``tabsplit.domain.money``).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence, Union


class SplitMethod(str, Enum):
    """Policy used to divide a total among participants."""

    EQUAL = "equal"
    PERCENTAGE = "percentage"
    EXACT = "exact"


class PaymentType(str, Enum):
    """Kind of group payment."""

    EXPENSE = "expense"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class ExchangeRatePair:
    """Ordered currency pair (rate is quote currency per base currency)."""

    base_currency: str
    quote_currency: str


@dataclass(frozen=True)
class ExchangeRateQuote:
    """Exchange rate snapshot.

    ``rate_scaled`` is the amount of quote currency per one unit of base
    currency, at the same scale as money. ``fetched_at`` is timezone-aware UTC.
    """

    base_currency_code: str
    quote_currency_code: str
    rate_scaled: int
    fetched_at: datetime

    @property
    def pair(self) -> ExchangeRatePair:
        return ExchangeRatePair(self.base_currency_code, self.quote_currency_code)


@dataclass(frozen=True)
class Share:
    """One member's part of an expense, in both currencies."""

    member_id: str
    share_amount_scaled: int
    share_in_main_scaled: int


@dataclass(frozen=True)
class ExpenseDraft:
    """User input for creating or editing an expense or transfer.

    ``amount`` is the raw user-entered total; it is validated and scaled when
    the draft is prepared. ``percentages`` and ``exact_amounts`` are required
    for the corresponding split methods and are given in ``member_ids`` order.
    """

    group_id: str
    payer_member_id: str
    currency_code: str
    main_currency_code: str
    amount: Union[Decimal, str, int, float]
    member_ids: Sequence[str]
    split_method: SplitMethod = SplitMethod.EQUAL
    percentages: Optional[Sequence[Union[Decimal, str, int, float]]] = None
    exact_amounts: Optional[Sequence[Union[Decimal, str, int, float]]] = None
    normalize: bool = False
    description: Optional[str] = None
    date_time: Optional[datetime] = None
    payment_type: PaymentType = PaymentType.EXPENSE


@dataclass(frozen=True)
class ExpenseRecord:
    """Fully computed expense, ready for atomic persistence.

    The rate is a snapshot: every share was converted with
    ``exchange_rate_to_main_scaled`` and the shares in the main currency sum
    to ``total_in_main_scaled``.
    """

    group_id: str
    description: Optional[str]
    date_time: datetime
    currency_code: str
    main_currency_code: str
    total_amount_scaled: int
    exchange_rate_to_main_scaled: int
    rate_fetched_at: datetime
    total_in_main_scaled: int
    payer_member_id: str
    split_method: SplitMethod
    payment_type: PaymentType
    shares: tuple[Share, ...] = field(default_factory=tuple)
    id: Optional[str] = None


@dataclass(frozen=True)
class Settlement:
    """Payment that settles part of a debt in the main currency."""

    from_member_id: str
    to_member_id: str
    amount_scaled: int
