"""Expense domain service."""

import asyncio
import dataclasses
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from tabsplit.database.base import ExpenseStore
from tabsplit.domain.conversion import build_expense_record
from tabsplit.domain.entities import (
    ExpenseDraft,
    ExpenseRecord,
    PaymentType,
    SplitMethod,
)
from tabsplit.domain.errors import (
    InvalidAmount,
    NotFoundError,
    RateUnavailable,
    StoreError,
    ValidationError,
    expense_not_found,
    invalid_amount,
)
from tabsplit.domain.exchange_rate import ExchangeRateCache, normalize_currency_code
from tabsplit.domain.money import to_scaled
from tabsplit.domain.split import allocate_shares

logger = logging.getLogger(__name__)


class ExpenseService:
    """Service for recording group expenses and transfers."""

    def __init__(self, rate_cache: ExchangeRateCache, store: ExpenseStore):
        """Initialize expense service.

        Args:
            rate_cache: Process-wide exchange-rate cache
            store: Expense persistence
        """
        self.rate_cache = rate_cache
        self.store = store

    def _scale_total(self, draft: ExpenseDraft) -> int:
        total = to_scaled(draft.amount)
        if total == 0:
            raise InvalidAmount(invalid_amount(draft.amount, "amount must be greater than zero"))
        return total

    def _validate_draft(self, draft: ExpenseDraft) -> None:
        if not draft.group_id:
            raise ValidationError("An expense needs a group")
        if not draft.payer_member_id:
            raise ValidationError("An expense needs a payer")
        if not draft.currency_code or not draft.main_currency_code:
            raise ValidationError("An expense needs a currency and a main currency")

    def _allocate(self, draft: ExpenseDraft, total: int) -> list[tuple[str, int]]:
        return allocate_shares(
            draft.split_method,
            total,
            draft.member_ids,
            percentages=draft.percentages,
            exact_amounts=draft.exact_amounts,
            normalize=draft.normalize,
        )

    async def prepare_expense(self, draft: ExpenseDraft) -> ExpenseRecord:
        """Compute an expense record without saving it.

        The split is validated before any rate is requested, so invalid input
        never costs a network call.

        Args:
            draft: User input

        Returns:
            ExpenseRecord with shares in both currencies

        Raises:
            ValidationError: If the amount or the split is invalid
            RateUnavailable: If no rate exists for the currency pair
        """
        self._validate_draft(draft)
        total = self._scale_total(draft)
        allocation = self._allocate(draft, total)
        quote = await self.rate_cache.require_exchange_rate(
            draft.currency_code, draft.main_currency_code
        )
        return build_expense_record(draft, total, allocation, quote)

    async def create_expense(self, draft: ExpenseDraft) -> str:
        """Compute and save an expense.

        Returns:
            Expense ID
        """
        record = await self.prepare_expense(draft)
        expense_id = await self.store.save_expense(record)
        logger.info(
            "Recorded expense %s: %s %s (rate %s)",
            expense_id,
            record.total_amount_scaled,
            record.currency_code,
            record.exchange_rate_to_main_scaled,
        )
        return expense_id

    async def create_transfer(
        self,
        group_id: str,
        from_member_id: str,
        to_member_id: str,
        amount: Union[Decimal, str, int, float],
        currency_code: str,
        main_currency_code: str,
        description: Optional[str] = None,
        date_time: Optional[datetime] = None,
    ) -> str:
        """Record a money transfer between two members.

        A transfer is a payment by ``from_member_id`` whose single share
        belongs to ``to_member_id``.

        Returns:
            Expense ID

        Raises:
            ValidationError: If a member transfers to themselves
        """
        if from_member_id == to_member_id:
            raise ValidationError("A transfer needs two different members")
        draft = ExpenseDraft(
            group_id=group_id,
            payer_member_id=from_member_id,
            currency_code=currency_code,
            main_currency_code=main_currency_code,
            amount=amount,
            member_ids=[to_member_id],
            split_method=SplitMethod.EQUAL,
            description=description,
            date_time=date_time,
            payment_type=PaymentType.TRANSFER,
        )
        return await self.create_expense(draft)

    async def get_expense(self, expense_id: str) -> ExpenseRecord:
        """Get expense by ID.

        Raises:
            NotFoundError: If the expense does not exist
        """
        record = await self.store.get_expense(expense_id)
        if record is None:
            raise NotFoundError(expense_not_found(expense_id))
        return record

    async def prepare_edit(self, original: ExpenseRecord, draft: ExpenseDraft) -> ExpenseRecord:
        """Recompute an edited expense.

        When neither currency changed the stored rate snapshot is reused and
        no rate lookup happens. Otherwise exactly one new rate is obtained.
        Shares are always recomputed from scratch.

        Raises:
            ValidationError: If the amount or the split is invalid
            RateUnavailable: If a new rate is needed and none exists
        """
        self._validate_draft(draft)
        total = self._scale_total(draft)
        allocation = self._allocate(draft, total)

        main_currency = normalize_currency_code(draft.main_currency_code)
        if main_currency == original.main_currency_code:
            quote = await self.rate_cache.resolve_rate_for_edit(
                original.currency_code,
                draft.currency_code,
                main_currency,
                original.exchange_rate_to_main_scaled,
                original.rate_fetched_at,
            )
        else:
            quote = await self.rate_cache.get_exchange_rate(draft.currency_code, main_currency)
        if quote is None:
            raise RateUnavailable(normalize_currency_code(draft.currency_code), main_currency)

        draft = dataclasses.replace(
            draft, date_time=draft.date_time if draft.date_time is not None else original.date_time
        )
        record = build_expense_record(draft, total, allocation, quote)
        return dataclasses.replace(record, id=original.id)

    async def update_expense(self, expense_id: str, draft: ExpenseDraft) -> ExpenseRecord:
        """Edit and save an existing expense.

        Returns:
            The new record

        Raises:
            NotFoundError: If the expense does not exist
        """
        original = await self.get_expense(expense_id)
        record = await self.prepare_edit(original, draft)
        await self.store.replace_expense(expense_id, record)
        logger.info("Updated expense %s", expense_id)
        return record

    async def list_expenses(self, group_id: str) -> list[ExpenseRecord]:
        """List expenses and transfers of a group, oldest first."""
        return await self.store.list_expenses(group_id)

    async def prefetch_known_rates(self) -> Optional[asyncio.Task]:
        """Warm the rate cache with every currency pair already in use.

        Returns:
            The background prefetch task, or None if the pairs could not be
            read or there is nothing to prefetch
        """
        try:
            pairs = await self.store.list_currency_pairs()
        except StoreError as e:
            logger.warning("Could not read currency pairs for prefetch: %s", e)
            return None
        if not pairs:
            return None
        logger.debug("Prefetching %d currency pair(s)", len(pairs))
        return self.rate_cache.prefetch_exchange_rates(pairs)
