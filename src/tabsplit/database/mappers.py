"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, making it easy to change when
the database schema changes.
"""

from tabsplit.domain import entities as domain
from tabsplit.database.models import (
    ExchangeRate as ORMExchangeRate,
    Expense as ORMExpense,
    ExpenseShare as ORMExpenseShare,
)
from tabsplit.utils.timestamps import ensure_utc


def exchange_rate_to_domain(orm_rate: ORMExchangeRate) -> domain.ExchangeRateQuote:
    """Convert SQLAlchemy ExchangeRate model to domain ExchangeRateQuote."""
    return domain.ExchangeRateQuote(
        base_currency_code=orm_rate.base_currency_code,
        quote_currency_code=orm_rate.quote_currency_code,
        rate_scaled=int(orm_rate.rate_scaled),
        fetched_at=ensure_utc(orm_rate.fetched_at),
    )


def expense_share_to_domain(orm_share: ORMExpenseShare) -> domain.Share:
    """Convert SQLAlchemy ExpenseShare model to domain Share."""
    return domain.Share(
        member_id=orm_share.member_id,
        share_amount_scaled=int(orm_share.share_amount_scaled),
        share_in_main_scaled=int(orm_share.share_in_main_scaled),
    )


def expense_to_domain(orm_expense: ORMExpense) -> domain.ExpenseRecord:
    """Convert SQLAlchemy Expense model (with shares loaded) to domain ExpenseRecord."""
    return domain.ExpenseRecord(
        id=orm_expense.id,
        group_id=orm_expense.group_id,
        description=orm_expense.description,
        date_time=ensure_utc(orm_expense.date_time),
        currency_code=orm_expense.currency_code,
        main_currency_code=orm_expense.main_currency_code,
        total_amount_scaled=int(orm_expense.total_amount_scaled),
        exchange_rate_to_main_scaled=int(orm_expense.exchange_rate_to_main_scaled),
        rate_fetched_at=ensure_utc(orm_expense.rate_fetched_at),
        total_in_main_scaled=int(orm_expense.total_in_main_scaled),
        payer_member_id=orm_expense.payer_member_id,
        split_method=domain.SplitMethod(orm_expense.split_type),
        payment_type=domain.PaymentType(orm_expense.payment_type),
        shares=tuple(expense_share_to_domain(share) for share in orm_expense.shares),
    )


def shares_to_orm(record: domain.ExpenseRecord) -> list[ORMExpenseShare]:
    """Build SQLAlchemy ExpenseShare rows for a record, preserving share order."""
    return [
        ORMExpenseShare(
            member_id=share.member_id,
            position=position,
            share_amount_scaled=share.share_amount_scaled,
            share_in_main_scaled=share.share_in_main_scaled,
        )
        for position, share in enumerate(record.shares)
    ]


def apply_record_to_orm(record: domain.ExpenseRecord, orm_expense: ORMExpense) -> ORMExpense:
    """Copy a domain ExpenseRecord's columns onto a SQLAlchemy Expense."""
    orm_expense.group_id = record.group_id
    orm_expense.description = record.description
    orm_expense.date_time = record.date_time
    orm_expense.currency_code = record.currency_code
    orm_expense.main_currency_code = record.main_currency_code
    orm_expense.total_amount_scaled = record.total_amount_scaled
    orm_expense.payer_member_id = record.payer_member_id
    orm_expense.exchange_rate_to_main_scaled = record.exchange_rate_to_main_scaled
    orm_expense.rate_fetched_at = record.rate_fetched_at
    orm_expense.total_in_main_scaled = record.total_in_main_scaled
    orm_expense.split_type = record.split_method.value
    orm_expense.payment_type = record.payment_type.value
    return orm_expense
