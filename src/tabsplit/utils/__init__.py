"""Utility functions for tabsplit."""

from tabsplit.utils.date_parser import parse_expense_datetime
from tabsplit.utils.amount_parser import parse_amount, parse_scaled_amount
from tabsplit.utils.timestamps import parse_timestamp, format_timestamp, ensure_utc

__all__ = [
    "parse_expense_datetime",
    "parse_amount",
    "parse_scaled_amount",
    "parse_timestamp",
    "format_timestamp",
    "ensure_utc",
]
