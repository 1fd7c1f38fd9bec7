"""Storage layer for tabsplit application."""

from tabsplit.database.base import ExpenseStore, LocalStore, RateStore
from tabsplit.database.factories import create_local_store, create_sqlite_database

__all__ = [
    "ExpenseStore",
    "LocalStore",
    "RateStore",
    "create_local_store",
    "create_sqlite_database",
]
