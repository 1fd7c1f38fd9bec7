"""Abstract storage interfaces consumed by the tabsplit core."""

from abc import ABC, abstractmethod
from typing import Optional

# Import entities directly to avoid circular import through domain/__init__.py
from tabsplit.domain.entities import ExchangeRatePair, ExchangeRateQuote, ExpenseRecord


class RateStore(ABC):
    """Durable, shared exchange-rate cache.

    Implementations raise ``CacheReadFailed`` / ``CacheWriteFailed`` for any
    backend failure so callers can degrade instead of crashing.
    """

    @abstractmethod
    async def get_rate(self, base_currency: str, quote_currency: str) -> Optional[ExchangeRateQuote]:
        """Get the most recent stored quote for a pair, or None."""
        pass

    @abstractmethod
    async def upsert_rate(self, quote: ExchangeRateQuote) -> None:
        """Insert or update the quote for its pair.

        A stored quote with a later ``fetched_at`` is never overwritten.
        """
        pass


class LocalStore(ABC):
    """Simple key to serialized-value store local to this process or device."""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """Get the value stored under key, or None."""
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        pass


class ExpenseStore(ABC):
    """Persistence collaborator for computed expense records."""

    @abstractmethod
    async def initialize_schema(self) -> None:
        """Initialize storage schema (create tables)."""
        pass

    @abstractmethod
    async def save_expense(self, record: ExpenseRecord) -> str:
        """Store a record and its shares atomically. Returns expense ID."""
        pass

    @abstractmethod
    async def get_expense(self, expense_id: str) -> Optional[ExpenseRecord]:
        """Get expense by ID."""
        pass

    @abstractmethod
    async def replace_expense(self, expense_id: str, record: ExpenseRecord) -> None:
        """Replace an expense; its old shares are discarded atomically."""
        pass

    @abstractmethod
    async def list_expenses(self, group_id: str) -> list[ExpenseRecord]:
        """List expenses of a group, oldest first."""
        pass

    @abstractmethod
    async def list_currency_pairs(self) -> list[ExchangeRatePair]:
        """List distinct (expense currency, main currency) pairs in use."""
        pass
