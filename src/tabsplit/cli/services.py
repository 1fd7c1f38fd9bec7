"""Per-invocation wiring of storage, rate source and services."""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from tabsplit.database.factories import create_local_store, create_sqlite_database
from tabsplit.database.local_store import SQLAlchemyLocalStore
from tabsplit.database.sqlalchemy_db import SQLAlchemyDatabase
from tabsplit.domain.exchange_rate import ExchangeRateCache
from tabsplit.domain.expense import ExpenseService
from tabsplit.sources.base import RateSource
from tabsplit.sources.factories import create_exchange_rate_cache, create_rate_source

T = TypeVar("T")


@dataclass
class Services:
    """Everything a command needs, bound to one event loop."""

    db: SQLAlchemyDatabase
    local_store: SQLAlchemyLocalStore
    source: RateSource
    rate_cache: ExchangeRateCache
    expenses: ExpenseService

    async def close(self) -> None:
        await self.source.close()
        await self.local_store.close()
        await self.db.close()


def build_services(obj: dict[str, Any]) -> Services:
    """Assemble services from the click context object.

    A ``rate_source`` already present in the context object is used as is;
    otherwise one is created from the environment.
    """
    db = create_sqlite_database(database_path=obj.get("db_path"))
    local_store = create_local_store(cache_path=obj.get("cache_path"))
    source = obj.get("rate_source") or create_rate_source()
    rate_cache = create_exchange_rate_cache(source, durable_store=db, local_store=local_store)
    return Services(
        db=db,
        local_store=local_store,
        source=source,
        rate_cache=rate_cache,
        expenses=ExpenseService(rate_cache, db),
    )


def run_with_services(obj: dict[str, Any], operation: Callable[[Services], Awaitable[T]]) -> T:
    """Run an async operation with freshly built services and release them afterwards."""

    async def runner() -> T:
        services = build_services(obj)
        try:
            await services.db.initialize_schema()
            return await operation(services)
        finally:
            await services.close()

    return asyncio.run(runner())
