"""Shared pytest fixtures for tabsplit tests."""

import os
import tempfile
from datetime import datetime, timedelta, UTC

import pytest

from tabsplit.database.base import RateStore
from tabsplit.database.factories import create_sqlite_database
from tabsplit.database.local_store import MemoryLocalStore
from tabsplit.domain.entities import ExchangeRateQuote
from tabsplit.domain.errors import CacheReadFailed, CacheWriteFailed, RateSourceError
from tabsplit.domain.exchange_rate import ExchangeRateCache
from tabsplit.domain.expense import ExpenseService
from tabsplit.sources.base import RateSource

START = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeRateSource(RateSource):
    """Rate source serving fixed rates, recording every call.

    Set ``fail`` to simulate an outage and ``gate`` (an asyncio.Event) to hold
    fetches until the test releases them.
    """

    def __init__(self, rates=None, clock=None):
        self.rates = dict(rates or {})
        self.clock = clock or (lambda: datetime.now(UTC))
        self.calls = []
        self.fail = False
        self.gate = None
        self.closed = False

    async def fetch_rate(self, base_currency, quote_currency):
        self.calls.append((base_currency, quote_currency))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RateSourceError("rate source offline")
        key = f"{base_currency}:{quote_currency}"
        if key not in self.rates:
            raise RateSourceError(f"No rate found for {base_currency} to {quote_currency}")
        return ExchangeRateQuote(base_currency, quote_currency, self.rates[key], self.clock())

    async def close(self):
        self.closed = True


class FakeRateStore(RateStore):
    """In-memory durable rate store with failure switches."""

    def __init__(self):
        self.quotes = {}
        self.read_fails = False
        self.write_fails = False
        self.reads = 0
        self.writes = 0

    def put(self, quote):
        self.quotes[(quote.base_currency_code, quote.quote_currency_code)] = quote

    async def get_rate(self, base_currency, quote_currency):
        self.reads += 1
        if self.read_fails:
            raise CacheReadFailed("durable store unreachable")
        return self.quotes.get((base_currency, quote_currency))

    async def upsert_rate(self, quote):
        self.writes += 1
        if self.write_fails:
            raise CacheWriteFailed("durable store is read-only")
        self.put(quote)


class FailingLocalStore(MemoryLocalStore):
    """Local store whose reads and writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.read_fails = False
        self.write_fails = False

    async def get_item(self, key):
        if self.read_fails:
            raise CacheReadFailed("local store corrupt")
        return await super().get_item(key)

    async def set_item(self, key, value):
        if self.write_fails:
            raise CacheWriteFailed("disk full")
        await super().set_item(key, value)


@pytest.fixture
def clock():
    """Clock fixed at 2025-03-01 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def rate_source(clock):
    """Rate source with a few pairs, stamping quotes with the test clock."""
    return FakeRateSource({"USD:EUR": 9215, "GBP:EUR": 11700, "JPY:EUR": 61}, clock=clock)


@pytest.fixture
def rate_store():
    """Durable rate store fake."""
    return FakeRateStore()


@pytest.fixture
def local_store():
    """Local store fake."""
    return FailingLocalStore()


@pytest.fixture
def rate_cache(rate_source, rate_store, local_store, clock):
    """Exchange-rate cache wired to fakes."""
    return ExchangeRateCache(
        source=rate_source, durable_store=rate_store, local_store=local_store, clock=clock
    )


@pytest.fixture
def temp_db_path():
    """Path of a temporary SQLite file, removed afterwards."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    yield db_path

    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
async def temp_db(temp_db_path):
    """Create a temporary database for testing."""
    db = create_sqlite_database(database_path=temp_db_path)
    db.database_path = temp_db_path
    await db.initialize_schema()

    yield db

    await db.close()


@pytest.fixture
def expense_service(rate_cache, temp_db):
    """ExpenseService over a temporary database and the faked rate cache."""
    return ExpenseService(rate_cache, temp_db)


@pytest.fixture
def cli_runner():
    """Create a Click CLI runner for testing."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def cli_env(tmp_path, temp_db_path):
    """Global CLI options pointing at temporary storage."""
    return ["--db-path", temp_db_path, "--cache-path", str(tmp_path / "rate_cache.db")]


@pytest.fixture
def cli_source():
    """Rate source for CLI runs, stamping quotes with the real time."""
    return FakeRateSource({"USD:EUR": 9215, "GBP:EUR": 11700})
