"""Tests for local key-value stores."""

import pytest

from tabsplit.database.factories import create_local_store
from tabsplit.database.local_store import MemoryLocalStore
from tabsplit.domain.errors import CacheReadFailed, CacheWriteFailed


async def test_memory_store():
    store = MemoryLocalStore()
    assert await store.get_item("k") is None
    await store.set_item("k", "v")
    assert await store.get_item("k") == "v"


@pytest.fixture
async def local_db(tmp_path):
    """SQLite-backed local store in a temporary directory."""
    store = create_local_store(cache_path=str(tmp_path / "rate_cache.db"))

    yield store

    await store.close()


class TestSQLAlchemyLocalStore:
    """Tests for the SQLite key-value store."""

    async def test_missing_key_is_none(self, local_db):
        assert await local_db.get_item("anything") is None

    async def test_set_and_get(self, local_db):
        await local_db.set_item("exchange_rate:v1:USD:EUR", '{"rateScaled": "9215"}')
        assert await local_db.get_item("exchange_rate:v1:USD:EUR") == '{"rateScaled": "9215"}'

    async def test_set_overwrites_value(self, local_db):
        await local_db.set_item("a", "1")
        await local_db.set_item("a", "2")
        assert await local_db.get_item("a") == "2"

    async def test_set_keeps_other_keys(self, local_db):
        await local_db.set_item("a", "1")
        await local_db.set_item("b", "2")
        assert await local_db.get_item("a") == "1"
        assert await local_db.get_item("b") == "2"

    async def test_values_survive_a_new_instance(self, tmp_path):
        path = str(tmp_path / "rate_cache.db")
        first = create_local_store(cache_path=path)
        await first.set_item("a", "1")
        await first.close()

        reopened = create_local_store(cache_path=path)
        try:
            assert await reopened.get_item("a") == "1"
        finally:
            await reopened.close()

    async def test_unreachable_database_is_read_failure(self, tmp_path):
        store = create_local_store(cache_path=str(tmp_path / "missing-dir" / "rate_cache.db"))
        try:
            with pytest.raises(CacheReadFailed):
                await store.get_item("a")
        finally:
            await store.close()

    async def test_unreachable_database_is_write_failure(self, tmp_path):
        store = create_local_store(cache_path=str(tmp_path / "missing-dir" / "rate_cache.db"))
        try:
            with pytest.raises(CacheWriteFailed):
                await store.set_item("a", "1")
        finally:
            await store.close()


def test_create_local_store_uses_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("TABSPLIT_CACHE_PATH", str(tmp_path / "env.db"))
    store = create_local_store()
    assert store.database_url == f"sqlite+aiosqlite:///{tmp_path / 'env.db'}"


def test_create_local_store_explicit_path_wins(monkeypatch, tmp_path):
    monkeypatch.setenv("TABSPLIT_CACHE_PATH", str(tmp_path / "env.db"))
    store = create_local_store(cache_path=str(tmp_path / "explicit.db"))
    assert store.database_url == f"sqlite+aiosqlite:///{tmp_path / 'explicit.db'}"
