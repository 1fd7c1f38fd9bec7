"""Factory functions for creating storage instances."""

import os
from pathlib import Path
from typing import Optional

from tabsplit.database.local_store import SQLAlchemyLocalStore
from tabsplit.database.sqlalchemy_db import SQLAlchemyDatabase


def _default_data_dir() -> Path:
    data_dir = Path.home() / ".tabsplit"
    data_dir.mkdir(exist_ok=True)
    return data_dir


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks TABSPLIT_DB_PATH
            environment variable, then defaults to ~/.tabsplit/tabsplit.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite (aiosqlite driver)
    """
    if database_path is None:
        database_path = os.environ.get("TABSPLIT_DB_PATH")

    if database_path is None:
        database_path = str(_default_data_dir() / "tabsplit.db")

    return SQLAlchemyDatabase(f"sqlite+aiosqlite:///{database_path}")


def create_local_store(cache_path: Optional[str] = None) -> SQLAlchemyLocalStore:
    """Create the local exchange-rate store.

    Args:
        cache_path: Path to the SQLite cache file. If None, checks TABSPLIT_CACHE_PATH
            environment variable, then defaults to ~/.tabsplit/rate_cache.db

    Returns:
        SQLAlchemyLocalStore instance configured for SQLite (aiosqlite driver)
    """
    if cache_path is None:
        cache_path = os.environ.get("TABSPLIT_CACHE_PATH")

    if cache_path is None:
        cache_path = str(_default_data_dir() / "rate_cache.db")

    return SQLAlchemyLocalStore(f"sqlite+aiosqlite:///{cache_path}")
