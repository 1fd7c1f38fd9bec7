"""Local key-value stores for the fast exchange-rate tier."""

import logging
from datetime import datetime, UTC
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from tabsplit.database.base import LocalStore
from tabsplit.database.models import (
    LocalBase,
    LocalItem,
    create_engine_and_session_factory,
    create_schema,
)
from tabsplit.domain.errors import CacheReadFailed, CacheWriteFailed

logger = logging.getLogger(__name__)


class MemoryLocalStore(LocalStore):
    """In-memory store, useful for tests and short-lived processes."""

    def __init__(self, items: Optional[dict[str, str]] = None):
        self.items: dict[str, str] = dict(items or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


class SQLAlchemyLocalStore(LocalStore):
    """Key-value store backed by a single ``local_items`` table.

    Each operation uses its own session, like ``SQLAlchemyDatabase``. Backend
    errors surface as ``CacheReadFailed`` / ``CacheWriteFailed``.
    """

    def __init__(self, database_url: str):
        """Initialize the store.

        Args:
            database_url: Async SQLAlchemy database URL (e.g.,
                'sqlite+aiosqlite:///path/to/rate_cache.db')
        """
        self.database_url = database_url
        self.engine, self.session_factory = create_engine_and_session_factory(database_url)
        self._schema_ready = False

    async def initialize_schema(self) -> None:
        """Create the key-value table if needed."""
        if not self._schema_ready:
            await create_schema(self.engine, LocalBase.metadata)
            self._schema_ready = True

    async def close(self) -> None:
        """Dispose of pooled connections."""
        await self.engine.dispose()

    async def get_item(self, key: str) -> Optional[str]:
        try:
            await self.initialize_schema()
            async with self.session_factory() as session:
                row = await session.get(LocalItem, key)
        except SQLAlchemyError as e:
            raise CacheReadFailed(f"Could not read local item {key}: {e}") from e
        return None if row is None else row.value

    async def set_item(self, key: str, value: str) -> None:
        try:
            await self.initialize_schema()
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(select(LocalItem).where(LocalItem.key == key))
                    row = result.scalar_one_or_none()
                    if row is None:
                        session.add(LocalItem(key=key, value=value))
                    else:
                        row.value = value
                        row.updated_at = datetime.now(UTC)
        except SQLAlchemyError as e:
            raise CacheWriteFailed(f"Could not write local item {key}: {e}") from e
        logger.debug("Stored local item %s", key)
