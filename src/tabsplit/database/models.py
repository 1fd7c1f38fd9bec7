"""SQLAlchemy models for the tabsplit database."""

import uuid
from datetime import datetime, UTC
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# The local rate tier lives in its own SQLite file
LocalBase = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class ExchangeRate(Base):
    """Durable exchange-rate cache entry, one row per currency pair."""

    __tablename__ = "exchange_rates"

    id = Column(String(36), primary_key=True, default=_new_id)
    base_currency_code = Column(String(3), nullable=False)
    quote_currency_code = Column(String(3), nullable=False)
    rate_scaled = Column(BigInteger, nullable=False)
    fetched_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("base_currency_code", "quote_currency_code", name="uq_exchange_rate_pair"),
    )


class Expense(Base):
    """Expense or transfer with its snapshot rate."""

    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True, default=_new_id)
    group_id = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    date_time = Column(DateTime(timezone=True), nullable=False)
    currency_code = Column(String(3), nullable=False)
    main_currency_code = Column(String(3), nullable=False)
    total_amount_scaled = Column(BigInteger, nullable=False)
    payer_member_id = Column(String, nullable=False)
    exchange_rate_to_main_scaled = Column(BigInteger, nullable=False)
    rate_fetched_at = Column(DateTime(timezone=True), nullable=False)
    total_in_main_scaled = Column(BigInteger, nullable=False)
    split_type = Column(String, default="equal", nullable=False)
    payment_type = Column(String, default="expense", nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    shares = relationship(
        "ExpenseShare",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseShare.position",
        lazy="selectin",
    )


class ExpenseShare(Base):
    """One member's share of an expense."""

    __tablename__ = "expense_shares"

    id = Column(String(36), primary_key=True, default=_new_id)
    expense_id = Column(String(36), ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False)
    member_id = Column(String, nullable=False)
    position = Column(Integer, nullable=False)
    share_amount_scaled = Column(BigInteger, nullable=False)
    share_in_main_scaled = Column(BigInteger, nullable=False)

    # Relationships
    expense = relationship("Expense", back_populates="shares")


class LocalItem(LocalBase):
    """Key/value entry of the local persistent store."""

    __tablename__ = "local_items"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)


def create_engine_and_session_factory(
    database_url: str,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create an async SQLAlchemy engine and session factory.

    Tables are created by ``create_schema``, which needs a running event loop.
    """
    engine = create_async_engine(database_url, echo=False)
    return engine, async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine, metadata=Base.metadata) -> None:
    """Create all tables of ``metadata`` that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
