"""Database engine, session factory, and declarative base.

One DeclarativeBase for the whole ledger:
  - LedgerBase → administrator, producers, products, production_batches,
                 batch_inputs, ledger_events

Sessions are not handed to request handlers directly; every read and write
goes through ``SupplyChainLedger``, which opens one session per operation.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class LedgerBase(DeclarativeBase):
    """Every ledger table."""
    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    kwargs: dict = {"echo": echo}
    if not database_url.startswith("sqlite"):
        kwargs.update(pool_size=20, max_overflow=10)
    return create_async_engine(database_url, **kwargs)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def create_tables(bind: AsyncEngine) -> None:
    """Create any missing ledger tables (idempotent)."""
    import producttrace.models  # noqa: F401  registers every model on LedgerBase

    async with bind.begin() as conn:
        await conn.run_sync(LedgerBase.metadata.create_all, checkfirst=True)


async def ping(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Round-trip a trivial query; raises if the database is unreachable."""
    async with session_factory() as session:
        await session.execute(text("SELECT 1"))
