"""Sequential id allocation.

Products and batches get ids 1, 2, 3, … in creation order.  Rows are never
deleted, so ``max(id) + 1`` is strictly increasing as long as allocation and
insert happen under the same write lock (``SupplyChainLedger`` guarantees it).
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

# Ids and quantities are stored as signed 64-bit integers (BIGINT).
MAX_LEDGER_INT = 2**63 - 1


def storable(value: int) -> bool:
    return 0 <= value <= MAX_LEDGER_INT


async def next_id(db: AsyncSession, column: InstrumentedAttribute) -> int:
    """Return the next free id for ``column`` (1 when the table is empty)."""
    result = await db.execute(select(func.coalesce(func.max(column), 0)))
    return int(result.scalar() or 0) + 1


async def count_rows(db: AsyncSession, column: InstrumentedAttribute) -> int:
    result = await db.execute(select(func.count(column)))
    return int(result.scalar() or 0)
