"""Lightweight helper for appending change notifications.

Usage:
    record_event(
        db, EventKind.PRODUCT_CREATED, recorded_at=now,
        product_id=product.id, actor=caller,
        payload={"name": product.name, "owner": caller, "stage": 1},
    )

The row is added to the current session and committed with the enclosing
transaction, so a rejected operation leaves no trace in the log.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from producttrace.models.ledger_event import EventKind, LedgerEvent


def record_event(
    db: AsyncSession,
    kind: EventKind,
    *,
    recorded_at: datetime,
    product_id: int | None = None,
    batch_id: int | None = None,
    actor: str | None = None,
    payload: dict | None = None,
) -> LedgerEvent:
    """Append a ledger event to the current DB session and return it."""
    event = LedgerEvent(
        kind=kind.value,
        product_id=product_id,
        batch_id=batch_id,
        actor=actor,
        payload=payload or {},
        recorded_at=recorded_at,
    )
    db.add(event)
    return event
