"""Per-operation context shared by the ledger services.

Write operations get a context with the operation timestamp; every event they
emit is staged in the session and remembered so the ledger can publish it
once the transaction commits.  Read operations get a context without a
timestamp and may not emit.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from producttrace.models.ledger_event import EventKind, LedgerEvent
from producttrace.utils.events import record_event


@dataclass
class OperationContext:
    db: AsyncSession
    now: datetime | None = None
    emitted: list[LedgerEvent] = field(default_factory=list)

    def emit(
        self,
        kind: EventKind,
        *,
        product_id: int | None = None,
        batch_id: int | None = None,
        actor: str | None = None,
        **payload,
    ) -> LedgerEvent:
        if self.now is None:
            raise RuntimeError("Read-only operation cannot emit ledger events")
        event = record_event(
            self.db,
            kind,
            recorded_at=self.now,
            product_id=product_id,
            batch_id=batch_id,
            actor=actor,
            payload=payload,
        )
        self.emitted.append(event)
        return event
