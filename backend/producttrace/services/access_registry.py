"""Access registry — administrator identity and the producer set.

Roles:
  - administrator → fixed at bootstrap; the only identity that may add or
                    remove producers.  Always a producer itself.
  - producer      → may create products; owners of products must still be
                    producers to advance them.
  - product owner → checked by ProductLedger per product.

Identities are opaque strings, usually wallet addresses.
The null identity is the empty string or the all-zero address.
"""

import re

from sqlalchemy import func, select

from producttrace.errors import (
    NotAuthorizedProducerError,
    NotOwnerError,
    ZeroAddressNotAllowedError,
)
from producttrace.models.access import Administrator, Producer
from producttrace.models.ledger_event import EventKind
from producttrace.services.context import OperationContext

NULL_IDENTITY = "0x" + "0" * 40

_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]+$")


def normalize_identity(identity: str | None) -> str:
    """Strip whitespace; hex addresses compare case-insensitively."""
    value = (identity or "").strip()
    if _HEX_ADDRESS.match(value):
        return value.lower()
    return value


def is_null_identity(identity: str | None) -> bool:
    value = normalize_identity(identity)
    return value == "" or value == NULL_IDENTITY


class AccessRegistry:
    def __init__(self, ctx: OperationContext):
        self.ctx = ctx
        self.db = ctx.db

    # ── Reads ────────────────────────────────────────────────

    async def administrator(self) -> str | None:
        result = await self.db.execute(select(Administrator.identity))
        return result.scalar_one_or_none()

    async def is_administrator(self, identity: str) -> bool:
        admin = await self.administrator()
        return admin is not None and admin == normalize_identity(identity)

    async def is_producer(self, identity: str) -> bool:
        producer = await self.db.get(Producer, normalize_identity(identity))
        return bool(producer and producer.is_authorized)

    async def list_producers(self, include_revoked: bool = False) -> list[Producer]:
        stmt = select(Producer).order_by(Producer.created_at, Producer.identity)
        if not include_revoked:
            stmt = stmt.where(Producer.is_authorized == True)  # noqa: E712
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def producer_count(self) -> int:
        result = await self.db.execute(
            select(func.count(Producer.identity)).where(
                Producer.is_authorized == True  # noqa: E712
            )
        )
        return int(result.scalar() or 0)

    # ── Guards ───────────────────────────────────────────────

    async def require_administrator(self, caller: str) -> str:
        caller = normalize_identity(caller)
        if not await self.is_administrator(caller):
            raise NotOwnerError(caller)
        return caller

    async def require_producer(self, caller: str) -> str:
        caller = normalize_identity(caller)
        if not await self.is_producer(caller):
            raise NotAuthorizedProducerError(caller)
        return caller

    # ── Mutations ────────────────────────────────────────────

    async def bootstrap(self, administrator: str) -> bool:
        """Record the administrator and authorize it as a producer.

        Returns True when the ledger was bootstrapped by this call, False when
        the same administrator was already in place.  A different identity
        can never replace the administrator.
        """
        if is_null_identity(administrator):
            raise ZeroAddressNotAllowedError()
        administrator = normalize_identity(administrator)

        current = await self.administrator()
        if current is not None:
            if current != administrator:
                raise NotOwnerError(administrator)
            return False

        self.db.add(Administrator(identity=administrator, created_at=self.ctx.now))
        await self._authorize(administrator)
        self.ctx.emit(EventKind.PRODUCER_ADDED, actor=administrator, producer=administrator)
        return True

    async def add_producer(self, caller: str, identity: str) -> Producer:
        """Authorize ``identity``.  Re-adding is a no-op but still notifies."""
        caller = await self.require_administrator(caller)
        if is_null_identity(identity):
            raise ZeroAddressNotAllowedError()
        identity = normalize_identity(identity)

        producer = await self._authorize(identity)
        self.ctx.emit(EventKind.PRODUCER_ADDED, actor=caller, producer=identity)
        return producer

    async def remove_producer(self, caller: str, identity: str) -> Producer:
        caller = await self.require_administrator(caller)
        if is_null_identity(identity):
            raise ZeroAddressNotAllowedError()
        identity = normalize_identity(identity)

        producer = await self.db.get(Producer, identity)
        if not producer or not producer.is_authorized:
            raise NotAuthorizedProducerError(identity)

        producer.is_authorized = False
        producer.updated_at = self.ctx.now
        self.ctx.emit(EventKind.PRODUCER_REMOVED, actor=caller, producer=identity)
        return producer

    async def _authorize(self, identity: str) -> Producer:
        producer = await self.db.get(Producer, identity)
        if producer is None:
            producer = Producer(
                identity=identity,
                is_authorized=True,
                created_at=self.ctx.now,
                updated_at=self.ctx.now,
            )
            self.db.add(producer)
        elif not producer.is_authorized:
            producer.is_authorized = True
            producer.updated_at = self.ctx.now
        return producer
