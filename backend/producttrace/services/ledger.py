"""SupplyChainLedger — the single entry point for every ledger operation.

Writes:
  - serialized by one asyncio.Lock (single writer, total order)
  - each runs in one database transaction; a raised LedgerError rolls the
    whole operation back, so no partial effect is ever committed
  - notifications are staged in ``ledger_events`` inside that transaction;
    after the commit they are queued under the lock (commit order) and
    delivered to subscribers once the lock is released, so a slow subscriber
    never holds up the next write
  - an operation returns only after its own notifications were delivered

Reads open their own session and only ever see committed operations.

Usage:
    ledger = SupplyChainLedger(async_session, notifiers=[LoggingNotifier()])
    await ledger.bootstrap("0xadmin")
    product = await ledger.create_product("0xadmin", name="Apples", ...)
"""

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from producttrace.database import ping
from producttrace.errors import LedgerError
from producttrace.models.access import Producer
from producttrace.models.ledger_event import LedgerEvent
from producttrace.models.product import Product, ProductStage
from producttrace.models.production_batch import ProductionBatch
from producttrace.schemas.event import ChangeNotification
from producttrace.schemas.producer import LedgerSummary
from producttrace.schemas.trace import FullTrace
from producttrace.services.access_registry import AccessRegistry
from producttrace.services.batch_ledger import BatchLedger
from producttrace.services.context import OperationContext
from producttrace.services.notifier import ChangeNotifier
from producttrace.services.product_ledger import ProductLedger
from producttrace.services.trace import TraceAssembler
from producttrace.utils.clock import LedgerClock, utcnow
from producttrace.utils.numbering import MAX_LEDGER_INT

logger = logging.getLogger("producttrace.ledger")

MAX_EVENT_PAGE = 500


class SupplyChainLedger:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifiers: Iterable[ChangeNotifier] = (),
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._notifiers: list[ChangeNotifier] = list(notifiers)
        self._clock = LedgerClock(clock)
        self._write_lock = asyncio.Lock()
        self._outbox: deque[ChangeNotification] = deque()
        # One drainer at a time keeps delivery in commit order
        self._publish_lock = asyncio.Lock()

    # ── Subscribers ──────────────────────────────────────────

    def subscribe(self, notifier: ChangeNotifier) -> None:
        if notifier not in self._notifiers:
            self._notifiers.append(notifier)

    def unsubscribe(self, notifier: ChangeNotifier) -> None:
        if notifier in self._notifiers:
            self._notifiers.remove(notifier)

    # ── Operation scopes ─────────────────────────────────────

    @asynccontextmanager
    async def _write(self, operation: str) -> AsyncIterator[OperationContext]:
        async with self._write_lock:
            try:
                async with self._session_factory() as db:
                    async with db.begin():
                        ctx = OperationContext(db, now=self._clock.now())
                        yield ctx
            except LedgerError as exc:
                logger.info("%s rejected: %s - %s", operation, exc.error_code, exc.message)
                raise

            notifications = [ChangeNotification.model_validate(e) for e in ctx.emitted]
            logger.debug("%s committed with %d notification(s)", operation, len(notifications))
            self._outbox.extend(notifications)

        await self._drain_outbox()

    @asynccontextmanager
    async def _read(self) -> AsyncIterator[OperationContext]:
        async with self._session_factory() as db:
            yield OperationContext(db)

    async def _drain_outbox(self) -> None:
        async with self._publish_lock:
            while self._outbox:
                await self._publish(self._outbox.popleft())

    async def _publish(self, notification: ChangeNotification) -> None:
        for notifier in list(self._notifiers):
            try:
                await notifier.publish(notification)
            except Exception:
                # The operation is already committed; one broken subscriber
                # must not starve the others.
                logger.exception(
                    "Notifier %s failed on event #%d",
                    type(notifier).__name__,
                    notification.sequence,
                )

    # ── Access registry ──────────────────────────────────────

    async def bootstrap(self, administrator: str) -> bool:
        """Record the administrator on first start.  Safe to call on every start."""
        async with self._write("bootstrap") as ctx:
            created = await AccessRegistry(ctx).bootstrap(administrator)
        if created:
            logger.info("Ledger bootstrapped with administrator %s", administrator)
        return created

    async def add_producer(self, caller: str, identity: str) -> Producer:
        async with self._write("add_producer") as ctx:
            return await AccessRegistry(ctx).add_producer(caller, identity)

    async def remove_producer(self, caller: str, identity: str) -> Producer:
        async with self._write("remove_producer") as ctx:
            return await AccessRegistry(ctx).remove_producer(caller, identity)

    async def administrator(self) -> str | None:
        async with self._read() as ctx:
            return await AccessRegistry(ctx).administrator()

    async def is_producer(self, identity: str) -> bool:
        async with self._read() as ctx:
            return await AccessRegistry(ctx).is_producer(identity)

    async def list_producers(self, include_revoked: bool = False) -> list[Producer]:
        async with self._read() as ctx:
            return await AccessRegistry(ctx).list_producers(include_revoked)

    # ── Product lifecycle ────────────────────────────────────

    async def create_product(
        self,
        caller: str,
        *,
        name: str,
        source: str = "",
        quality: str = "",
        initial_quantity: int,
        pickup_time_manual: str = "",
    ) -> Product:
        async with self._write("create_product") as ctx:
            return await ProductLedger(ctx).create_product(
                caller,
                name=name,
                source=source,
                quality=quality,
                initial_quantity=initial_quantity,
                pickup_time_manual=pickup_time_manual,
            )

    async def start_production(
        self,
        caller: str,
        product_id: int,
        consumed_product_ids: list[int],
        quantities_used: list[int],
        start_time_manual: str = "",
    ) -> ProductionBatch:
        async with self._write("start_production") as ctx:
            return await ProductLedger(ctx).start_production(
                caller,
                product_id,
                list(consumed_product_ids),
                list(quantities_used),
                start_time_manual,
            )

    async def package_product(
        self,
        caller: str,
        product_id: int,
        *,
        halal_cert_hash: str = "",
        bpom_cert_hash: str = "",
        packaging_time_manual: str = "",
    ) -> ProductionBatch:
        async with self._write("package_product") as ctx:
            return await ProductLedger(ctx).package_product(
                caller,
                product_id,
                halal_cert_hash=halal_cert_hash,
                bpom_cert_hash=bpom_cert_hash,
                packaging_time_manual=packaging_time_manual,
            )

    async def distribute_product(
        self,
        caller: str,
        product_id: int,
        distribution_details: str = "",
    ) -> Product:
        async with self._write("distribute_product") as ctx:
            return await ProductLedger(ctx).distribute_product(
                caller, product_id, distribution_details
            )

    # ── Reads ────────────────────────────────────────────────

    async def get_product(self, product_id: int) -> Product:
        async with self._read() as ctx:
            return await ProductLedger(ctx).get(product_id)

    async def get_batch(self, batch_id: int) -> ProductionBatch:
        async with self._read() as ctx:
            return await BatchLedger(ctx).get(batch_id)

    async def get_all_products(
        self,
        stage: ProductStage | None = None,
        owner: str | None = None,
    ) -> list[Product]:
        async with self._read() as ctx:
            return await TraceAssembler(ctx).get_all_products(stage=stage, owner=owner)

    async def get_full_trace(self, product_id: int) -> FullTrace:
        async with self._read() as ctx:
            return await TraceAssembler(ctx).get_full_trace(product_id)

    async def summary(self) -> LedgerSummary:
        async with self._read() as ctx:
            access = AccessRegistry(ctx)
            return LedgerSummary(
                administrator=await access.administrator(),
                producer_count=await access.producer_count(),
                product_count=await ProductLedger(ctx).count(),
                batch_count=await BatchLedger(ctx).count(),
            )

    async def list_events(self, after: int = 0, limit: int = 100) -> list[ChangeNotification]:
        """Committed notifications with ``sequence > after``, oldest first."""
        limit = max(1, min(limit, MAX_EVENT_PAGE))
        after = min(after, MAX_LEDGER_INT)
        async with self._read() as ctx:
            result = await ctx.db.execute(
                select(LedgerEvent)
                .where(LedgerEvent.sequence > after)
                .order_by(LedgerEvent.sequence)
                .limit(limit)
            )
            return [ChangeNotification.model_validate(e) for e in result.scalars().all()]

    async def ping(self) -> None:
        await ping(self._session_factory)


def get_ledger(request: Request) -> SupplyChainLedger:
    """FastAPI dependency: the ledger created at application startup."""
    return request.app.state.ledger
