"""Batch ledger — production batch records.

Batches have no public mutation of their own: ProductLedger opens one when a
product enters PRODUCTION and marks it packaged when the product enters
PACKAGING, in the same transaction as the product's stage change.
"""

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from producttrace.errors import BatchNotFoundError
from producttrace.models.ledger_event import EventKind
from producttrace.models.production_batch import BatchInput, ProductionBatch
from producttrace.services.context import OperationContext
from producttrace.utils.numbering import count_rows, next_id, storable


class BatchLedger:
    def __init__(self, ctx: OperationContext):
        self.ctx = ctx
        self.db = ctx.db

    async def find(self, batch_id: int) -> ProductionBatch | None:
        if batch_id <= 0 or not storable(batch_id):
            return None
        result = await self.db.execute(
            select(ProductionBatch)
            .where(ProductionBatch.id == batch_id)
            .options(selectinload(ProductionBatch.inputs))
        )
        return result.scalar_one_or_none()

    async def get(self, batch_id: int) -> ProductionBatch:
        batch = await self.find(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch

    async def count(self) -> int:
        return await count_rows(self.db, ProductionBatch.id)

    async def open_batch(
        self,
        *,
        product_id: int,
        created_by: str,
        consumed: list[tuple[int, int]],
        start_time_manual: str,
    ) -> ProductionBatch:
        """Record a new batch consuming ``(product_id, quantity)`` pairs in order.

        Callers have already validated and debited the inputs.
        """
        batch = ProductionBatch(
            id=await next_id(self.db, ProductionBatch.id),
            product_id=product_id,
            created_by=created_by,
            start_time=self.ctx.now,
            start_time_manual=start_time_manual,
            packaging_time=None,
            packaging_time_manual="",
            halal_cert_hash="",
            bpom_cert_hash="",
            packaged_by=None,
            inputs=[
                BatchInput(position=position, product_id=input_id, quantity_used=qty)
                for position, (input_id, qty) in enumerate(consumed)
            ],
        )
        self.db.add(batch)

        self.ctx.emit(
            EventKind.BATCH_CREATED,
            product_id=product_id,
            batch_id=batch.id,
            actor=created_by,
            created_by=created_by,
            consumed_product_ids=[input_id for input_id, _ in consumed],
            quantities_used=[qty for _, qty in consumed],
        )
        return batch

    def mark_packaged(
        self,
        batch: ProductionBatch,
        *,
        packaged_by: str,
        halal_cert_hash: str,
        bpom_cert_hash: str,
        packaging_time_manual: str,
    ) -> ProductionBatch:
        """Stamp packaging data on an unpackaged batch (checked by the caller)."""
        batch.packaging_time = self.ctx.now
        batch.packaging_time_manual = packaging_time_manual
        batch.halal_cert_hash = halal_cert_hash
        batch.bpom_cert_hash = bpom_cert_hash
        batch.packaged_by = packaged_by

        self.ctx.emit(
            EventKind.BATCH_PACKAGED,
            product_id=batch.product_id,
            batch_id=batch.id,
            actor=packaged_by,
            packaged_by=packaged_by,
            halal_cert_hash=halal_cert_hash,
            bpom_cert_hash=bpom_cert_hash,
        )
        return batch
