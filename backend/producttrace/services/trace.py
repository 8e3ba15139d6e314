"""Trace assembler — read-only provenance views.

A trace joins a product to its production batch (once it has one) and to
every product the batch consumed, in the batch's input order.  Input names and
sources are read as they are now; quantities come from the batch snapshot.
An input that cannot be resolved yields a not-found entry instead of failing
the whole trace.
"""

import logging

from producttrace.models.product import Product, ProductStage
from producttrace.schemas.batch import BatchOut
from producttrace.schemas.product import ProductOut
from producttrace.schemas.trace import NOT_FOUND_MARKER, ConsumedInput, FullTrace
from producttrace.services.batch_ledger import BatchLedger
from producttrace.services.context import OperationContext
from producttrace.services.product_ledger import ProductLedger

logger = logging.getLogger(__name__)


class TraceAssembler:
    def __init__(self, ctx: OperationContext):
        self.products = ProductLedger(ctx)
        self.batches = BatchLedger(ctx)

    async def get_full_trace(self, product_id: int) -> FullTrace:
        product = await self.products.get(product_id)
        trace = FullTrace(product=ProductOut.model_validate(product))

        if product.stage < ProductStage.PRODUCTION or not product.current_batch_id:
            return trace

        batch = await self.batches.find(product.current_batch_id)
        if batch is None:
            logger.warning(
                "Product %d points at missing batch %d", product.id, product.current_batch_id
            )
            return trace

        inputs = await self.products.find_many(batch.raw_material_ids)
        trace.batch = BatchOut.model_validate(batch)
        missing = [pid for pid in batch.raw_material_ids if pid not in inputs]
        if missing:
            logger.warning("Batch %d references missing products %s", batch.id, missing)
        trace.consumed = [
            _consumed_entry(inputs.get(item.product_id), item.product_id, item.quantity_used)
            for item in batch.inputs
        ]
        return trace

    async def get_all_products(
        self,
        stage: ProductStage | None = None,
        owner: str | None = None,
    ) -> list[Product]:
        """Every product in id order, optionally narrowed by stage and owner."""
        return await self.products.list_products(stage=stage, owner=owner)


def _consumed_entry(product: Product | None, product_id: int, quantity_used: int) -> ConsumedInput:
    if product is None:
        return ConsumedInput(
            product_id=product_id,
            name=NOT_FOUND_MARKER,
            source=NOT_FOUND_MARKER,
            quantity_used=quantity_used,
            found=False,
        )
    return ConsumedInput(
        product_id=product_id,
        name=product.name,
        source=product.source,
        quantity_used=quantity_used,
    )
