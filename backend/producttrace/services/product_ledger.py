"""Product ledger — product records, stage transitions and quantity debits.

State machine (no skipping, no going back; DISTRIBUTION is terminal):

    NOT_STARTED  → RAW_MATERIAL  createProduct
    RAW_MATERIAL → PRODUCTION    startProduction   (opens a batch, debits inputs)
    PRODUCTION   → PACKAGING     packageProduct    (stamps the batch)
    PACKAGING    → DISTRIBUTION  distributeProduct

Every method validates everything it needs before changing anything, so a
rejected call leaves the session untouched and emits nothing.
"""

from sqlalchemy import select

from producttrace.errors import (
    ArrayLengthMismatchError,
    BatchAlreadyPackagedError,
    BatchNotFoundError,
    InsufficientProductQuantityError,
    InvalidProductStageError,
    NoInputsForProductionError,
    NotProductOwnerError,
    ProductNotFoundError,
    QuantityOutOfRangeError,
    ZeroQuantityNotAllowedError,
)
from producttrace.models.ledger_event import EventKind
from producttrace.models.product import Product, ProductStage
from producttrace.models.production_batch import ProductionBatch
from producttrace.services.access_registry import AccessRegistry, normalize_identity
from producttrace.services.batch_ledger import BatchLedger
from producttrace.services.context import OperationContext
from producttrace.utils.numbering import count_rows, next_id, storable


class ProductLedger:
    def __init__(
        self,
        ctx: OperationContext,
        access: AccessRegistry | None = None,
        batches: BatchLedger | None = None,
    ):
        self.ctx = ctx
        self.db = ctx.db
        self.access = access or AccessRegistry(ctx)
        self.batches = batches or BatchLedger(ctx)

    # ── Reads ────────────────────────────────────────────────

    async def find(self, product_id: int) -> Product | None:
        if product_id <= 0 or not storable(product_id):
            return None
        return await self.db.get(Product, product_id)

    async def get(self, product_id: int) -> Product:
        product = await self.find(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def find_many(self, product_ids: list[int]) -> dict[int, Product]:
        wanted = {pid for pid in product_ids if pid > 0 and storable(pid)}
        if not wanted:
            return {}
        result = await self.db.execute(select(Product).where(Product.id.in_(wanted)))
        return {product.id: product for product in result.scalars().all()}

    async def list_products(
        self,
        stage: ProductStage | None = None,
        owner: str | None = None,
    ) -> list[Product]:
        stmt = select(Product).order_by(Product.id)
        if stage is not None:
            stmt = stmt.where(Product.stage == stage)
        if owner:
            stmt = stmt.where(Product.owner == normalize_identity(owner))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self) -> int:
        return await count_rows(self.db, Product.id)

    # ── Guards ───────────────────────────────────────────────

    async def require_owner(self, product_id: int, caller: str) -> Product:
        """Load the product and check ``caller`` owns it and is still a producer."""
        caller = normalize_identity(caller)
        product = await self.get(product_id)
        if product.owner != caller:
            raise NotProductOwnerError(product_id, caller)
        await self.access.require_producer(caller)
        return product

    @staticmethod
    def require_stage(product: Product, required: ProductStage) -> None:
        if product.stage != required:
            raise InvalidProductStageError(product.id, product.stage, required)

    # ── Step 1: create ───────────────────────────────────────

    async def create_product(
        self,
        caller: str,
        *,
        name: str,
        source: str,
        quality: str,
        initial_quantity: int,
        pickup_time_manual: str,
    ) -> Product:
        caller = await self.access.require_producer(caller)
        if initial_quantity <= 0:
            raise ZeroQuantityNotAllowedError()
        if not storable(initial_quantity):
            raise QuantityOutOfRangeError(initial_quantity)

        product = Product(
            id=await next_id(self.db, Product.id),
            name=name,
            source=source,
            quality=quality,
            initial_quantity=initial_quantity,
            available_quantity=initial_quantity,
            pickup_time_manual=pickup_time_manual,
            distribution_details="",
            stage=ProductStage.RAW_MATERIAL,
            owner=caller,
            current_batch_id=0,
            timestamp=self.ctx.now,
        )
        self.db.add(product)

        self.ctx.emit(
            EventKind.PRODUCT_CREATED,
            product_id=product.id,
            actor=caller,
            name=name,
            owner=caller,
            stage=int(product.stage),
        )
        return product

    # ── Step 2: start production ─────────────────────────────

    async def start_production(
        self,
        caller: str,
        product_id: int,
        consumed_product_ids: list[int],
        quantities_used: list[int],
        start_time_manual: str,
    ) -> ProductionBatch:
        """Consume inputs into a new batch and move the product to PRODUCTION."""
        product = await self.require_owner(product_id, caller)
        caller = product.owner

        self.require_stage(product, ProductStage.RAW_MATERIAL)
        if len(consumed_product_ids) != len(quantities_used):
            raise ArrayLengthMismatchError(len(consumed_product_ids), len(quantities_used))
        if not consumed_product_ids:
            raise NoInputsForProductionError()

        consumed, inputs = await self._plan_consumption(
            product, consumed_product_ids, quantities_used
        )

        # ── Commit phase: nothing below can fail validation ──
        for input_id, qty in consumed:
            item = inputs[input_id]
            item.available_quantity -= qty
            self.ctx.emit(
                EventKind.PRODUCT_QUANTITY_UPDATED,
                product_id=input_id,
                actor=caller,
                quantity_changed=qty,
                new_available_quantity=item.available_quantity,
            )

        batch = await self.batches.open_batch(
            product_id=product.id,
            created_by=caller,
            consumed=consumed,
            start_time_manual=start_time_manual,
        )
        product.current_batch_id = batch.id
        self._advance(product, ProductStage.PRODUCTION, caller)
        return batch

    async def _plan_consumption(
        self,
        product: Product,
        consumed_product_ids: list[int],
        quantities_used: list[int],
    ) -> tuple[list[tuple[int, int]], dict[int, Product]]:
        """Validate every (input, quantity) pair in order; mutate nothing.

        An input listed more than once is checked against what is left after
        its earlier entries in the same call.
        """
        inputs = await self.find_many(consumed_product_ids)
        remaining: dict[int, int] = {}
        plan: list[tuple[int, int]] = []

        for input_id, qty in zip(consumed_product_ids, quantities_used):
            item = inputs.get(input_id)
            if item is None:
                raise ProductNotFoundError(input_id)
            if input_id == product.id:
                # Leaves RAW_MATERIAL in this very operation; self-consumption
                # would make the batch its own input.
                raise InvalidProductStageError(
                    input_id, ProductStage.PRODUCTION, ProductStage.RAW_MATERIAL
                )
            self.require_stage(item, ProductStage.RAW_MATERIAL)
            if qty <= 0:
                raise ZeroQuantityNotAllowedError(input_id)
            available = remaining.get(input_id, item.available_quantity)
            if qty > available:
                raise InsufficientProductQuantityError(input_id, qty, available)
            remaining[input_id] = available - qty
            plan.append((input_id, qty))

        return plan, inputs

    # ── Step 3: package ──────────────────────────────────────

    async def package_product(
        self,
        caller: str,
        product_id: int,
        *,
        halal_cert_hash: str,
        bpom_cert_hash: str,
        packaging_time_manual: str,
    ) -> ProductionBatch:
        product = await self.require_owner(product_id, caller)
        caller = product.owner

        if product.stage != ProductStage.PRODUCTION:
            if product.stage > ProductStage.PRODUCTION:
                packaged = await self.batches.find(product.current_batch_id)
                if packaged is not None and packaged.is_packaged:
                    raise BatchAlreadyPackagedError(product.id, packaged.id, product.stage)
            raise InvalidProductStageError(product.id, product.stage, ProductStage.PRODUCTION)

        batch = await self.batches.find(product.current_batch_id)
        if batch is None:
            raise BatchNotFoundError(product.current_batch_id)
        if batch.is_packaged:
            raise BatchAlreadyPackagedError(product.id, batch.id, product.stage)

        self.batches.mark_packaged(
            batch,
            packaged_by=caller,
            halal_cert_hash=halal_cert_hash,
            bpom_cert_hash=bpom_cert_hash,
            packaging_time_manual=packaging_time_manual,
        )
        self._advance(product, ProductStage.PACKAGING, caller)
        return batch

    # ── Step 4: distribute ───────────────────────────────────

    async def distribute_product(
        self,
        caller: str,
        product_id: int,
        distribution_details: str,
    ) -> Product:
        product = await self.require_owner(product_id, caller)
        self.require_stage(product, ProductStage.PACKAGING)

        product.distribution_details = distribution_details
        self._advance(product, ProductStage.DISTRIBUTION, product.owner)
        return product

    # ── Transitions ──────────────────────────────────────────

    def _advance(self, product: Product, new_stage: ProductStage, actor: str) -> None:
        old_stage = product.stage
        if old_stage.next_stage() is not new_stage:
            # Callers check the stage first; reaching this is a programming error.
            raise InvalidProductStageError(product.id, old_stage, ProductStage(new_stage - 1))
        product.stage = new_stage
        product.timestamp = self.ctx.now
        self.ctx.emit(
            EventKind.PRODUCT_STAGE_CHANGED,
            product_id=product.id,
            batch_id=product.current_batch_id or None,
            actor=actor,
            old_stage=int(old_stage),
            new_stage=int(new_stage),
        )
