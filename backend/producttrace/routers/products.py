"""Product lifecycle router.

Endpoints:
    POST   /api/products/                       Create a raw material
    GET    /api/products/                       List products (?stage=&owner=)
    GET    /api/products/{product_id}           Single product
    POST   /api/products/{product_id}/production    Start production (consumes inputs)
    POST   /api/products/{product_id}/packaging     Package the product's batch
    POST   /api/products/{product_id}/distribution  Hand over for distribution
    GET    /api/products/{product_id}/trace     Full provenance trace
"""

from fastapi import APIRouter, Depends, Query, status

from producttrace.auth.deps import get_caller
from producttrace.models.product import ProductStage
from producttrace.schemas.batch import BatchOut
from producttrace.schemas.product import (
    DistributionRequest,
    PackagingRequest,
    ProductCreate,
    ProductionStart,
    ProductOut,
)
from producttrace.schemas.trace import FullTrace
from producttrace.services.ledger import SupplyChainLedger, get_ledger

router = APIRouter()


# ── Step 1: create ───────────────────────────────────────────

@router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    caller: str = Depends(get_caller),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    product = await ledger.create_product(caller, **body.model_dump())
    return ProductOut.model_validate(product)


# ── Reads ────────────────────────────────────────────────────

@router.get("/", response_model=list[ProductOut])
async def list_products(
    stage: int | None = Query(None, ge=int(ProductStage.NOT_STARTED), le=int(ProductStage.DISTRIBUTION)),
    owner: str | None = Query(None),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    products = await ledger.get_all_products(
        stage=ProductStage(stage) if stage is not None else None,
        owner=owner,
    )
    return [ProductOut.model_validate(p) for p in products]


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(
    product_id: int,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    return ProductOut.model_validate(await ledger.get_product(product_id))


@router.get("/{product_id}/trace", response_model=FullTrace)
async def get_full_trace(
    product_id: int,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    return await ledger.get_full_trace(product_id)


# ── Step 2: start production ─────────────────────────────────

@router.post(
    "/{product_id}/production",
    response_model=BatchOut,
    status_code=status.HTTP_201_CREATED,
)
async def start_production(
    product_id: int,
    body: ProductionStart,
    caller: str = Depends(get_caller),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    batch = await ledger.start_production(
        caller,
        product_id,
        body.consumed_product_ids,
        body.quantities_used,
        body.start_time_manual,
    )
    return BatchOut.model_validate(batch)


# ── Step 3: package ──────────────────────────────────────────

@router.post("/{product_id}/packaging", response_model=BatchOut)
async def package_product(
    product_id: int,
    body: PackagingRequest,
    caller: str = Depends(get_caller),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    batch = await ledger.package_product(caller, product_id, **body.model_dump())
    return BatchOut.model_validate(batch)


# ── Step 4: distribute ───────────────────────────────────────

@router.post("/{product_id}/distribution", response_model=ProductOut)
async def distribute_product(
    product_id: int,
    body: DistributionRequest,
    caller: str = Depends(get_caller),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    product = await ledger.distribute_product(
        caller, product_id, body.distribution_details
    )
    return ProductOut.model_validate(product)
