"""Pydantic schemas for Product operations."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, computed_field

from producttrace.models.product import ProductStage

# Zero passes the schema on purpose: the ledger rejects it with its own
# ZERO_QUANTITY_NOT_ALLOWED error.  Negative values never reach the ledger.
Quantity = Annotated[int, Field(ge=0)]


# ── Step 1: create (as raw material) ─────────────────────────

class ProductCreate(BaseModel):
    name: str = Field(..., max_length=255)
    source: str = Field("", max_length=255)
    quality: str = Field("", max_length=255)
    initial_quantity: Quantity
    pickup_time_manual: str = Field("", max_length=100)


# ── Step 2: start production ─────────────────────────────────

class ProductionStart(BaseModel):
    """Consume ``quantities_used[i]`` of ``consumed_product_ids[i]``.

    The two lists are parallel; a length mismatch is reported by the ledger.
    """
    consumed_product_ids: list[int]
    quantities_used: list[Quantity]
    start_time_manual: str = Field("", max_length=100)


# ── Step 3: package ──────────────────────────────────────────

class PackagingRequest(BaseModel):
    halal_cert_hash: str = Field("", max_length=255)
    bpom_cert_hash: str = Field("", max_length=255)
    packaging_time_manual: str = Field("", max_length=100)


# ── Step 4: distribute ───────────────────────────────────────

class DistributionRequest(BaseModel):
    distribution_details: str


# ── Response ─────────────────────────────────────────────────

class ProductOut(BaseModel):
    id: int
    name: str
    source: str
    quality: str
    initial_quantity: int
    available_quantity: int
    pickup_time_manual: str
    stage: ProductStage
    owner: str
    current_batch_id: int
    distribution_details: str
    timestamp: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def stage_name(self) -> str:
        return self.stage.name
