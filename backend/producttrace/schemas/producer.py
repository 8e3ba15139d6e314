"""Pydantic schemas for the producer registry and ledger summary."""

from datetime import datetime

from pydantic import BaseModel, Field


class ProducerIn(BaseModel):
    identity: str = Field(..., max_length=255)


class ProducerOut(BaseModel):
    identity: str
    is_authorized: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProducerStatus(BaseModel):
    """Answer to "is this identity a producer?" — also for unknown identities."""
    identity: str
    is_producer: bool
    is_administrator: bool


class LedgerSummary(BaseModel):
    administrator: str | None
    producer_count: int
    product_count: int
    batch_count: int
