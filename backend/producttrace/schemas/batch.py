"""Pydantic schemas for ProductionBatch reads."""

from datetime import datetime

from pydantic import BaseModel


class BatchOut(BaseModel):
    id: int
    product_id: int
    created_by: str
    raw_material_ids: list[int]
    quantities_used: list[int]
    start_time: datetime
    start_time_manual: str
    packaging_time: datetime | None = None
    packaging_time_manual: str
    halal_cert_hash: str
    bpom_cert_hash: str
    packaged_by: str | None = None
    is_packaged: bool

    model_config = {"from_attributes": True}
