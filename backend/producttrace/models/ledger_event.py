"""LedgerEvent — append-only change-notification log.

Every committed operation appends one row per side effect, in the same
transaction as the state change it describes.  Rejected operations append
nothing.  ``sequence`` is the delivery cursor for external indexers.

Payload per kind:
    ProducerAdded / ProducerRemoved: {"producer": "0xabc..."}
    ProductCreated:         {"name": ..., "owner": ..., "stage": 1}
    ProductQuantityUpdated: {"quantity_changed": 30, "new_available_quantity": 70}
    BatchCreated:           {"created_by": ..., "consumed_product_ids": [...],
                             "quantities_used": [...]}
    BatchPackaged:          {"packaged_by": ..., "halal_cert_hash": ...,
                             "bpom_cert_hash": ...}
    ProductStageChanged:    {"old_stage": 1, "new_stage": 2}
"""

import enum
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from producttrace.database import LedgerBase


class EventKind(str, enum.Enum):
    PRODUCER_ADDED = "ProducerAdded"
    PRODUCER_REMOVED = "ProducerRemoved"
    PRODUCT_CREATED = "ProductCreated"
    PRODUCT_QUANTITY_UPDATED = "ProductQuantityUpdated"
    BATCH_CREATED = "BatchCreated"
    BATCH_PACKAGED = "BatchPackaged"
    PRODUCT_STAGE_CHANGED = "ProductStageChanged"


class LedgerEvent(LedgerBase):
    __tablename__ = "ledger_events"

    sequence: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Plain columns, not FKs: the log outlives any reshaping of the ledger tables
    product_id: Mapped[int | None] = mapped_column(BigInteger, index=True)
    batch_id: Mapped[int | None] = mapped_column(BigInteger)
    actor: Mapped[str | None] = mapped_column(String(255))

    payload: Mapped[dict] = mapped_column(JSON, default=dict)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
