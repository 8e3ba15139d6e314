"""ProductionBatch — the record of one production run.

A batch is opened when a raw-material product enters PRODUCTION.  It lists the
products consumed on its behalf (one BatchInput row per input, order kept in
``position``) and, once packaged, the certification hashes.

``packaging_time`` is NULL until packaging and is written exactly once.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from producttrace.database import LedgerBase


class ProductionBatch(LedgerBase):
    __tablename__ = "production_batches"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    # The processed product this batch was opened for
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("products.id"), nullable=False, index=True
    )
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Production ───────────────────────────────────────────
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    start_time_manual: Mapped[str] = mapped_column(String(100), default="")

    # ── Packaging ────────────────────────────────────────────
    packaging_time: Mapped[datetime | None] = mapped_column(DateTime)
    packaging_time_manual: Mapped[str] = mapped_column(String(100), default="")
    halal_cert_hash: Mapped[str] = mapped_column(String(255), default="")
    bpom_cert_hash: Mapped[str] = mapped_column(String(255), default="")
    packaged_by: Mapped[str | None] = mapped_column(String(255))

    # ── Relationships ────────────────────────────────────────
    # Not lazy-loaded: use selectinload(ProductionBatch.inputs) in queries.
    inputs: Mapped[list["BatchInput"]] = relationship(
        back_populates="batch",
        order_by="BatchInput.position",
        cascade="all, delete-orphan",
    )

    @property
    def is_packaged(self) -> bool:
        return self.packaging_time is not None

    @property
    def raw_material_ids(self) -> list[int]:
        return [item.product_id for item in self.inputs]

    @property
    def quantities_used(self) -> list[int]:
        return [item.quantity_used for item in self.inputs]


class BatchInput(LedgerBase):
    """One consumption edge: ``quantity_used`` of ``product_id`` went into ``batch_id``."""

    __tablename__ = "batch_inputs"

    batch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("production_batches.id"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("products.id"), nullable=False, index=True
    )
    # Snapshot taken at consumption time; never updated
    quantity_used: Mapped[int] = mapped_column(BigInteger, nullable=False)

    batch: Mapped[ProductionBatch] = relationship(back_populates="inputs")
