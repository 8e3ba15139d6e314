"""Product — one lifecycle instance tracked by the ledger.

A Product is registered as a raw material.  It is either consumed (in part)
by other products' production batches while it is still a raw material, or it
becomes the *processed* product of its own batch and moves on through
packaging and distribution.

Lifecycle:  NOT_STARTED → RAW_MATERIAL → PRODUCTION → PACKAGING → DISTRIBUTION
"""

import enum
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from producttrace.database import LedgerBase


class ProductStage(enum.IntEnum):
    NOT_STARTED = 0
    RAW_MATERIAL = 1
    PRODUCTION = 2
    PACKAGING = 3
    DISTRIBUTION = 4

    def next_stage(self) -> "ProductStage | None":
        """The only stage this one may advance to (None when terminal)."""
        if self is ProductStage.DISTRIBUTION:
            return None
        return ProductStage(self + 1)


class Product(LedgerBase):
    __tablename__ = "products"

    # Sequential from 1, allocated under the ledger write lock.  0 = "none".
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    # ── Descriptive (opaque) ─────────────────────────────────
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    source: Mapped[str] = mapped_column(String(255), default="")
    quality: Mapped[str] = mapped_column(String(255), default="")
    pickup_time_manual: Mapped[str] = mapped_column(String(100), default="")
    distribution_details: Mapped[str] = mapped_column(Text, default="")

    # ── Quantities ───────────────────────────────────────────
    initial_quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Only ever decremented, and only while stage == RAW_MATERIAL
    available_quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # ── Lifecycle ────────────────────────────────────────────
    stage: Mapped[ProductStage] = mapped_column(
        SAEnum(ProductStage, native_enum=False, length=20),
        default=ProductStage.NOT_STARTED,
        nullable=False,
        index=True,
    )
    owner: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # 0 until the product enters PRODUCTION; no FK because 0 is a sentinel
    current_batch_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<Product {self.id} {self.name!r} {self.stage.name}>"
