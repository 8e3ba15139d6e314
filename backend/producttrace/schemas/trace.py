"""Full provenance trace of one product.

The trace joins a product to its production batch and to every product the
batch consumed.  Input names and sources are read at query time; quantities
are the snapshot stored on the batch.
"""

from pydantic import BaseModel, computed_field

from producttrace.schemas.batch import BatchOut
from producttrace.schemas.product import ProductOut

# Stands in for the name/source of an input that can no longer be resolved
NOT_FOUND_MARKER = "<not found>"


class ConsumedInput(BaseModel):
    product_id: int
    name: str
    source: str
    quantity_used: int
    found: bool = True


class FullTrace(BaseModel):
    product: ProductOut
    batch: BatchOut | None = None
    consumed: list[ConsumedInput] = []

    @computed_field
    @property
    def batch_id(self) -> int:
        return self.batch.id if self.batch else 0

    @computed_field
    @property
    def consumed_product_ids(self) -> list[int]:
        return [item.product_id for item in self.consumed]

    @computed_field
    @property
    def consumed_product_names(self) -> list[str]:
        return [item.name for item in self.consumed]

    @computed_field
    @property
    def consumed_product_sources(self) -> list[str]:
        return [item.source for item in self.consumed]

    @computed_field
    @property
    def consumed_quantities_used(self) -> list[int]:
        return [item.quantity_used for item in self.consumed]
