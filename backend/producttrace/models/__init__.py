"""Aggregate model imports so every table is registered on LedgerBase."""

# ── Authorization ────────────────────────────────────────────
from producttrace.models.access import Administrator, Producer

# ── Ledger records ───────────────────────────────────────────
from producttrace.models.product import Product, ProductStage
from producttrace.models.production_batch import BatchInput, ProductionBatch

# ── Change notifications ─────────────────────────────────────
from producttrace.models.ledger_event import EventKind, LedgerEvent

__all__ = [
    "Administrator", "Producer",
    "Product", "ProductStage", "ProductionBatch", "BatchInput",
    "EventKind", "LedgerEvent",
]
