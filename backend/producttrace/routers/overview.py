"""Ledger overview.

Endpoints:
    GET    /api/ledger    Administrator and record counts
"""

from fastapi import APIRouter, Depends

from producttrace.schemas.producer import LedgerSummary
from producttrace.services.ledger import SupplyChainLedger, get_ledger

router = APIRouter()


@router.get("", response_model=LedgerSummary)
async def ledger_summary(ledger: SupplyChainLedger = Depends(get_ledger)):
    return await ledger.summary()
