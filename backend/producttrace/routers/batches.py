"""Production batch router.

Endpoints:
    GET    /api/batches/{batch_id}    Single batch with its consumed inputs
"""

from fastapi import APIRouter, Depends

from producttrace.schemas.batch import BatchOut
from producttrace.services.ledger import SupplyChainLedger, get_ledger

router = APIRouter()


@router.get("/{batch_id}", response_model=BatchOut)
async def get_batch(
    batch_id: int,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    return BatchOut.model_validate(await ledger.get_batch(batch_id))
