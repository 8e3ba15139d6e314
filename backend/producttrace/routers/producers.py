"""Producer registry router.

Endpoints:
    GET    /api/producers/              List authorized producers
    GET    /api/producers/{identity}    Is this identity a producer?
    POST   /api/producers/              Authorize a producer (administrator)
    DELETE /api/producers/{identity}    Revoke a producer (administrator)
"""

from fastapi import APIRouter, Depends, Query, status

from producttrace.auth.deps import get_caller
from producttrace.schemas.producer import ProducerIn, ProducerOut, ProducerStatus
from producttrace.services.access_registry import normalize_identity
from producttrace.services.ledger import SupplyChainLedger, get_ledger

router = APIRouter()


@router.get("/", response_model=list[ProducerOut])
async def list_producers(
    include_revoked: bool = Query(False),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    producers = await ledger.list_producers(include_revoked=include_revoked)
    return [ProducerOut.model_validate(p) for p in producers]


@router.get("/{identity}", response_model=ProducerStatus)
async def producer_status(
    identity: str,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    identity = normalize_identity(identity)
    return ProducerStatus(
        identity=identity,
        is_producer=await ledger.is_producer(identity),
        is_administrator=await ledger.administrator() == identity,
    )


@router.post("/", response_model=ProducerOut, status_code=status.HTTP_201_CREATED)
async def add_producer(
    body: ProducerIn,
    caller: str = Depends(get_caller),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    producer = await ledger.add_producer(caller, body.identity)
    return ProducerOut.model_validate(producer)


@router.delete("/{identity}", response_model=ProducerOut)
async def remove_producer(
    identity: str,
    caller: str = Depends(get_caller),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    producer = await ledger.remove_producer(caller, identity)
    return ProducerOut.model_validate(producer)
