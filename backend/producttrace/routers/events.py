"""Change notification feed for indexers.

Endpoints:
    GET    /api/events/?after=&limit=    Committed notifications after a sequence

Poll with ``after`` set to the last sequence seen; an empty page means the
indexer is caught up.
"""

from fastapi import APIRouter, Depends, Query

from producttrace.schemas.event import ChangeNotification
from producttrace.services.ledger import MAX_EVENT_PAGE, SupplyChainLedger, get_ledger

router = APIRouter()


@router.get("/", response_model=list[ChangeNotification])
async def list_events(
    after: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=MAX_EVENT_PAGE),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    return await ledger.list_events(after=after, limit=limit)
