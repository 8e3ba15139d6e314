"""Change notification as published to subscribers and served to indexers."""

from datetime import datetime

from pydantic import BaseModel

from producttrace.models.ledger_event import EventKind


class ChangeNotification(BaseModel):
    sequence: int
    kind: EventKind
    product_id: int | None = None
    batch_id: int | None = None
    actor: str | None = None
    payload: dict
    recorded_at: datetime

    model_config = {"from_attributes": True}
