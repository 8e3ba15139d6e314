"""Authorization state: the administrator and the producer set.

These two tables are the only persisted authorization state.  The
administrator row is written once when the ledger is bootstrapped and is
never updated.  Producers are never deleted; removal flips ``is_authorized``.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from producttrace.database import LedgerBase
from producttrace.utils.clock import utcnow


class Administrator(LedgerBase):
    __tablename__ = "administrator"

    # Single row, pinned to id 1
    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    identity: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Producer(LedgerBase):
    __tablename__ = "producers"

    identity: Mapped[str] = mapped_column(String(255), primary_key=True)
    is_authorized: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )
