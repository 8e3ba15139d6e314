"""Ledger time.

Timestamps are stored as naive UTC datetimes.  ``LedgerClock`` hands out one
timestamp per operation and never goes backwards, even if the wall clock
does; the ledger only calls it while holding its write lock.
"""

from collections.abc import Callable
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LedgerClock:
    def __init__(self, source: Callable[[], datetime] = utcnow):
        self._source = source
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = self._source()
        if self._last is not None and current < self._last:
            current = self._last
        self._last = current
        return current
