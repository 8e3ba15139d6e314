"""Change notifiers — subscribers to committed ledger events.

The ledger appends every notification to the ``ledger_events`` table inside
the operation's transaction and, after the commit, hands each one to every
subscribed ChangeNotifier in emission order.  Notifiers only ever see
committed operations.

Built-in sinks:
  RecordingNotifier → keeps notifications in memory (embedding, tests)
  LoggingNotifier   → writes one log line per notification
"""

import logging
from abc import ABC, abstractmethod

from producttrace.models.ledger_event import EventKind
from producttrace.schemas.event import ChangeNotification


class ChangeNotifier(ABC):
    @abstractmethod
    async def publish(self, notification: ChangeNotification) -> None:
        """Deliver one committed notification."""


class RecordingNotifier(ChangeNotifier):
    def __init__(self):
        self.notifications: list[ChangeNotification] = []

    async def publish(self, notification: ChangeNotification) -> None:
        self.notifications.append(notification)

    def kinds(self) -> list[EventKind]:
        return [n.kind for n in self.notifications]

    def of_kind(self, kind: EventKind) -> list[ChangeNotification]:
        return [n for n in self.notifications if n.kind == kind]

    def clear(self) -> None:
        self.notifications.clear()


class LoggingNotifier(ChangeNotifier):
    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO):
        self.logger = logger or logging.getLogger("producttrace.events")
        self.level = level

    async def publish(self, notification: ChangeNotification) -> None:
        self.logger.log(
            self.level,
            "#%d %s product=%s batch=%s actor=%s %s",
            notification.sequence,
            notification.kind.value,
            notification.product_id,
            notification.batch_id,
            notification.actor,
            notification.payload,
        )
