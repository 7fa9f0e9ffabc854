"""In-process change feed.

Services mark the tables they write in ``session.info``; once the session
commits, the ``after_commit`` listener publishes one event per table so
subscribers only ever hear about committed data.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

PENDING_CHANGES_KEY = "scoreboard.pending_changes"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed write to one table."""

    table: str
    action: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> dict:
        return {
            "table": self.table,
            "action": self.action,
            "occurred_at": self.occurred_at.isoformat(),
        }


ChangeCallback = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Thread-safe publish/subscribe for change events."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[int, ChangeCallback] = {}
        self._next_id = 0

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            subscription_id = self._next_id
            self._next_id += 1
            self._subscribers[subscription_id] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(subscription_id, None)

        return unsubscribe

    def publish(self, change: ChangeEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.values())
        for callback in callbacks:
            try:
                callback(change)
            except Exception:
                logger.exception(f"Change subscriber failed for {change.table}/{change.action}")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


# Global feed instance
change_feed = ChangeFeed()


def record_change(db: Session, table: str, action: str) -> None:
    """Queue a change to be published when ``db`` commits."""
    pending: list[tuple[str, str]] = db.info.setdefault(PENDING_CHANGES_KEY, [])
    if (table, action) not in pending:
        pending.append((table, action))


@event.listens_for(Session, "after_commit")
def _publish_committed_changes(session: Session) -> None:
    pending = session.info.pop(PENDING_CHANGES_KEY, None)
    if not pending:
        return
    for table, action in pending:
        change_feed.publish(ChangeEvent(table=table, action=action))


@event.listens_for(Session, "after_rollback")
def _discard_rolled_back_changes(session: Session) -> None:
    session.info.pop(PENDING_CHANGES_KEY, None)
