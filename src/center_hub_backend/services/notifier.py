'''
In-process change notifications for the chat tables.

Services stage a ChangeEvent on their session; the events are published
only after that session's transaction commits, and dropped on rollback.
'''
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from ..common.logger import log
from ..models.chat import ChangeEvent

PENDING_EVENTS_KEY = "pending_change_events"


class ChangeNotifier:
    """
    Fan-out hub with one bounded queue per subscriber.
    A full queue drops the event for that subscriber only.
    """
    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue]:
        """
        Yields a queue of ChangeEvents. The queue is unregistered when the
        block exits, however it exits.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.add(queue)
        log.info(f"Change feed subscriber added ({self.subscriber_count} active).")
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)
            log.info(f"Change feed subscriber removed ({self.subscriber_count} active).")

    def publish(self, change: ChangeEvent) -> int:
        """Delivers an event to every subscriber. Returns how many received it."""
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(change)
                delivered += 1
            except asyncio.QueueFull:
                log.warning(f"Change feed subscriber queue full; dropping {change.table} {change.event_type.value} event.")
        return delivered


notifier = ChangeNotifier()


def stage_change_event(db: AsyncSession, change: ChangeEvent) -> None:
    """Queues an event to be published when `db` commits."""
    db.sync_session.info.setdefault(PENDING_EVENTS_KEY, []).append(change)


@event.listens_for(Session, "after_commit")
def _publish_committed_events(session: Session) -> None:
    for change in session.info.pop(PENDING_EVENTS_KEY, []):
        notifier.publish(change)


@event.listens_for(Session, "after_rollback")
def _discard_rolled_back_events(session: Session) -> None:
    session.info.pop(PENDING_EVENTS_KEY, None)
