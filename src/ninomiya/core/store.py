"""
Notification Store - Single source of truth for live notifications.

Every mutation happens inside a per-id transaction. Transactions on the
same id run one at a time; transactions on different ids never wait on
each other. The store does not decide transitions, the lifecycle machine
does.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

import structlog

from ..errors import NotFound
from ..models import NotificationRecord, NotificationState

__all__ = ["NotificationStore"]

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class NotificationStore:
    """Mapping from id to record with a lock per id.

    Example:
        store.insert(record)

        async with store.transaction(record.id) as rec:
            rec.state = NotificationState.VISIBLE

        await store.update(record.id, lambda rec: rec.summary)
    """

    def __init__(self) -> None:
        self._records: dict[int, NotificationRecord] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, notification_id: int) -> bool:
        return self.contains(notification_id)

    def contains(self, notification_id: int) -> bool:
        """True if the id belongs to a record that has not closed."""
        record = self._records.get(notification_id)
        return record is not None and record.is_live

    def ids(self) -> list[int]:
        return list(self._records)

    def insert(self, record: NotificationRecord) -> None:
        """Add a new record.

        Raises:
            ValueError: If a live record already holds the id
        """
        if self.contains(record.id):
            raise ValueError(f"Notification {record.id} is already live")
        self._records[record.id] = record
        logger.debug("record_inserted", id=record.id)

    def get(self, notification_id: int) -> NotificationRecord | None:
        return self._records.get(notification_id)

    def remove(self, notification_id: int) -> NotificationRecord | None:
        """Evict a record. Missing ids are ignored."""
        record = self._records.pop(notification_id, None)
        lock = self._locks.get(notification_id)
        if lock is not None and not lock.locked():
            del self._locks[notification_id]
        logger.debug("record_removed", id=notification_id, found=record is not None)
        return record

    def list_visible(self) -> list[NotificationRecord]:
        """Visible records in stacking order: most urgent first, then oldest."""
        visible = [r for r in self._records.values() if r.state is NotificationState.VISIBLE]
        return sorted(visible, key=lambda r: (-r.urgency, r.created_at, r.id))

    def live(self) -> list[NotificationRecord]:
        return [r for r in self._records.values() if r.is_live]

    def _lock_for(self, notification_id: int) -> asyncio.Lock:
        lock = self._locks.get(notification_id)
        if lock is None:
            lock = self._locks[notification_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def transaction(self, notification_id: int) -> AsyncIterator[NotificationRecord]:
        """Hold the id's lock and yield its record.

        Raises:
            NotFound: If no record exists once the lock is held
        """
        lock = self._lock_for(notification_id)
        try:
            async with lock:
                record = self._records.get(notification_id)
                if record is None:
                    raise NotFound(notification_id)
                yield record
        finally:
            # Drop the lock once the record is gone and nobody holds it
            if notification_id not in self._records and not lock.locked():
                if self._locks.get(notification_id) is lock:
                    del self._locks[notification_id]

    async def update(self, notification_id: int, fn: Callable[[NotificationRecord], T]) -> T:
        """Atomic read-modify-write of one record.

        Raises:
            NotFound: If the id has no record
        """
        async with self.transaction(notification_id) as record:
            return fn(record)
