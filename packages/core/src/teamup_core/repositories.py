"""Repository abstractions for verification record storage.

This module provides the storage interface the verification manager relies
on and an in-memory implementation. Production deployments should implement
a database-backed version that offers the same queries and publishes the
same change events.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone

import structlog

from teamup_core.events import EventBus, VerificationRecordChangedEvent, get_event_bus
from teamup_core.models import VerificationRecord, VerificationStatus

logger = structlog.get_logger()

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class VerificationRecordRepository(ABC):
    """Storage for verification records.

    Implementations must publish a :class:`VerificationRecordChangedEvent`
    after every successful create or update; subscriptions are built on it.
    """

    @abstractmethod
    async def create(self, record: VerificationRecord) -> VerificationRecord:
        """Insert a new record."""
        pass

    @abstractmethod
    async def update(self, record: VerificationRecord) -> VerificationRecord:
        """Replace an existing record. Raises KeyError if it does not exist."""
        pass

    @abstractmethod
    async def get(self, record_id: str) -> VerificationRecord | None:
        """Get a record by ID."""
        pass

    @abstractmethod
    async def find(
        self,
        user_id: str,
        status: VerificationStatus | None = None,
    ) -> list[VerificationRecord]:
        """All records for a user, optionally filtered by status."""
        pass

    async def latest(
        self,
        user_id: str,
        status: VerificationStatus = VerificationStatus.VERIFIED,
    ) -> VerificationRecord | None:
        """Most recent record by verified_at (desc, limit 1)."""
        records = await self.find(user_id, status)
        if not records:
            return None
        return max(records, key=lambda r: r.verified_at or _EPOCH)

    async def count(self, user_id: str) -> int:
        return len(await self.find(user_id))


class InMemoryVerificationRecordRepository(VerificationRecordRepository):
    """In-memory implementation of VerificationRecordRepository.

    Suitable for testing and development. Not suitable for production
    use as data is not persisted across restarts.
    """

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._storage: dict[str, VerificationRecord] = {}
        self.event_bus = event_bus or get_event_bus()

    async def _notify(self, record: VerificationRecord, created: bool) -> None:
        await self.event_bus.publish(
            VerificationRecordChangedEvent(
                user_id=record.user_id,
                record_id=record.id,
                status=record.status.value,
                created=created,
            )
        )

    async def create(self, record: VerificationRecord) -> VerificationRecord:
        if record.id in self._storage:
            raise ValueError(f"record {record.id} already exists")
        self._storage[record.id] = record.model_copy(deep=True)
        await self._notify(record, created=True)
        return record

    async def update(self, record: VerificationRecord) -> VerificationRecord:
        if record.id not in self._storage:
            raise KeyError(record.id)
        self._storage[record.id] = record.model_copy(deep=True)
        await self._notify(record, created=False)
        return record

    async def get(self, record_id: str) -> VerificationRecord | None:
        stored = self._storage.get(record_id)
        return stored.model_copy(deep=True) if stored else None

    async def find(
        self,
        user_id: str,
        status: VerificationStatus | None = None,
    ) -> list[VerificationRecord]:
        return [
            r.model_copy(deep=True)
            for r in self._storage.values()
            if r.user_id == user_id and (status is None or r.status == status)
        ]
