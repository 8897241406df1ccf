"""Event bus for verification record changes.

Storage backends publish an event whenever a record is written, and the
manager publishes user-facing notices (such as "re-verification required").
Listeners subscribe per event type and are awaited in priority order.

Example usage:
    bus = EventBus()
    unsubscribe = bus.subscribe(
        VerificationRecordChangedEvent,
        refresh_profile_badge,
        filter_fn=lambda e: e.user_id == "user-1",
    )

    await bus.publish(VerificationRecordChangedEvent(user_id="user-1", ...))
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Coroutine, Generic, TypeVar
from uuid import uuid4

import structlog

from teamup_core.models import utcnow

logger = structlog.get_logger()

E = TypeVar("E", bound="Event")
Listener = Callable[[E], Coroutine[Any, Any, None]]


class EventPriority(int, Enum):
    """Order in which listeners of the same event are awaited."""

    LOW = 0
    NORMAL = 50
    HIGH = 100
    CRITICAL = 200


@dataclass
class Event(ABC):
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utcnow)

    @property
    @abstractmethod
    def event_type(self) -> str:
        """Dotted name used in logs."""


@dataclass
class VerificationRecordChangedEvent(Event):
    """A verification record was created or updated in storage."""

    user_id: str = ""
    record_id: str = ""
    status: str = ""
    created: bool = False

    @property
    def event_type(self) -> str:
        return "verification.record_changed"


@dataclass
class ReverificationRequiredEvent(Event):
    """A profile edit invalidated the user's verified skills."""

    user_id: str = ""
    record_id: str = ""
    reason: str = "profile_edited"
    message: str = "Your skills changed. Please re-verify to restore verified badges."

    @property
    def event_type(self) -> str:
        return "verification.reverification_required"


@dataclass
class Subscription(Generic[E]):
    handler: Listener
    priority: EventPriority = EventPriority.NORMAL
    filter_fn: Callable[[E], bool] | None = None

    def matches(self, event: E) -> bool:
        return self.filter_fn is None or self.filter_fn(event)


class EventBus:
    """In-process fan-out of record events to async listeners.

    Listeners run one after another, highest priority first. A listener that
    raises is logged and skipped; the others still see the event and the
    publisher gets the collected exceptions back.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[type[Event], list[Subscription]] = defaultdict(list)

    def subscribe(
        self,
        event_type: type[E],
        handler: Listener,
        priority: EventPriority = EventPriority.NORMAL,
        filter_fn: Callable[[E], bool] | None = None,
    ) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``.

        ``filter_fn`` narrows delivery, typically to one user's records.
        Returns a callable that removes the registration; calling it twice
        is harmless.
        """
        subscription = Subscription(handler=handler, priority=priority, filter_fn=filter_fn)
        listeners = self._subscriptions[event_type]
        listeners.append(subscription)
        listeners.sort(key=lambda s: s.priority.value, reverse=True)

        logger.debug(
            "Listener registered",
            event_type=event_type.__name__,
            priority=priority.name,
            listeners=len(listeners),
        )

        def unsubscribe() -> None:
            if subscription in listeners:
                listeners.remove(subscription)

        return unsubscribe

    def handler_count(self, event_type: type[Event]) -> int:
        return len(self._subscriptions.get(event_type, []))

    async def publish(self, event: Event) -> list[Exception]:
        """Deliver ``event`` to every matching listener and return their failures."""
        listeners = [s for s in self._subscriptions.get(type(event), []) if s.matches(event)]
        logger.debug(
            "Publishing event",
            event_type=event.event_type,
            event_id=event.event_id,
            listeners=len(listeners),
        )

        failures: list[Exception] = []
        for subscription in listeners:
            try:
                await subscription.handler(event)
            except Exception as e:
                logger.error(
                    "Event listener failed",
                    event_type=event.event_type,
                    event_id=event.event_id,
                    error=str(e),
                )
                failures.append(e)
        return failures

    def clear(self) -> None:
        self._subscriptions.clear()


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Process-wide bus used when a repository or manager is built without one."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    global _event_bus
    if _event_bus is not None:
        _event_bus.clear()
    _event_bus = None
