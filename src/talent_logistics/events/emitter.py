"""In-process event emitter.

Handlers are isolated: a failing handler is logged and does not stop
delivery to the others, and never fails the operation that published.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol, TypeVar, runtime_checkable

from talent_logistics.events.types import DomainEvent, EventCategory

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DomainEvent)

EventHandler = Callable[[DomainEvent], None]


@runtime_checkable
class EventPublisher(Protocol):
    """Anything services can hand events to after a successful change."""

    def publish(self, event: DomainEvent) -> None:
        ...


@dataclass
class HandlerRegistration:
    handler: EventHandler
    event_types: set[str] | None  # None = all events
    categories: set[EventCategory] | None  # None = all categories


class EventEmitter:
    """Synchronous event emitter.

    Usage:
        emitter = EventEmitter()
        emitter.on(ReadinessRecalculated, push_to_dashboard)
        emitter.on_category(EventCategory.TIMECARD, notify_approvers)
        emitter.publish(event)
    """

    def __init__(self) -> None:
        self._handlers: list[HandlerRegistration] = []

    def on(self, event_type: type[T] | list[type[T]], handler: EventHandler) -> None:
        """Register handler for specific event type(s)."""
        if isinstance(event_type, list):
            types = {t.__name__ for t in event_type}
        else:
            types = {event_type.__name__}
        self._handlers.append(HandlerRegistration(handler, types, None))

    def on_category(
        self,
        category: EventCategory | list[EventCategory],
        handler: EventHandler,
    ) -> None:
        """Register handler for event category(ies)."""
        cats = set(category) if isinstance(category, list) else {category}
        self._handlers.append(HandlerRegistration(handler, None, cats))

    def on_all(self, handler: EventHandler) -> None:
        self._handlers.append(HandlerRegistration(handler, None, None))

    def off(self, handler: EventHandler) -> None:
        """Unregister a handler."""
        self._handlers = [reg for reg in self._handlers if reg.handler is not handler]

    def emit(self, event: DomainEvent) -> list[Exception]:
        """Deliver an event to all matching handlers.

        Returns any exceptions raised by handlers.
        """
        errors: list[Exception] = []
        event_type = event.event_type
        event_category = event.category

        for reg in self._handlers:
            if reg.event_types and event_type not in reg.event_types:
                continue
            if reg.categories and event_category not in reg.categories:
                continue

            try:
                reg.handler(event)
            except Exception as e:
                logger.exception("Handler %s failed for event %s", reg.handler, event_type)
                errors.append(e)

        return errors

    def publish(self, event: DomainEvent) -> None:
        self.emit(event)


class NullPublisher:
    """Publisher that drops every event."""

    def publish(self, event: DomainEvent) -> None:
        return None
