"""Domain events and the publish seam used by services."""

from talent_logistics.events.emitter import (
    EventEmitter,
    EventHandler,
    EventPublisher,
    NullPublisher,
)
from talent_logistics.events.types import (
    DomainEvent,
    EventCategory,
    EventMetadata,
    ReadinessAreaFinalized,
    ReadinessRecalculated,
    TimecardStatusChanged,
)

__all__ = [
    "DomainEvent",
    "EventCategory",
    "EventMetadata",
    "TimecardStatusChanged",
    "ReadinessRecalculated",
    "ReadinessAreaFinalized",
    "EventEmitter",
    "EventHandler",
    "EventPublisher",
    "NullPublisher",
]
