"""Domain event types.

Events are immutable records of something that already happened. They are
published after the change is committed, so handlers never observe state
that could still be rolled back.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    TIMECARD = "timecard"
    READINESS = "readiness"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every domain event."""

    event_id: UUID
    timestamp: datetime
    correlation_id: UUID
    actor_id: UUID | None  # None for system-triggered events
    actor_type: str  # 'user' or 'system'
    source_service: str
    version: int = 1

    @classmethod
    def create(
        cls,
        actor_id: UUID | None = None,
        correlation_id: UUID | None = None,
        source_service: str = "talent_logistics",
    ) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(
            event_id=uuid4(),
            timestamp=datetime.now(timezone.utc),
            correlation_id=correlation_id or uuid4(),
            actor_id=actor_id,
            actor_type="user" if actor_id is not None else "system",
            source_service=source_service,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        raise NotImplementedError("Subclasses must define category")

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(asdict(self))
        data["event_type"] = self.event_type
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def _serialize(obj: Any) -> Any:
    """Recursively serialize objects for JSON compatibility."""
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_serialize(v) for v in obj]
    elif isinstance(obj, UUID):
        return str(obj)
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    return obj


# =============================================================================
# Timecard Events
# =============================================================================


@dataclass(frozen=True)
class TimecardStatusChanged(DomainEvent):
    """A timecard moved to a new status."""

    timecard_id: UUID
    user_id: UUID
    project_id: UUID
    from_status: str
    to_status: str
    action: str
    change_id: UUID | None

    @property
    def category(self) -> EventCategory:
        return EventCategory.TIMECARD


# =============================================================================
# Readiness Events
# =============================================================================


@dataclass(frozen=True)
class ReadinessRecalculated(DomainEvent):
    """A project's readiness summary was recomputed and stored."""

    project_id: UUID
    overall_status: str
    previous_overall_status: str | None
    urgent_assignment_issues: int

    @property
    def category(self) -> EventCategory:
        return EventCategory.READINESS


@dataclass(frozen=True)
class ReadinessAreaFinalized(DomainEvent):
    """A readiness area was finalized or unfinalized."""

    project_id: UUID
    area: str
    finalized: bool

    @property
    def category(self) -> EventCategory:
        return EventCategory.READINESS
