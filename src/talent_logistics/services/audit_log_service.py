"""Append-only audit trail for timecard changes.

The service turns "old value → new value" diffs into audit rows. All rows
produced by one call share a change_id and a changed_at so a reader can
reconstruct everything changed in a single interaction.

Recording is best-effort relative to the primary mutation: persistence
failures are logged and swallowed, never propagated to the caller.
"""

from __future__ import annotations

import json
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, Sequence, runtime_checkable
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from talent_logistics.models import TimecardAuditLog, utcnow
from talent_logistics.services.errors import PersistenceError
from talent_logistics.services.state_machine import AuditActionType

logger = logging.getLogger(__name__)


# Raw daily-entry column → canonical audit label
FIELD_NAME_MAP: dict[str, str] = {
    "check_in_time": "check_in",
    "check_out_time": "check_out",
    "break_start_time": "break_start",
    "break_end_time": "break_end",
}

TRACKABLE_FIELDS = frozenset({
    "check_in_time",
    "check_out_time",
    "break_start_time",
    "break_end_time",
    "total_hours",
    "pay_rate",
    "status",
    "rejection_reason",
    "rejected_fields",
    "admin_notes",
    "edit_comments",
})

_DAILY_FIELD_PATTERN = re.compile(
    r"^(check_in_time|check_out_time|break_start_time|break_end_time)_day_\d+$"
)

ACTION_TYPES = frozenset(a.value for a in AuditActionType)


def canonical_field_name(field_name: str) -> str:
    """Map a raw column name to its audit label."""
    return FIELD_NAME_MAP.get(field_name, field_name)


def is_trackable_field(field_name: str) -> bool:
    """Check if a field participates in change detection."""
    return field_name in TRACKABLE_FIELDS or bool(_DAILY_FIELD_PATTERN.match(field_name))


def serialize_value(value: Any) -> str | None:
    """Serialize a value to its stored text form.

    Numbers are normalized so 8, 8.0 and Decimal("8.00") compare equal.
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        normalized = Decimal(str(value)).normalize()
        if normalized == normalized.to_integral_value():
            normalized = normalized.quantize(Decimal(1))
        return format(normalized, "f")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return json.dumps(value, sort_keys=True, default=str)


@dataclass(frozen=True)
class FieldChange:
    """A single field diff. work_date overrides the call-level work date."""

    field_name: str
    old_value: Any
    new_value: Any
    work_date: date | None = None

    @property
    def is_change(self) -> bool:
        return serialize_value(self.old_value) != serialize_value(self.new_value)


@dataclass
class AuditLogFilter:
    """Query filter for audit log reads."""

    action_types: list[str] | None = None
    field_names: list[str] | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int | None = None
    offset: int = 0


@dataclass
class GroupedAuditEntry:
    """All audit rows written by one interaction."""

    change_id: UUID
    changed_at: datetime
    changed_by: UUID
    action_type: str
    changes: list[TimecardAuditLog] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "change_id": str(self.change_id),
            "changed_at": self.changed_at.isoformat(),
            "changed_by": str(self.changed_by),
            "action_type": self.action_type,
            "changes": [entry.to_dict() for entry in self.changes],
        }


@dataclass
class AuditLogStatistics:
    """Per-timecard audit summary."""

    total_changes: int = 0
    user_edits: int = 0
    admin_edits: int = 0
    rejection_edits: int = 0
    status_changes: int = 0
    last_modified: datetime | None = None
    last_modified_by: UUID | None = None


@runtime_checkable
class AuditLogStore(Protocol):
    """Append-only persistence contract. There is no update or delete."""

    async def insert(self, entries: Sequence[TimecardAuditLog]) -> None:
        """Persist a batch atomically or raise PersistenceError."""
        ...


class SqlAlchemyAuditLogStore:
    """Audit log store backed by the timecard_audit_log table.

    Batches are written through a short-lived session on the caller's bind,
    so a failed write never rolls back or expires the caller's objects.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, entries: Sequence[TimecardAuditLog]) -> None:
        if not entries:
            return

        self._validate(entries)

        try:
            async with AsyncSession(self.session.bind, expire_on_commit=False) as audit_session:
                audit_session.add_all(list(entries))
                await audit_session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(
                "Failed to record audit log entries",
                context={"timecard_id": str(entries[0].timecard_id)},
            ) from e

    @staticmethod
    def _validate(entries: Sequence[TimecardAuditLog]) -> None:
        """Reject the whole batch if any row is malformed."""
        change_ids = {entry.change_id for entry in entries}
        if len(change_ids) != 1 or None in change_ids:
            raise PersistenceError("Audit batch must share exactly one change_id")

        for entry in entries:
            if entry.timecard_id is None or entry.changed_by is None:
                raise PersistenceError("Audit entry requires timecard_id and changed_by")
            if entry.action_type not in ACTION_TYPES:
                raise PersistenceError(f"Unknown audit action type '{entry.action_type}'")
            if entry.changed_at is None:
                raise PersistenceError("Audit entry requires changed_at")


class AuditLogService:
    """Records and reads the timecard audit trail."""

    def __init__(self, session: AsyncSession, store: AuditLogStore | None = None):
        self.session = session
        self.store = store if store is not None else SqlAlchemyAuditLogStore(session)

    async def record_changes(
        self,
        timecard_id: UUID,
        changes: Sequence[FieldChange],
        changed_by: UUID,
        action_type: str | AuditActionType,
        work_date: date | None = None,
    ) -> list[TimecardAuditLog]:
        """Record the changed fields of one interaction.

        Returns the rows written, or an empty list when nothing changed or
        persistence failed.
        """
        effective = [change for change in changes if change.is_change]
        if not effective:
            return []

        change_id = uuid4()
        changed_at = utcnow()
        action_value = action_type.value if isinstance(action_type, Enum) else action_type

        entries = [
            TimecardAuditLog(
                id=uuid4(),
                timecard_id=timecard_id,
                change_id=change_id,
                field_name=canonical_field_name(change.field_name),
                old_value=serialize_value(change.old_value),
                new_value=serialize_value(change.new_value),
                changed_by=changed_by,
                changed_at=changed_at,
                action_type=action_value,
                work_date=change.work_date or work_date,
            )
            for change in effective
        ]

        try:
            await self.store.insert(entries)
        except Exception:
            logger.exception(
                "Failed to record %d audit entries for timecard %s",
                len(entries),
                timecard_id,
            )
            return []

        return entries

    async def log_status_change(
        self,
        timecard_id: UUID,
        from_status: str,
        to_status: str,
        changed_by: UUID,
    ) -> list[TimecardAuditLog]:
        """Record a status-only change with status_change attribution."""
        return await self.record_changes(
            timecard_id,
            [FieldChange("status", from_status, to_status)],
            changed_by,
            AuditActionType.STATUS_CHANGE,
        )

    async def get_audit_logs(
        self,
        timecard_id: UUID,
        audit_filter: AuditLogFilter | None = None,
    ) -> list[TimecardAuditLog]:
        """Retrieve audit rows for a timecard, newest first."""
        query = self._filtered_query(select(TimecardAuditLog), timecard_id, audit_filter)
        query = query.order_by(TimecardAuditLog.changed_at.desc(), TimecardAuditLog.field_name)

        if audit_filter is not None:
            if audit_filter.offset:
                query = query.offset(audit_filter.offset)
            if audit_filter.limit is not None:
                query = query.limit(audit_filter.limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_audit_logs(
        self,
        timecard_id: UUID,
        audit_filter: AuditLogFilter | None = None,
    ) -> int:
        query = self._filtered_query(
            select(func.count(TimecardAuditLog.id)), timecard_id, audit_filter
        )
        return await self.session.scalar(query) or 0

    async def get_grouped_audit_logs(
        self,
        timecard_id: UUID,
        audit_filter: AuditLogFilter | None = None,
    ) -> list[GroupedAuditEntry]:
        """Retrieve audit rows grouped by change_id, newest group first."""
        entries = await self.get_audit_logs(timecard_id, audit_filter)

        groups: OrderedDict[UUID, GroupedAuditEntry] = OrderedDict()
        for entry in entries:
            group = groups.get(entry.change_id)
            if group is None:
                group = GroupedAuditEntry(
                    change_id=entry.change_id,
                    changed_at=entry.changed_at,
                    changed_by=entry.changed_by,
                    action_type=entry.action_type,
                )
                groups[entry.change_id] = group
            group.changes.append(entry)

        return sorted(groups.values(), key=lambda g: g.changed_at, reverse=True)

    async def get_rejected_fields(self, timecard_id: UUID) -> list[str]:
        """Field names flagged by rejection edits, most recent first."""
        result = await self.session.execute(
            select(TimecardAuditLog.field_name)
            .where(
                TimecardAuditLog.timecard_id == timecard_id,
                TimecardAuditLog.action_type == AuditActionType.REJECTION_EDIT.value,
            )
            .order_by(TimecardAuditLog.changed_at.desc())
        )
        seen: list[str] = []
        for name in result.scalars():
            if name is not None and name not in seen:
                seen.append(name)
        return seen

    async def get_statistics(self, timecard_id: UUID) -> AuditLogStatistics:
        """Count audit rows by attribution."""
        entries = await self.get_audit_logs(timecard_id)
        stats = AuditLogStatistics(total_changes=len(entries))
        for entry in entries:
            if entry.action_type == AuditActionType.USER_EDIT.value:
                stats.user_edits += 1
            elif entry.action_type == AuditActionType.ADMIN_EDIT.value:
                stats.admin_edits += 1
            elif entry.action_type == AuditActionType.REJECTION_EDIT.value:
                stats.rejection_edits += 1
            elif entry.action_type == AuditActionType.STATUS_CHANGE.value:
                stats.status_changes += 1
        if entries:
            stats.last_modified = entries[0].changed_at
            stats.last_modified_by = entries[0].changed_by
        return stats

    @staticmethod
    def detect_changes(old_data: dict[str, Any], new_data: dict[str, Any]) -> list[FieldChange]:
        """Diff two snapshots over trackable fields.

        Only keys present in new_data are compared, so partial updates do
        not register removals.
        """
        changes: list[FieldChange] = []
        for field_name in new_data:
            if not is_trackable_field(field_name):
                continue
            change = FieldChange(field_name, old_data.get(field_name), new_data[field_name])
            if change.is_change:
                changes.append(change)
        return changes

    @staticmethod
    def _filtered_query(query, timecard_id: UUID, audit_filter: AuditLogFilter | None):
        query = query.where(TimecardAuditLog.timecard_id == timecard_id)
        if audit_filter is None:
            return query
        if audit_filter.action_types:
            query = query.where(TimecardAuditLog.action_type.in_(audit_filter.action_types))
        if audit_filter.field_names:
            query = query.where(TimecardAuditLog.field_name.in_(audit_filter.field_names))
        if audit_filter.date_from is not None:
            query = query.where(TimecardAuditLog.changed_at >= audit_filter.date_from)
        if audit_filter.date_to is not None:
            query = query.where(TimecardAuditLog.changed_at <= audit_filter.date_to)
        return query
