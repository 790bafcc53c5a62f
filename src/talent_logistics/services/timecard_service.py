"""Timecard service - edits and status transitions with audit logging."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from talent_logistics.events import (
    EventMetadata,
    EventPublisher,
    NullPublisher,
    TimecardStatusChanged,
)
from talent_logistics.models import TimecardAuditLog, TimecardDailyEntry, TimecardHeader, utcnow
from talent_logistics.services.audit_log_service import AuditLogService, FieldChange
from talent_logistics.services.errors import (
    ConflictError,
    InvalidTransitionError,
    NoChangesDetectedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from talent_logistics.services.hours import calculate_daily_hours, round_hours, sum_hours
from talent_logistics.services.permissions import (
    Actor,
    ApprovalSettings,
    can_self_approve,
    has_approval_authority,
    load_approval_settings,
)
from talent_logistics.services.state_machine import (
    TimecardAction,
    TimecardStateMachine,
    TimecardStatus,
)

logger = logging.getLogger(__name__)

HEADER_FIELDS = ("total_hours", "pay_rate", "rejection_reason")
DAILY_FIELDS = ("check_in_time", "check_out_time", "break_start_time", "break_end_time")

_DAY_KEY = re.compile(r"^day_(\d+)$")


@dataclass
class EditResult:
    """Outcome of a successful timecard mutation."""

    timecard: TimecardHeader
    changes: list[FieldChange] = field(default_factory=list)
    audit_entries: list[TimecardAuditLog] = field(default_factory=list)
    from_status: str | None = None
    to_status: str | None = None
    message: str = "Timecard updated successfully"

    @property
    def status_changed(self) -> bool:
        return self.from_status != self.to_status


@dataclass
class _AuthContext:
    actor: Actor
    is_owner: bool
    is_approver: bool


class TimecardService:
    """Service for timecard edits and lifecycle transitions.

    Operations:
    - edit: field and daily-entry changes, optionally with a status change
    - submit: owner sends a timecard for approval
    - approve / reject: approver decides on a submitted timecard
    - return_to_draft: approver reopens a rejected timecard
    - bulk_approve: approve several submitted timecards at once

    The primary mutation is committed before its audit rows are written.
    Audit failures never fail the operation.
    """

    def __init__(
        self,
        session: AsyncSession,
        audit_service: AuditLogService | None = None,
        publisher: EventPublisher | None = None,
    ):
        self.session = session
        if audit_service is None:
            audit_service = AuditLogService(session)
        self.audit_service = audit_service
        self.publisher = publisher if publisher is not None else NullPublisher()

    async def get_timecard(self, timecard_id: UUID) -> TimecardHeader:
        """Load a timecard with its daily entries."""
        result = await self.session.execute(
            select(TimecardHeader)
            .where(TimecardHeader.id == timecard_id)
            .options(selectinload(TimecardHeader.daily_entries))
        )
        timecard = result.scalar_one_or_none()
        if timecard is None:
            raise NotFoundError("Timecard", timecard_id, code="TIMECARD_NOT_FOUND")
        return timecard

    async def authorize_view(self, timecard: TimecardHeader, actor: Actor) -> None:
        """Only the owner or an approver may read a timecard's history."""
        auth = await self._auth_context(timecard, actor)
        if not (auth.is_owner or auth.is_approver):
            raise PermissionDeniedError("Insufficient permissions to view this timecard")

    # =========================================================================
    # Edit
    # =========================================================================

    async def edit(
        self,
        timecard_id: UUID,
        actor: Actor,
        updates: dict[str, Any] | None = None,
        daily_updates: dict[str, dict[str, Any]] | None = None,
        admin_note: str | None = None,
        edit_comment: str | None = None,
        return_to_draft: bool = False,
        expected_version: int | None = None,
    ) -> EditResult:
        """Apply field edits and an optional status change as one interaction.

        Raises:
            NotFoundError: timecard does not exist
            ConflictError: expected_version is stale
            PermissionDeniedError: actor may not make this change
            InvalidTransitionError: status does not allow this change
            ValidationError: malformed input or missing admin note
            NoChangesDetectedError: nothing would change
        """
        updates = dict(updates or {})
        daily_updates = daily_updates or {}

        timecard = await self.get_timecard(timecard_id)
        self._check_version(timecard, expected_version)
        auth = await self._auth_context(timecard, actor)
        current = timecard.status

        requested_status = updates.pop("status", None)
        unknown = set(updates) - set(HEADER_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(sorted(unknown))}",
                context={"fields": sorted(unknown)},
            )

        # Resolve the status action before looking at any values
        action: str | None = None
        if return_to_draft:
            if not auth.is_approver:
                raise PermissionDeniedError("Insufficient permissions to return timecard to draft")
            action = TimecardAction.RETURN_TO_DRAFT.value
        elif requested_status is not None and requested_status != current:
            action = TimecardStateMachine.action_for_target(current, requested_status)
        elif updates or daily_updates:
            action = self._edit_action(current, auth)

        if action is not None:
            self._authorize_action(current, action, auth)

        if not auth.is_owner and not (admin_note or edit_comment):
            raise ValidationError("Admin edits require an admin note or edit comment")

        header_changes = self._header_changes(timecard, updates)
        daily_changes, touched = self._daily_changes(timecard, daily_updates)

        status_change: list[FieldChange] = []
        to_status = current
        if action is not None:
            to_status = TimecardStateMachine.next_status(current, action)
            if to_status != current:
                status_change = [FieldChange("status", current, to_status)]

        if action == TimecardAction.REJECT.value:
            reason = updates.get("rejection_reason", timecard.rejection_reason)
            if not (reason or "").strip():
                raise ValidationError("Rejection reason is required")

        changes = status_change + header_changes + daily_changes
        if not changes:
            raise NoChangesDetectedError()

        for change in header_changes:
            setattr(timecard, change.field_name, change.new_value)
        for entry, values in touched:
            for field_name, value in values.items():
                setattr(entry, field_name, value)
            entry.hours_worked = calculate_daily_hours(
                entry.check_in_time, entry.check_out_time, entry.break_start_time, entry.break_end_time
            )
        explicit_total = any(c.field_name == "total_hours" for c in header_changes)
        if touched and not explicit_total:
            timecard.total_hours = sum_hours(e.hours_worked for e in timecard.daily_entries)

        self._apply_status(timecard, to_status, actor)
        if not auth.is_owner:
            timecard.admin_edited = True
            if admin_note:
                timecard.admin_notes = admin_note
            if edit_comment:
                timecard.edit_comments = edit_comment
        timecard.last_edited_by = actor.user_id

        action_type = TimecardStateMachine.resolve_action_type(action, auth.is_owner)
        return await self._commit_and_audit(
            timecard,
            actor,
            changes,
            action_type,
            from_status=current,
            action=action,
        )

    # =========================================================================
    # Dedicated transitions
    # =========================================================================

    async def submit(
        self,
        timecard_id: UUID,
        actor: Actor,
        expected_version: int | None = None,
    ) -> EditResult:
        """Owner submits a timecard for approval."""
        return await self._transition(
            timecard_id,
            actor,
            TimecardAction.SUBMIT.value,
            expected_version=expected_version,
            message="Timecard submitted successfully",
        )

    async def approve(
        self,
        timecard_id: UUID,
        actor: Actor,
        comments: str | None = None,
        expected_version: int | None = None,
    ) -> EditResult:
        """Approver approves a submitted timecard."""
        return await self._transition(
            timecard_id,
            actor,
            TimecardAction.APPROVE.value,
            comments=comments,
            expected_version=expected_version,
            message="Timecard approved successfully",
        )

    async def reject(
        self,
        timecard_id: UUID,
        actor: Actor,
        reason: str,
        rejected_fields: Sequence[str] | None = None,
        expected_version: int | None = None,
    ) -> EditResult:
        """Approver rejects a submitted timecard.

        The status, reason and flagged fields are recorded as one change
        group with rejection_edit attribution.
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason is required")

        return await self._transition(
            timecard_id,
            actor,
            TimecardAction.REJECT.value,
            expected_version=expected_version,
            extra={
                "rejection_reason": reason,
                **({"rejected_fields": list(rejected_fields)} if rejected_fields else {}),
            },
            message="Timecard rejected successfully",
        )

    async def return_to_draft(
        self,
        timecard_id: UUID,
        actor: Actor,
        expected_version: int | None = None,
    ) -> EditResult:
        """Approver moves a rejected timecard back to draft."""
        return await self._transition(
            timecard_id,
            actor,
            TimecardAction.RETURN_TO_DRAFT.value,
            expected_version=expected_version,
            message="Timecard returned to draft",
        )

    async def bulk_approve(
        self,
        timecard_ids: Sequence[UUID],
        actor: Actor,
        comments: str | None = None,
    ) -> list[TimecardHeader]:
        """Approve several submitted timecards in one commit.

        Every timecard is validated before any is changed. Audit rows use
        status_change attribution, one change group per timecard.
        """
        if not timecard_ids:
            raise ValidationError("At least one timecard is required")

        result = await self.session.execute(
            select(TimecardHeader).where(TimecardHeader.id.in_(list(timecard_ids)))
        )
        timecards = list(result.scalars().all())
        found = {tc.id for tc in timecards}
        missing = [str(tc_id) for tc_id in timecard_ids if tc_id not in found]
        if missing:
            raise NotFoundError("Timecard", missing[0], code="TIMECARD_NOT_FOUND")

        settings = await load_approval_settings(self.session)
        for timecard in timecards:
            auth = self._auth_for(timecard, actor, settings)
            self._authorize_action(timecard.status, TimecardAction.APPROVE.value, auth)
            TimecardStateMachine.next_status(timecard.status, TimecardAction.APPROVE.value)

        previous = {tc.id: tc.status for tc in timecards}
        for timecard in timecards:
            self._apply_status(timecard, TimecardStatus.APPROVED.value, actor)
            if comments:
                timecard.edit_comments = comments
            timecard.last_edited_by = actor.user_id

        await self._commit()

        for timecard in timecards:
            entries = await self.audit_service.log_status_change(
                timecard.id, previous[timecard.id], timecard.status, actor.user_id
            )
            self._publish_status_change(
                timecard, previous[timecard.id], TimecardAction.APPROVE.value, actor, entries
            )

        logger.info("Approved %d timecards by %s", len(timecards), actor.user_id)
        return timecards

    # =========================================================================
    # Internals
    # =========================================================================

    async def _transition(
        self,
        timecard_id: UUID,
        actor: Actor,
        action: str,
        comments: str | None = None,
        expected_version: int | None = None,
        extra: dict[str, Any] | None = None,
        message: str = "Timecard updated successfully",
    ) -> EditResult:
        timecard = await self.get_timecard(timecard_id)
        self._check_version(timecard, expected_version)
        auth = await self._auth_context(timecard, actor)
        current = timecard.status

        self._authorize_action(current, action, auth)
        to_status = TimecardStateMachine.next_status(current, action)

        changes = [FieldChange("status", current, to_status)]
        for field_name, value in (extra or {}).items():
            changes.append(FieldChange(field_name, getattr(timecard, field_name), value))
            setattr(timecard, field_name, value)

        self._apply_status(timecard, to_status, actor)
        if comments:
            timecard.edit_comments = comments
        timecard.last_edited_by = actor.user_id

        action_type = TimecardStateMachine.resolve_action_type(action, auth.is_owner)
        result = await self._commit_and_audit(
            timecard, actor, changes, action_type, from_status=current, action=action
        )
        result.message = message
        return result

    async def _commit_and_audit(
        self,
        timecard: TimecardHeader,
        actor: Actor,
        changes: list[FieldChange],
        action_type: str,
        from_status: str,
        action: str | None,
    ) -> EditResult:
        await self._commit()

        entries = await self.audit_service.record_changes(
            timecard.id, changes, actor.user_id, action_type
        )

        if timecard.status != from_status:
            self._publish_status_change(timecard, from_status, action, actor, entries)

        logger.info(
            "Timecard %s changed by %s (%s, %d fields)",
            timecard.id,
            actor.user_id,
            action_type,
            len(changes),
        )
        return EditResult(
            timecard=timecard,
            changes=changes,
            audit_entries=entries,
            from_status=from_status,
            to_status=timecard.status,
        )

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except StaleDataError as e:
            await self.session.rollback()
            raise ConflictError(
                "Timecard was modified by another request; reload and retry"
            ) from e

    async def _auth_context(self, timecard: TimecardHeader, actor: Actor) -> _AuthContext:
        settings = await load_approval_settings(self.session)
        return self._auth_for(timecard, actor, settings)

    @staticmethod
    def _auth_for(timecard: TimecardHeader, actor: Actor, settings: ApprovalSettings) -> _AuthContext:
        return _AuthContext(
            actor=actor,
            is_owner=actor.user_id == timecard.user_id,
            is_approver=has_approval_authority(actor.role, settings),
        )

    @staticmethod
    def _check_version(timecard: TimecardHeader, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != timecard.version:
            raise ConflictError(
                "Timecard was modified by another request; reload and retry",
                context={"expected_version": expected_version, "current_version": timecard.version},
            )

    @staticmethod
    def _edit_action(status: str, auth: _AuthContext) -> str | None:
        """Pick the action implied by a field edit without a status request."""
        if TimecardStateMachine.is_terminal(status):
            raise InvalidTransitionError(
                status, TimecardStatus.EDITED_DRAFT.value, "approved timecards cannot be edited"
            )
        if auth.is_owner and TimecardStateMachine.can_owner_edit(status):
            return None
        if auth.is_approver:
            if TimecardStateMachine.can_apply(status, TimecardAction.APPROVER_EDIT):
                return TimecardAction.APPROVER_EDIT.value
            raise InvalidTransitionError(
                status,
                TimecardStatus.EDITED_DRAFT.value,
                "approver edits are limited to draft, submitted or edited_draft timecards",
            )
        if auth.is_owner:
            raise InvalidTransitionError(
                status, status, "only draft, rejected or edited_draft timecards can be edited"
            )
        raise PermissionDeniedError("Insufficient permissions to edit this timecard")

    @staticmethod
    def _authorize_action(status: str, action: str, auth: _AuthContext) -> None:
        """Raise PermissionDeniedError if the actor may not take action."""
        if TimecardStateMachine.requires_owner(action):
            if not auth.is_owner:
                raise PermissionDeniedError("Only the timecard owner can submit it")
            return

        if not auth.is_approver:
            raise PermissionDeniedError(
                "Insufficient permissions for this timecard action",
                context={"action": action, "status": status},
            )

        decides = action in (TimecardAction.APPROVE.value, TimecardAction.REJECT.value)
        if decides and auth.is_owner and not can_self_approve(auth.actor.role):
            raise PermissionDeniedError("Cannot approve or reject your own timecard")

    @staticmethod
    def _apply_status(timecard: TimecardHeader, to_status: str, actor: Actor) -> None:
        if timecard.status == to_status:
            return
        timecard.status = to_status
        if to_status == TimecardStatus.SUBMITTED.value:
            timecard.submitted_at = utcnow()
        elif to_status == TimecardStatus.DRAFT.value:
            timecard.submitted_at = None
        elif to_status == TimecardStatus.APPROVED.value:
            timecard.approved_at = utcnow()
            timecard.approved_by = actor.user_id

    @staticmethod
    def _header_changes(timecard: TimecardHeader, updates: dict[str, Any]) -> list[FieldChange]:
        changes = []
        for field_name in HEADER_FIELDS:
            if field_name not in updates:
                continue
            value = _coerce_header_value(field_name, updates[field_name])
            change = FieldChange(field_name, getattr(timecard, field_name), value)
            if change.is_change:
                changes.append(change)
        return changes

    @staticmethod
    def _daily_changes(
        timecard: TimecardHeader,
        daily_updates: dict[str, dict[str, Any]],
    ) -> tuple[list[FieldChange], list[tuple[TimecardDailyEntry, dict[str, Any]]]]:
        """Diff daily updates, returning changes and the entries they touch."""
        changes: list[FieldChange] = []
        touched: list[tuple[TimecardDailyEntry, dict[str, Any]]] = []

        for day_key, values in daily_updates.items():
            entry = _resolve_day(timecard.daily_entries, day_key)
            unknown = set(values) - set(DAILY_FIELDS)
            if unknown:
                raise ValidationError(
                    f"Unknown daily fields: {', '.join(sorted(unknown))}",
                    context={"day": day_key},
                )

            entry_values: dict[str, Any] = {}
            for field_name in DAILY_FIELDS:
                if field_name not in values:
                    continue
                value = _coerce_time(field_name, values[field_name])
                change = FieldChange(field_name, getattr(entry, field_name), value, entry.work_date)
                if change.is_change:
                    changes.append(change)
                    entry_values[field_name] = value
            if entry_values:
                touched.append((entry, entry_values))

        return changes, touched

    def _publish_status_change(
        self,
        timecard: TimecardHeader,
        from_status: str,
        action: str | None,
        actor: Actor,
        entries: list[TimecardAuditLog],
    ) -> None:
        self.publisher.publish(
            TimecardStatusChanged(
                metadata=EventMetadata.create(actor_id=actor.user_id),
                timecard_id=timecard.id,
                user_id=timecard.user_id,
                project_id=timecard.project_id,
                from_status=from_status,
                to_status=timecard.status,
                action=action or "",
                change_id=entries[0].change_id if entries else None,
            )
        )


def _resolve_day(entries: Sequence[TimecardDailyEntry], day_key: str) -> TimecardDailyEntry:
    """Find a daily entry by ``day_N`` position or ISO date."""
    match = _DAY_KEY.match(day_key)
    if match:
        index = int(match.group(1))
        ordered = sorted(entries, key=lambda e: e.work_date)
        if 0 <= index < len(ordered):
            return ordered[index]
    else:
        try:
            work_date = date.fromisoformat(day_key)
        except ValueError:
            work_date = None
        for entry in entries:
            if entry.work_date == work_date:
                return entry

    raise ValidationError(f"Unknown day '{day_key}'", context={"day": day_key})


def _coerce_time(field_name: str, value: Any) -> time | None:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(
            f"Invalid time for {field_name}: {value!r}", context={"field": field_name}
        ) from e


def _coerce_header_value(field_name: str, value: Any) -> Any:
    if field_name == "rejection_reason":
        return value
    if value is None:
        if field_name == "total_hours":
            raise ValidationError("total_hours cannot be empty", context={"field": field_name})
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation as e:
        raise ValidationError(
            f"Invalid number for {field_name}: {value!r}", context={"field": field_name}
        ) from e
    if number < 0:
        raise ValidationError(f"{field_name} cannot be negative", context={"field": field_name})
    return round_hours(number)
