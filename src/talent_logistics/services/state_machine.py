"""Timecard state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from talent_logistics.services.errors import InvalidTransitionError


class TimecardStatus(str, Enum):
    """Timecard status values."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    REJECTED = "rejected"
    EDITED_DRAFT = "edited_draft"
    APPROVED = "approved"


class TimecardAction(str, Enum):
    """Actions that move a timecard between statuses."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    APPROVER_EDIT = "approver_edit"
    RETURN_TO_DRAFT = "return_to_draft"


class AuditActionType(str, Enum):
    """Attribution recorded on audit log rows."""

    USER_EDIT = "user_edit"
    ADMIN_EDIT = "admin_edit"
    REJECTION_EDIT = "rejection_edit"
    STATUS_CHANGE = "status_change"


class TimecardStateMachine:
    """State machine for timecard status transitions.

    Allowed transitions:
    - draft → submitted (owner submits)
    - edited_draft → submitted (owner submits after an approver edit)
    - rejected → submitted (owner resubmits)
    - submitted → approved (approver)
    - submitted → rejected (approver, reason required)
    - draft | submitted | edited_draft → edited_draft (approver edits fields)
    - rejected → draft (approver returns to draft)

    approved is terminal.
    """

    # {(from_status, action): to_status}
    TRANSITIONS: dict[tuple[str, str], str] = {
        (TimecardStatus.DRAFT.value, TimecardAction.SUBMIT.value): TimecardStatus.SUBMITTED.value,
        (TimecardStatus.EDITED_DRAFT.value, TimecardAction.SUBMIT.value): TimecardStatus.SUBMITTED.value,
        (TimecardStatus.REJECTED.value, TimecardAction.SUBMIT.value): TimecardStatus.SUBMITTED.value,
        (TimecardStatus.SUBMITTED.value, TimecardAction.APPROVE.value): TimecardStatus.APPROVED.value,
        (TimecardStatus.SUBMITTED.value, TimecardAction.REJECT.value): TimecardStatus.REJECTED.value,
        (TimecardStatus.DRAFT.value, TimecardAction.APPROVER_EDIT.value): TimecardStatus.EDITED_DRAFT.value,
        (TimecardStatus.SUBMITTED.value, TimecardAction.APPROVER_EDIT.value): TimecardStatus.EDITED_DRAFT.value,
        (TimecardStatus.EDITED_DRAFT.value, TimecardAction.APPROVER_EDIT.value): TimecardStatus.EDITED_DRAFT.value,
        (TimecardStatus.REJECTED.value, TimecardAction.RETURN_TO_DRAFT.value): TimecardStatus.DRAFT.value,
    }

    # Statuses in which the owning user may change their own fields
    OWNER_EDITABLE = frozenset({
        TimecardStatus.DRAFT.value,
        TimecardStatus.REJECTED.value,
        TimecardStatus.EDITED_DRAFT.value,
    })

    TERMINAL = frozenset({TimecardStatus.APPROVED.value})

    # Actions only the owning user may take
    OWNER_ACTIONS = frozenset({TimecardAction.SUBMIT.value})

    @classmethod
    def can_apply(cls, from_status: str, action: str) -> bool:
        """Check if an action is legal from a status."""
        return (_value(from_status), _value(action)) in cls.TRANSITIONS

    @classmethod
    def next_status(cls, from_status: str, action: str) -> str:
        """Resolve the target status, raising InvalidTransitionError if illegal."""
        key = (_value(from_status), _value(action))
        to_status = cls.TRANSITIONS.get(key)
        if to_status is None:
            raise InvalidTransitionError(
                key[0], _ACTION_TARGETS.get(key[1], key[1]), f"'{key[1]}' not allowed"
            )
        return to_status

    @classmethod
    def action_for_target(cls, from_status: str, to_status: str) -> str:
        """Find the action that moves from_status to to_status.

        Used when a caller requests a status directly instead of naming an
        action.
        """
        from_value, to_value = _value(from_status), _value(to_status)
        for (source, action), target in cls.TRANSITIONS.items():
            if source == from_value and target == to_value and action != TimecardAction.APPROVER_EDIT.value:
                return action
        raise InvalidTransitionError(from_value, to_value)

    @classmethod
    def get_allowed_actions(cls, status: str) -> list[str]:
        """List actions legal from a status."""
        status_value = _value(status)
        return [action for (source, action) in cls.TRANSITIONS if source == status_value]

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return _value(status) in cls.TERMINAL

    @classmethod
    def can_owner_edit(cls, status: str) -> bool:
        """Check if the owning user may change fields in this status."""
        return _value(status) in cls.OWNER_EDITABLE

    @classmethod
    def requires_owner(cls, action: str) -> bool:
        return _value(action) in cls.OWNER_ACTIONS

    @classmethod
    def resolve_action_type(cls, action: str | None, is_owner: bool) -> str:
        """Attribute an interaction for the audit log.

        action=None means a plain owner field edit with no status change.
        """
        action_value = _value(action) if action is not None else None
        if action_value == TimecardAction.REJECT.value:
            return AuditActionType.REJECTION_EDIT.value
        if action_value is None or action_value == TimecardAction.SUBMIT.value or is_owner:
            return AuditActionType.USER_EDIT.value
        return AuditActionType.ADMIN_EDIT.value


_ACTION_TARGETS = {
    TimecardAction.SUBMIT.value: TimecardStatus.SUBMITTED.value,
    TimecardAction.APPROVE.value: TimecardStatus.APPROVED.value,
    TimecardAction.REJECT.value: TimecardStatus.REJECTED.value,
    TimecardAction.APPROVER_EDIT.value: TimecardStatus.EDITED_DRAFT.value,
    TimecardAction.RETURN_TO_DRAFT.value: TimecardStatus.DRAFT.value,
}


def _value(item: str | Enum) -> str:
    return item.value if isinstance(item, Enum) else str(item)
