"""Talent logistics services."""

from talent_logistics.services.audit_log_service import AuditLogService, FieldChange
from talent_logistics.services.errors import (
    AuthenticationError,
    CannotFinalizeError,
    ConflictError,
    InvalidTransitionError,
    NoChangesDetectedError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    TalentLogisticsError,
    ValidationError,
)
from talent_logistics.services.permissions import Actor, Role, has_approval_authority
from talent_logistics.services.readiness_service import ReadinessReport, ReadinessService
from talent_logistics.services.state_machine import (
    AuditActionType,
    TimecardAction,
    TimecardStateMachine,
    TimecardStatus,
)
from talent_logistics.services.timecard_service import EditResult, TimecardService

__all__ = [
    "AuditLogService",
    "FieldChange",
    "TalentLogisticsError",
    "AuthenticationError",
    "CannotFinalizeError",
    "ConflictError",
    "InvalidTransitionError",
    "NoChangesDetectedError",
    "NotFoundError",
    "PermissionDeniedError",
    "PersistenceError",
    "ValidationError",
    "Actor",
    "Role",
    "has_approval_authority",
    "ReadinessReport",
    "ReadinessService",
    "AuditActionType",
    "TimecardAction",
    "TimecardStateMachine",
    "TimecardStatus",
    "EditResult",
    "TimecardService",
]
