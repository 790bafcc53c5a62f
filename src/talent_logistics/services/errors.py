"""Service-layer exception hierarchy.

Every error carries a machine-readable ``code`` and the HTTP status the API
boundary should answer with. Messages are safe to show to callers;
diagnostic detail belongs in logs.
"""

from __future__ import annotations

from typing import Any


class TalentLogisticsError(Exception):
    """Base class for errors raised by the service layer."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        self.context = context or {}
        super().__init__(message)


class AuthenticationError(TalentLogisticsError):
    """Caller identity is missing or malformed."""

    code = "UNAUTHORIZED"
    status_code = 401


class PermissionDeniedError(TalentLogisticsError):
    """Actor lacks authority for the requested mutation."""

    code = "INSUFFICIENT_PERMISSIONS"
    status_code = 403


class ValidationError(TalentLogisticsError):
    """Malformed or incomplete input."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(TalentLogisticsError):
    """Referenced entity does not exist or is not visible to the caller."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None, code: str | None = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found", code=code)


class NoChangesDetectedError(TalentLogisticsError):
    """Edit request did not change any field."""

    code = "NO_CHANGES_DETECTED"
    status_code = 400

    def __init__(self, message: str = "No changes detected"):
        super().__init__(message)


class CannotFinalizeError(TalentLogisticsError):
    """Readiness area does not meet its finalization precondition."""

    code = "CANNOT_FINALIZE"
    status_code = 400

    def __init__(self, area: str, reason: str):
        self.area = area
        super().__init__(reason, context={"area": area})


class InvalidTransitionError(TalentLogisticsError):
    """Raised when an invalid timecard state transition is attempted."""

    code = "INVALID_STATUS"
    status_code = 400

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, context={"from_status": from_status, "to_status": to_status})


class ConflictError(TalentLogisticsError):
    """Concurrent modification detected; refetch and retry."""

    code = "CONFLICT"
    status_code = 409


class PersistenceError(TalentLogisticsError):
    """Audit log batch could not be persisted."""

    code = "PERSISTENCE_ERROR"
    status_code = 500
