"""Role model and the single approval-authority check."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from talent_logistics.models import SystemSettings


class Role(str, Enum):
    """System and project roles."""

    ADMIN = "admin"
    IN_HOUSE = "in_house"
    SUPERVISOR = "supervisor"
    COORDINATOR = "coordinator"
    TALENT_ESCORT = "talent_escort"


# Roles that always hold approval authority
FIXED_APPROVER_ROLES = frozenset({Role.ADMIN.value, Role.IN_HOUSE.value})


@dataclass(frozen=True)
class ApprovalSettings:
    """Deployment toggles granting approval authority to project roles."""

    supervisor_can_approve_timecards: bool = False
    coordinator_can_approve_timecards: bool = False
    talent_escort_can_approve_timecards: bool = False

    @classmethod
    def from_model(cls, row: SystemSettings | None) -> ApprovalSettings:
        """Build from the system_settings row; missing row means all off."""
        if row is None:
            return cls()
        return cls(
            supervisor_can_approve_timecards=row.supervisor_can_approve_timecards,
            coordinator_can_approve_timecards=row.coordinator_can_approve_timecards,
            talent_escort_can_approve_timecards=row.talent_escort_can_approve_timecards,
        )

    def grants(self, role: str) -> bool:
        """Check whether the toggle for a delegable role is on."""
        if role == Role.SUPERVISOR:
            return self.supervisor_can_approve_timecards
        if role == Role.COORDINATOR:
            return self.coordinator_can_approve_timecards
        if role == Role.TALENT_ESCORT:
            return self.talent_escort_can_approve_timecards
        return False


@dataclass(frozen=True)
class Actor:
    """Already-authenticated caller identity."""

    user_id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def _role_value(role: str | Role) -> str:
    return role.value if isinstance(role, Role) else role


def has_approval_authority(role: str | None, settings: ApprovalSettings | None = None) -> bool:
    """Check if a role may approve, reject, edit others' timecards or finalize.

    admin and in_house always qualify. Delegable roles qualify only when the
    deployment toggle is on. Passing no settings restricts the check to the
    fixed roles, which is what finalization uses.
    """
    if role is None:
        return False
    role = _role_value(role)
    if role in FIXED_APPROVER_ROLES:
        return True
    if settings is None:
        return False
    return settings.grants(role)


def can_self_approve(role: str) -> bool:
    """Only fixed approver roles may approve their own timecard."""
    return _role_value(role) in FIXED_APPROVER_ROLES


async def load_approval_settings(session: AsyncSession) -> ApprovalSettings:
    """Load deployment approval toggles."""
    result = await session.execute(select(SystemSettings).limit(1))
    return ApprovalSettings.from_model(result.scalar_one_or_none())
