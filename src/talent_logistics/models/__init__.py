"""ORM models."""

from talent_logistics.models.base import Base, TimestampMixin, utcnow
from talent_logistics.models.profile import Profile, SystemSettings
from talent_logistics.models.project import (
    Project,
    ProjectLocation,
    ProjectReadiness,
    ProjectRoleTemplate,
    TalentDailyAssignment,
    TalentProjectAssignment,
    TeamAssignment,
)
from talent_logistics.models.timecard import (
    TimecardAuditLog,
    TimecardDailyEntry,
    TimecardHeader,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "Profile",
    "SystemSettings",
    "Project",
    "ProjectLocation",
    "ProjectReadiness",
    "ProjectRoleTemplate",
    "TalentDailyAssignment",
    "TalentProjectAssignment",
    "TeamAssignment",
    "TimecardAuditLog",
    "TimecardDailyEntry",
    "TimecardHeader",
]
