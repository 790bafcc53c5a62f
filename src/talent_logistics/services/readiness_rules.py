"""Pure readiness derivations.

Everything here is a function of a readiness summary (and optionally the
assignment progress). No database access, no clock reads.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class ReadinessArea(str, Enum):
    LOCATIONS = "locations"
    ROLES = "roles"
    TEAM = "team"
    TALENT = "talent"


class ConfigurationStatus(str, Enum):
    """Status of the locations and roles areas."""

    DEFAULT_ONLY = "default-only"
    CONFIGURED = "configured"
    FINALIZED = "finalized"


class MembershipStatus(str, Enum):
    """Status of the team and talent areas."""

    NONE = "none"
    PARTIAL = "partial"
    FINALIZED = "finalized"


class AssignmentsStatus(str, Enum):
    NONE = "none"
    PARTIAL = "partial"
    CURRENT = "current"
    COMPLETE = "complete"


class OverallStatus(str, Enum):
    GETTING_STARTED = "getting-started"
    OPERATIONAL = "operational"
    PRODUCTION_READY = "production-ready"


class TodoPriority(str, Enum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    OPTIONAL = "optional"


PRIORITY_RANK = {
    TodoPriority.CRITICAL.value: 0,
    TodoPriority.IMPORTANT.value: 1,
    TodoPriority.OPTIONAL.value: 2,
}

AREAS = tuple(a.value for a in ReadinessArea)

ROUTE_ROLES_TEAM = "/roles-team"
ROUTE_TALENT_ROSTER = "/talent-roster"
ROUTE_INFO = "/info"
ROUTE_ASSIGNMENTS = "/assignments"


@dataclass
class ReadinessSummary:
    """Denormalized readiness counters and statuses for one project."""

    project_id: UUID | None = None
    has_default_locations: bool = True
    custom_location_count: int = 0
    locations_finalized: bool = False
    locations_finalized_at: datetime | None = None
    locations_finalized_by: UUID | None = None
    locations_status: str = ConfigurationStatus.DEFAULT_ONLY.value
    has_default_roles: bool = True
    custom_role_count: int = 0
    roles_finalized: bool = False
    roles_finalized_at: datetime | None = None
    roles_finalized_by: UUID | None = None
    roles_status: str = ConfigurationStatus.DEFAULT_ONLY.value
    total_staff_assigned: int = 0
    supervisor_count: int = 0
    escort_count: int = 0
    coordinator_count: int = 0
    team_finalized: bool = False
    team_finalized_at: datetime | None = None
    team_finalized_by: UUID | None = None
    team_status: str = MembershipStatus.NONE.value
    total_talent: int = 0
    talent_finalized: bool = False
    talent_finalized_at: datetime | None = None
    talent_finalized_by: UUID | None = None
    talent_status: str = MembershipStatus.NONE.value
    assignments_status: str = AssignmentsStatus.NONE.value
    urgent_assignment_issues: int = 0
    overall_status: str = OverallStatus.GETTING_STARTED.value
    last_updated: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> ReadinessSummary:
        """Copy matching attributes from a ProjectReadiness row."""
        names = cls.__dataclass_fields__.keys()
        return cls(**{name: getattr(row, name) for name in names if hasattr(row, name)})

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, (datetime, date)):
                data[key] = value.isoformat()
            elif isinstance(value, UUID):
                data[key] = str(value)
        return data

    def is_finalized(self, area: str) -> bool:
        return bool(getattr(self, f"{area}_finalized"))

    def status_of(self, area: str) -> str:
        return getattr(self, f"{area}_status")


@dataclass(frozen=True)
class AreaStatuses:
    locations: str
    roles: str
    team: str
    talent: str

    @property
    def all_finalized(self) -> bool:
        return all(
            status == ConfigurationStatus.FINALIZED.value
            for status in (self.locations, self.roles, self.team, self.talent)
        )


@dataclass(frozen=True)
class UpcomingDeadline:
    date: date
    missing_assignments: int
    days_from_now: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "missingAssignments": self.missing_assignments,
            "daysFromNow": self.days_from_now,
        }


@dataclass
class AssignmentProgress:
    """Escort coverage of talent across the project's days."""

    total_assignments: int = 0
    completed_assignments: int = 0
    urgent_issues: int = 0
    upcoming_deadlines: list[UpcomingDeadline] = field(default_factory=list)
    total_entities: int = 0
    project_days: int = 0

    @property
    def assignment_rate(self) -> int:
        """Completion percentage, rounded half up."""
        if self.total_assignments <= 0:
            return 0
        rate = Decimal(self.completed_assignments * 100) / Decimal(self.total_assignments)
        return int(rate.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalAssignments": self.total_assignments,
            "completedAssignments": self.completed_assignments,
            "urgentIssues": self.urgent_issues,
            "upcomingDeadlines": [d.to_dict() for d in self.upcoming_deadlines],
            "assignmentRate": self.assignment_rate,
            "totalEntities": self.total_entities,
            "projectDays": self.project_days,
        }


@dataclass(frozen=True)
class TodoItem:
    id: str
    area: str
    priority: str
    title: str
    description: str
    action_text: str
    action_route: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "area": self.area,
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "actionText": self.action_text,
            "actionRoute": self.action_route,
        }


@dataclass(frozen=True)
class FeatureStatus:
    available: bool
    requirement: str
    guidance: str | None = None
    action_route: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"available": self.available, "requirement": self.requirement}
        if self.guidance is not None:
            data["guidance"] = self.guidance
        if self.action_route is not None:
            data["actionRoute"] = self.action_route
        return data


# =============================================================================
# Status derivation
# =============================================================================


def derive_configuration_status(custom_count: int, finalized: bool) -> str:
    """Status for locations and roles."""
    if finalized:
        return ConfigurationStatus.FINALIZED.value
    if custom_count > 0:
        return ConfigurationStatus.CONFIGURED.value
    return ConfigurationStatus.DEFAULT_ONLY.value


def derive_membership_status(member_count: int, finalized: bool) -> str:
    """Status for team and talent."""
    if finalized:
        return MembershipStatus.FINALIZED.value
    if member_count > 0:
        return MembershipStatus.PARTIAL.value
    return MembershipStatus.NONE.value


def derive_assignments_status(progress: AssignmentProgress) -> str:
    """none until any escort coverage exists; complete at full coverage.

    current means tomorrow is fully covered even though later days are not.
    """
    if progress.completed_assignments <= 0:
        return AssignmentsStatus.NONE.value
    if progress.total_assignments > 0 and progress.completed_assignments >= progress.total_assignments:
        return AssignmentsStatus.COMPLETE.value
    if progress.urgent_issues == 0:
        return AssignmentsStatus.CURRENT.value
    return AssignmentsStatus.PARTIAL.value


def derive_area_statuses(summary: ReadinessSummary) -> AreaStatuses:
    return AreaStatuses(
        locations=derive_configuration_status(summary.custom_location_count, summary.locations_finalized),
        roles=derive_configuration_status(summary.custom_role_count, summary.roles_finalized),
        team=derive_membership_status(summary.total_staff_assigned, summary.team_finalized),
        talent=derive_membership_status(summary.total_talent, summary.talent_finalized),
    )


def derive_overall_status(summary: ReadinessSummary, statuses: AreaStatuses | None = None) -> str:
    """getting-started until staff, talent and escorts exist.

    production-ready additionally requires every area finalized.
    """
    statuses = statuses or derive_area_statuses(summary)
    if summary.total_staff_assigned > 0 and summary.total_talent > 0 and summary.escort_count > 0:
        if statuses.all_finalized:
            return OverallStatus.PRODUCTION_READY.value
        return OverallStatus.OPERATIONAL.value
    return OverallStatus.GETTING_STARTED.value


def apply_derived_statuses(summary: ReadinessSummary) -> ReadinessSummary:
    """Refresh the status fields of a summary in place."""
    statuses = derive_area_statuses(summary)
    summary.locations_status = statuses.locations
    summary.roles_status = statuses.roles
    summary.team_status = statuses.team
    summary.talent_status = statuses.talent
    summary.overall_status = derive_overall_status(summary, statuses)
    return summary


_FINALIZE_BLOCKERS = {
    ReadinessArea.LOCATIONS.value: (
        ConfigurationStatus.DEFAULT_ONLY.value,
        "Cannot finalize locations with default setup only. Add custom locations first.",
    ),
    ReadinessArea.ROLES.value: (
        ConfigurationStatus.DEFAULT_ONLY.value,
        "Cannot finalize roles with default setup only. Configure custom roles first.",
    ),
    ReadinessArea.TEAM.value: (
        MembershipStatus.NONE.value,
        "Cannot finalize team with no staff assigned. Assign team members first.",
    ),
    ReadinessArea.TALENT.value: (
        MembershipStatus.NONE.value,
        "Cannot finalize talent with no talent assigned. Add talent to roster first.",
    ),
}


def finalize_blocker(summary: ReadinessSummary, area: str) -> str | None:
    """Return why an area cannot be finalized, or None if it can."""
    blocked_status, reason = _FINALIZE_BLOCKERS[area]
    if summary.status_of(area) == blocked_status:
        return reason
    return None


# =============================================================================
# Todo items
# =============================================================================


def generate_todo_items(
    summary: ReadinessSummary,
    progress: AssignmentProgress | None = None,
) -> list[TodoItem]:
    """Build the ordered todo list: critical, then important, then optional."""
    items: list[TodoItem] = []
    critical = TodoPriority.CRITICAL.value
    important = TodoPriority.IMPORTANT.value
    optional = TodoPriority.OPTIONAL.value

    if summary.total_staff_assigned == 0:
        items.append(TodoItem(
            "assign-team", "team", critical,
            "Assign team members", "No staff assigned to this project",
            "Go to Roles & Team", ROUTE_ROLES_TEAM,
        ))

    if summary.total_talent == 0:
        items.append(TodoItem(
            "add-talent", "talent", critical,
            "Add talent to roster", "No talent assigned to this project",
            "Go to Talent Roster", ROUTE_TALENT_ROSTER,
        ))

    if summary.escort_count == 0 and summary.total_talent > 0:
        items.append(TodoItem(
            "assign-escorts", "team", critical,
            "Assign talent escorts", "Talent needs escort assignments",
            "Go to Roles & Team", ROUTE_ROLES_TEAM,
        ))

    urgent = progress.urgent_issues if progress is not None else summary.urgent_assignment_issues
    if urgent > 0:
        noun = "assignment" if urgent == 1 else "assignments"
        items.append(TodoItem(
            "urgent-assignments", "assignments", critical,
            "Complete urgent assignments",
            f"{urgent} {noun} needed for tomorrow",
            "Go to Assignments", ROUTE_ASSIGNMENTS,
        ))

    if summary.roles_status == ConfigurationStatus.DEFAULT_ONLY.value:
        items.append(TodoItem(
            "configure-roles", "roles", important,
            "Configure custom roles", "Using default roles only",
            "Go to Roles & Team", ROUTE_ROLES_TEAM,
        ))

    if summary.locations_status == ConfigurationStatus.DEFAULT_ONLY.value:
        items.append(TodoItem(
            "configure-locations", "locations", important,
            "Add custom locations", "Using default locations only",
            "Go to Info Tab", ROUTE_INFO,
        ))

    if progress is not None and progress.upcoming_deadlines:
        deadline = progress.upcoming_deadlines[0]
        when = "tomorrow" if deadline.days_from_now == 1 else f"in {deadline.days_from_now} days"
        items.append(TodoItem(
            "upcoming-assignments", "assignments", important,
            "Complete upcoming assignments",
            f"{deadline.missing_assignments} assignments needed {when}",
            "Go to Assignments", ROUTE_ASSIGNMENTS,
        ))

    if summary.supervisor_count == 0 and summary.total_staff_assigned > 0:
        items.append(TodoItem(
            "assign-supervisor", "team", important,
            "Assign a supervisor", "No supervisor assigned for team oversight",
            "Go to Roles & Team", ROUTE_ROLES_TEAM,
        ))

    if not summary.roles_finalized and summary.roles_status != ConfigurationStatus.DEFAULT_ONLY.value:
        items.append(TodoItem(
            "finalize-roles", "roles", optional,
            "Finalize role configuration", "Mark roles as complete when ready",
            "Go to Roles & Team", ROUTE_ROLES_TEAM,
        ))

    if not summary.locations_finalized and summary.locations_status != ConfigurationStatus.DEFAULT_ONLY.value:
        items.append(TodoItem(
            "finalize-locations", "locations", optional,
            "Finalize location setup", "Mark locations as complete when ready",
            "Go to Info Tab", ROUTE_INFO,
        ))

    if not summary.team_finalized and summary.team_status != MembershipStatus.NONE.value:
        items.append(TodoItem(
            "finalize-team", "team", optional,
            "Finalize team assignments", "Mark team setup as complete when ready",
            "Go to Roles & Team", ROUTE_ROLES_TEAM,
        ))

    if not summary.talent_finalized and summary.talent_status != MembershipStatus.NONE.value:
        items.append(TodoItem(
            "finalize-talent", "talent", optional,
            "Finalize talent roster", "Mark talent roster as complete when ready",
            "Go to Talent Roster", ROUTE_TALENT_ROSTER,
        ))

    if progress is not None and 0 < progress.assignment_rate < 100:
        items.append(TodoItem(
            "complete-assignments", "assignments", optional,
            "Complete remaining assignments",
            f"{progress.assignment_rate}% of assignments completed",
            "Go to Assignments", ROUTE_ASSIGNMENTS,
        ))

    return sorted(items, key=lambda item: PRIORITY_RANK[item.priority])


# =============================================================================
# Feature availability
# =============================================================================


def calculate_feature_availability(summary: ReadinessSummary) -> dict[str, FeatureStatus]:
    """Which product features the project can use yet, with next steps."""
    staff = summary.total_staff_assigned
    talent = summary.total_talent
    escorts = summary.escort_count
    supervisors = summary.supervisor_count
    default_locations = summary.locations_status == ConfigurationStatus.DEFAULT_ONLY.value
    no_assignments = summary.assignments_status == AssignmentsStatus.NONE.value

    features: dict[str, FeatureStatus] = {}

    if staff > 0:
        features["timeTracking"] = FeatureStatus(True, "At least one staff member assigned")
    else:
        features["timeTracking"] = FeatureStatus(
            False, "At least one staff member assigned",
            "Assign team members to enable time tracking", ROUTE_ROLES_TEAM,
        )

    if talent == 0:
        features["assignments"] = FeatureStatus(
            False, "Both talent and escorts assigned",
            "Add talent to enable assignments", ROUTE_TALENT_ROSTER,
        )
    elif escorts == 0:
        features["assignments"] = FeatureStatus(
            False, "Both talent and escorts assigned",
            "Assign escorts to enable assignments", ROUTE_ROLES_TEAM,
        )
    else:
        features["assignments"] = FeatureStatus(True, "Both talent and escorts assigned")

    if default_locations:
        features["locationTracking"] = FeatureStatus(
            False, "Custom locations and assignments configured",
            "Add custom locations to enable tracking", ROUTE_INFO,
        )
    elif no_assignments:
        features["locationTracking"] = FeatureStatus(
            False, "Custom locations and assignments configured",
            "Make escort assignments to enable location tracking", ROUTE_ASSIGNMENTS,
        )
    else:
        features["locationTracking"] = FeatureStatus(True, "Custom locations and assignments configured")

    if supervisors == 0:
        features["supervisorCheckout"] = FeatureStatus(
            False, "Supervisor and escorts assigned",
            "Assign a supervisor to enable checkout controls", ROUTE_ROLES_TEAM,
        )
    elif escorts == 0:
        features["supervisorCheckout"] = FeatureStatus(
            False, "Supervisor and escorts assigned",
            "Assign escorts to enable checkout controls", ROUTE_ROLES_TEAM,
        )
    else:
        features["supervisorCheckout"] = FeatureStatus(True, "Supervisor and escorts assigned")

    operations_requirement = "Project must be operational (staff, talent, and escorts assigned)"
    if summary.overall_status == OverallStatus.GETTING_STARTED.value:
        if staff == 0:
            route = ROUTE_ROLES_TEAM
        elif talent == 0:
            route = ROUTE_TALENT_ROSTER
        elif escorts == 0:
            route = ROUTE_ROLES_TEAM
        else:
            route = None
        features["projectOperations"] = FeatureStatus(
            False, operations_requirement,
            "Complete basic setup to enable operations dashboard", route,
        )
    else:
        features["projectOperations"] = FeatureStatus(True, operations_requirement)

    return features
