"""Project readiness aggregation service."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from talent_logistics.events import (
    EventMetadata,
    EventPublisher,
    NullPublisher,
    ReadinessAreaFinalized,
    ReadinessRecalculated,
)
from talent_logistics.models import (
    Project,
    ProjectLocation,
    ProjectReadiness,
    ProjectRoleTemplate,
    TalentDailyAssignment,
    TalentProjectAssignment,
    TeamAssignment,
    utcnow,
)
from talent_logistics.services.cache import ReadinessCache
from talent_logistics.services.errors import (
    CannotFinalizeError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from talent_logistics.services.permissions import Actor, Role, has_approval_authority
from talent_logistics.services.readiness_rules import (
    AREAS,
    AssignmentProgress,
    FeatureStatus,
    ReadinessSummary,
    TodoItem,
    UpcomingDeadline,
    apply_derived_statuses,
    calculate_feature_availability,
    derive_assignments_status,
    finalize_blocker,
    generate_todo_items,
)

logger = logging.getLogger(__name__)

# Days ahead checked for missing escort coverage
LOOKAHEAD_DAYS = 3

# Columns owned by recalculation; *_finalized* columns are never in here
_DERIVED_FIELDS = (
    "has_default_locations",
    "custom_location_count",
    "locations_status",
    "has_default_roles",
    "custom_role_count",
    "roles_status",
    "total_staff_assigned",
    "supervisor_count",
    "escort_count",
    "coordinator_count",
    "team_status",
    "total_talent",
    "talent_status",
    "assignments_status",
    "urgent_assignment_issues",
    "overall_status",
)


@dataclass
class ReadinessReport:
    """Readiness summary with everything derived from it."""

    summary: ReadinessSummary
    todo_items: list[TodoItem] = field(default_factory=list)
    feature_availability: dict[str, FeatureStatus] = field(default_factory=dict)
    assignment_progress: AssignmentProgress = field(default_factory=AssignmentProgress)
    cached: bool = False
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = self.summary.to_dict()
        data["todoItems"] = [item.to_dict() for item in self.todo_items]
        data["featureAvailability"] = {
            name: status.to_dict() for name, status in self.feature_availability.items()
        }
        data["assignmentProgress"] = self.assignment_progress.to_dict()
        return {"data": data, "cached": self.cached, "timestamp": self.timestamp}


class ReadinessService:
    """Computes, stores and serves project readiness.

    Operations:
    - recalculate: recount source tables and refresh the stored summary
    - get_readiness: cached read with todo items and feature availability
    - finalize / unfinalize: set or clear an area's sticky finalized flag
    - invalidate: drop the cached report and recalculate
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: ReadinessCache | None = None,
        publisher: EventPublisher | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.session = session
        self.cache = cache if cache is not None else ReadinessCache()
        self.publisher = publisher if publisher is not None else NullPublisher()
        self.today = today

    async def get_project(self, project_id: UUID) -> Project:
        project = await self.session.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id, code="PROJECT_NOT_FOUND")
        return project

    async def get_or_create(self, project_id: UUID) -> ProjectReadiness:
        """Load the readiness row, creating a default one if missing."""
        readiness = await self.session.get(ProjectReadiness, project_id)
        if readiness is not None:
            return readiness

        readiness = ProjectReadiness(project_id=project_id)
        self.session.add(readiness)
        try:
            await self.session.commit()
        except IntegrityError:
            # Created concurrently by another request
            await self.session.rollback()
            readiness = await self.session.get(ProjectReadiness, project_id)
            if readiness is None:
                raise
        return readiness

    async def recalculate(self, project_id: UUID) -> ProjectReadiness:
        """Recount everything for a project and store the summary.

        Idempotent apart from last_updated. Finalization flags are read,
        never written.
        """
        project = await self.get_project(project_id)
        readiness, _ = await self._recalculate(project)
        return readiness

    async def _recalculate(self, project: Project) -> tuple[ProjectReadiness, AssignmentProgress]:
        readiness = await self.get_or_create(project.id)
        previous_status = readiness.overall_status

        summary = ReadinessSummary.from_row(readiness)
        await self._count_locations(project.id, summary)
        await self._count_roles(project.id, summary)
        await self._count_team(project.id, summary)
        summary.total_talent = len(await self._active_talent_ids(project.id))

        progress = await self.assignment_progress(project)
        summary.assignments_status = derive_assignments_status(progress)
        summary.urgent_assignment_issues = progress.urgent_issues
        apply_derived_statuses(summary)

        for name in _DERIVED_FIELDS:
            setattr(readiness, name, getattr(summary, name))
        readiness.last_updated = utcnow()
        await self.session.commit()

        logger.info(
            "Recalculated readiness for project %s: %s",
            project.id,
            readiness.overall_status,
        )
        self.publisher.publish(
            ReadinessRecalculated(
                metadata=EventMetadata.create(),
                project_id=project.id,
                overall_status=readiness.overall_status,
                previous_overall_status=previous_status,
                urgent_assignment_issues=readiness.urgent_assignment_issues,
            )
        )
        return readiness, progress

    async def get_readiness(self, project_id: UUID, refresh: bool = False) -> ReadinessReport:
        """Serve the readiness report, from cache unless refresh is set."""
        if not refresh:
            cached = self.cache.get(project_id)
            if cached is not None:
                return replace(cached, cached=True, timestamp=_now_ms())

        project = await self.get_project(project_id)
        readiness, progress = await self._recalculate(project)
        summary = ReadinessSummary.from_row(readiness)

        report = ReadinessReport(
            summary=summary,
            todo_items=generate_todo_items(summary, progress),
            feature_availability=calculate_feature_availability(summary),
            assignment_progress=progress,
            cached=False,
            timestamp=_now_ms(),
        )
        self.cache.set(project_id, report)
        return report

    async def assignment_progress(
        self,
        project: Project,
        today: date | None = None,
    ) -> AssignmentProgress:
        """Escort coverage of active talent over the project's days.

        A slot is one talent on one project day. Tomorrow's uncovered slots
        are urgent, but only while tomorrow is inside the project range.
        """
        today = today or self.today()
        talent_ids = await self._active_talent_ids(project.id)
        project_days = (project.end_date - project.start_date).days + 1

        if not talent_ids:
            return AssignmentProgress(project_days=project_days)

        result = await self.session.execute(
            select(TalentDailyAssignment.talent_id, TalentDailyAssignment.assignment_date).where(
                TalentDailyAssignment.project_id == project.id,
                TalentDailyAssignment.escort_id.is_not(None),
                TalentDailyAssignment.assignment_date >= project.start_date,
                TalentDailyAssignment.assignment_date <= project.end_date,
            )
        )
        covered = {(talent_id, day) for talent_id, day in result.all() if talent_id in talent_ids}

        progress = AssignmentProgress(
            total_assignments=len(talent_ids) * project_days,
            completed_assignments=len(covered),
            total_entities=len(talent_ids),
            project_days=project_days,
        )

        for offset in range(1, LOOKAHEAD_DAYS + 1):
            check_date = today + timedelta(days=offset)
            if not project.start_date <= check_date <= project.end_date:
                continue
            missing = sum(1 for talent_id in talent_ids if (talent_id, check_date) not in covered)
            if offset == 1:
                progress.urgent_issues = missing
            if missing > 0:
                progress.upcoming_deadlines.append(
                    UpcomingDeadline(date=check_date, missing_assignments=missing, days_from_now=offset)
                )

        return progress

    async def finalize(self, project_id: UUID, area: str, actor: Actor) -> ProjectReadiness:
        """Mark an area finalized.

        Raises PermissionDeniedError unless the actor holds fixed approval
        authority, and CannotFinalizeError if the area is still at its
        default or empty state.
        """
        if not has_approval_authority(actor.role):
            raise PermissionDeniedError("Insufficient permissions to finalize project areas")
        _validate_area(area)

        project = await self.get_project(project_id)
        readiness, _ = await self._recalculate(project)

        reason = finalize_blocker(ReadinessSummary.from_row(readiness), area)
        if reason is not None:
            raise CannotFinalizeError(area, reason)

        setattr(readiness, f"{area}_finalized", True)
        setattr(readiness, f"{area}_finalized_at", utcnow())
        setattr(readiness, f"{area}_finalized_by", actor.user_id)
        await self.session.commit()

        return await self._after_finalization_change(project, area, actor, finalized=True)

    async def unfinalize(self, project_id: UUID, area: str, actor: Actor) -> ProjectReadiness:
        """Clear an area's finalized flag. Admin only."""
        if actor.role != Role.ADMIN.value:
            raise PermissionDeniedError("Only administrators can unfinalize project areas")
        _validate_area(area)

        project = await self.get_project(project_id)
        readiness = await self.get_or_create(project.id)

        setattr(readiness, f"{area}_finalized", False)
        setattr(readiness, f"{area}_finalized_at", None)
        setattr(readiness, f"{area}_finalized_by", None)
        await self.session.commit()

        return await self._after_finalization_change(project, area, actor, finalized=False)

    async def invalidate(self, project_id: UUID) -> ProjectReadiness:
        """Drop the cached report and recalculate."""
        project = await self.get_project(project_id)
        self.cache.invalidate(project_id)
        readiness, _ = await self._recalculate(project)
        return readiness

    async def _after_finalization_change(
        self,
        project: Project,
        area: str,
        actor: Actor,
        finalized: bool,
    ) -> ProjectReadiness:
        readiness, _ = await self._recalculate(project)
        self.cache.invalidate(project.id)

        logger.info(
            "%s %s for project %s by %s",
            "Finalized" if finalized else "Unfinalized",
            area,
            project.id,
            actor.user_id,
        )
        self.publisher.publish(
            ReadinessAreaFinalized(
                metadata=EventMetadata.create(actor_id=actor.user_id),
                project_id=project.id,
                area=area,
                finalized=finalized,
            )
        )
        return readiness

    async def _count_locations(self, project_id: UUID, summary: ReadinessSummary) -> None:
        result = await self.session.execute(
            select(ProjectLocation.is_default, func.count(ProjectLocation.id))
            .where(ProjectLocation.project_id == project_id)
            .group_by(ProjectLocation.is_default)
        )
        counts = {bool(is_default): count for is_default, count in result.all()}
        summary.custom_location_count = counts.get(False, 0)
        summary.has_default_locations = counts.get(True, 0) > 0

    async def _count_roles(self, project_id: UUID, summary: ReadinessSummary) -> None:
        result = await self.session.execute(
            select(ProjectRoleTemplate.is_default, func.count(ProjectRoleTemplate.id))
            .where(ProjectRoleTemplate.project_id == project_id)
            .group_by(ProjectRoleTemplate.is_default)
        )
        counts = {bool(is_default): count for is_default, count in result.all()}
        summary.custom_role_count = counts.get(False, 0)
        summary.has_default_roles = counts.get(True, 0) > 0

    async def _count_team(self, project_id: UUID, summary: ReadinessSummary) -> None:
        result = await self.session.execute(
            select(TeamAssignment.role, func.count(TeamAssignment.id))
            .where(TeamAssignment.project_id == project_id, TeamAssignment.is_active.is_(True))
            .group_by(TeamAssignment.role)
        )
        by_role = dict(result.all())
        summary.total_staff_assigned = sum(by_role.values())
        summary.supervisor_count = by_role.get(Role.SUPERVISOR.value, 0)
        summary.escort_count = by_role.get(Role.TALENT_ESCORT.value, 0)
        summary.coordinator_count = by_role.get(Role.COORDINATOR.value, 0)

    async def _active_talent_ids(self, project_id: UUID) -> set[UUID]:
        result = await self.session.execute(
            select(TalentProjectAssignment.talent_id).where(
                TalentProjectAssignment.project_id == project_id,
                TalentProjectAssignment.status == "active",
            )
        )
        return set(result.scalars().all())


def _validate_area(area: str) -> None:
    if area not in AREAS:
        raise ValidationError(
            "Invalid area. Must be one of: locations, roles, team, talent",
            context={"area": area},
        )


def _now_ms() -> int:
    return int(time.time() * 1000)
