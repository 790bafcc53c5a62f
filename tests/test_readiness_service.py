"""Tests for readiness aggregation, finalization and caching."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import delete

from talent_logistics.events import ReadinessAreaFinalized, ReadinessRecalculated
from talent_logistics.models import (
    ProjectLocation,
    ProjectRoleTemplate,
    TalentDailyAssignment,
    TalentProjectAssignment,
    TeamAssignment,
)
from talent_logistics.services.errors import (
    CannotFinalizeError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from talent_logistics.services.readiness_service import ReadinessService

TODAY = date(2026, 3, 10)

_VOLATILE = {"last_updated", "updated_at", "created_at"}


@pytest.fixture
def service(session, readiness_cache, publisher) -> ReadinessService:
    return ReadinessService(session, cache=readiness_cache, publisher=publisher, today=lambda: TODAY)


@pytest.fixture
async def staffed_project(session, project, profiles):
    """Project with custom setup, four staff, two active talent and some coverage."""
    talent_a, talent_b, talent_gone = uuid4(), uuid4(), uuid4()
    escort = profiles["owner"].id

    session.add_all([
        ProjectLocation(project_id=project.id, name="House Left", is_default=True),
        ProjectLocation(project_id=project.id, name="Green Room", is_default=False),
        ProjectRoleTemplate(project_id=project.id, role="supervisor", display_name="Supervisor", is_default=True),
        ProjectRoleTemplate(project_id=project.id, role="talent_escort", display_name="Runner", is_default=False),
        TeamAssignment(project_id=project.id, user_id=profiles["supervisor"].id, role="supervisor"),
        TeamAssignment(project_id=project.id, user_id=profiles["coordinator"].id, role="coordinator"),
        TeamAssignment(project_id=project.id, user_id=escort, role="talent_escort"),
        TeamAssignment(project_id=project.id, user_id=profiles["other_escort"].id, role="talent_escort"),
        TeamAssignment(project_id=project.id, user_id=profiles["in_house"].id, role="supervisor", is_active=False),
        TalentProjectAssignment(project_id=project.id, talent_id=talent_a),
        TalentProjectAssignment(project_id=project.id, talent_id=talent_b),
        TalentProjectAssignment(project_id=project.id, talent_id=talent_gone, status="removed"),
        # Tomorrow: only talent_a covered
        TalentDailyAssignment(project_id=project.id, talent_id=talent_a, assignment_date=date(2026, 3, 11), escort_id=escort),
        TalentDailyAssignment(project_id=project.id, talent_id=talent_b, assignment_date=date(2026, 3, 11), escort_id=None),
        # Day after: both covered
        TalentDailyAssignment(project_id=project.id, talent_id=talent_a, assignment_date=date(2026, 3, 12), escort_id=escort),
        TalentDailyAssignment(project_id=project.id, talent_id=talent_b, assignment_date=date(2026, 3, 12), escort_id=escort),
        # Inactive talent does not count
        TalentDailyAssignment(project_id=project.id, talent_id=talent_gone, assignment_date=date(2026, 3, 12), escort_id=escort),
    ])
    await session.commit()
    return project


def _stable(row) -> dict:
    return {
        column.key: getattr(row, column.key)
        for column in row.__table__.columns
        if column.key not in _VOLATILE
    }


class TestRecalculate:
    async def test_empty_project(self, service, project, publisher):
        readiness = await service.recalculate(project.id)

        assert readiness.overall_status == "getting-started"
        assert readiness.locations_status == "default-only"
        assert readiness.team_status == "none"
        assert readiness.assignments_status == "none"
        assert readiness.total_talent == 0
        (event,) = publisher.of_type(ReadinessRecalculated)
        assert event.overall_status == "getting-started"

    async def test_counts_and_statuses(self, service, staffed_project):
        readiness = await service.recalculate(staffed_project.id)

        assert readiness.custom_location_count == 1
        assert readiness.has_default_locations is True
        assert readiness.custom_role_count == 1
        assert readiness.total_staff_assigned == 4
        assert readiness.supervisor_count == 1
        assert readiness.coordinator_count == 1
        assert readiness.escort_count == 2
        assert readiness.total_talent == 2
        assert readiness.locations_status == "configured"
        assert readiness.team_status == "partial"
        assert readiness.urgent_assignment_issues == 1
        assert readiness.assignments_status == "partial"
        assert readiness.overall_status == "operational"

    async def test_idempotent_apart_from_timestamp(self, service, staffed_project):
        first = _stable(await service.recalculate(staffed_project.id))
        second = _stable(await service.recalculate(staffed_project.id))

        assert first == second

    async def test_missing_project(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.recalculate(uuid4())
        assert exc_info.value.code == "PROJECT_NOT_FOUND"


class TestAssignmentProgress:
    async def test_coverage_and_deadlines(self, service, staffed_project):
        progress = await service.assignment_progress(staffed_project)

        assert progress.total_entities == 2
        assert progress.project_days == 31
        assert progress.total_assignments == 62
        assert progress.completed_assignments == 3
        assert progress.urgent_issues == 1
        assert [(d.date, d.missing_assignments, d.days_from_now) for d in progress.upcoming_deadlines] == [
            (date(2026, 3, 11), 1, 1),
            (date(2026, 3, 13), 2, 3),
        ]
        assert progress.assignment_rate == 5

    async def test_nothing_urgent_after_the_last_day(self, service, staffed_project):
        progress = await service.assignment_progress(staffed_project, today=date(2026, 3, 31))

        assert progress.urgent_issues == 0
        assert progress.upcoming_deadlines == []


class TestFinalize:
    async def test_default_only_cannot_finalize(self, service, project, actors):
        with pytest.raises(CannotFinalizeError) as exc_info:
            await service.finalize(project.id, "locations", actors["admin"])

        assert exc_info.value.code == "CANNOT_FINALIZE"
        assert exc_info.value.message == (
            "Cannot finalize locations with default setup only. Add custom locations first."
        )

    async def test_requires_fixed_approver(self, service, staffed_project, actors, enable_approval):
        await enable_approval("supervisor")

        with pytest.raises(PermissionDeniedError):
            await service.finalize(staffed_project.id, "team", actors["supervisor"])

        readiness = await service.finalize(staffed_project.id, "team", actors["in_house"])
        assert readiness.team_finalized is True
        assert readiness.team_finalized_by == actors["in_house"].user_id
        assert readiness.team_finalized_at is not None
        assert readiness.team_status == "finalized"

    async def test_invalid_area(self, service, project, actors):
        with pytest.raises(ValidationError) as exc_info:
            await service.finalize(project.id, "catering", actors["admin"])
        assert exc_info.value.message == "Invalid area. Must be one of: locations, roles, team, talent"

    async def test_finalized_flag_survives_recalculation(self, session, service, staffed_project, actors):
        await service.finalize(staffed_project.id, "locations", actors["admin"])

        await session.execute(
            delete(ProjectLocation).where(ProjectLocation.is_default.is_(False))
        )
        await session.commit()
        readiness = await service.recalculate(staffed_project.id)

        assert readiness.custom_location_count == 0
        assert readiness.locations_finalized is True
        assert readiness.locations_status == "finalized"

    async def test_all_areas_finalized_is_production_ready(self, service, staffed_project, actors, publisher):
        for area in ("locations", "roles", "team", "talent"):
            readiness = await service.finalize(staffed_project.id, area, actors["admin"])

        assert readiness.overall_status == "production-ready"
        assert [e.area for e in publisher.of_type(ReadinessAreaFinalized)] == [
            "locations",
            "roles",
            "team",
            "talent",
        ]

    async def test_unfinalize_is_admin_only(self, service, staffed_project, actors):
        await service.finalize(staffed_project.id, "roles", actors["admin"])

        with pytest.raises(PermissionDeniedError) as exc_info:
            await service.unfinalize(staffed_project.id, "roles", actors["in_house"])
        assert exc_info.value.message == "Only administrators can unfinalize project areas"

        readiness = await service.unfinalize(staffed_project.id, "roles", actors["admin"])
        assert readiness.roles_finalized is False
        assert readiness.roles_finalized_at is None
        assert readiness.roles_finalized_by is None
        assert readiness.roles_status == "configured"


class TestReadinessReport:
    async def test_cached_until_refresh(self, service, staffed_project):
        first = await service.get_readiness(staffed_project.id)
        second = await service.get_readiness(staffed_project.id)
        refreshed = await service.get_readiness(staffed_project.id, refresh=True)

        assert first.cached is False
        assert second.cached is True
        assert second.summary == first.summary
        assert refreshed.cached is False

    async def test_empty_shared_cache_is_kept(self, session, service, staffed_project, readiness_cache):
        assert len(readiness_cache) == 0
        assert service.cache is readiness_cache

        await service.get_readiness(staffed_project.id)
        assert len(readiness_cache) == 1

        other = ReadinessService(session, cache=readiness_cache, today=lambda: TODAY)
        report = await other.get_readiness(staffed_project.id)
        assert report.cached is True

    async def test_finalize_invalidates_cache(self, service, staffed_project, actors, readiness_cache):
        await service.get_readiness(staffed_project.id)
        await service.finalize(staffed_project.id, "talent", actors["admin"])

        assert readiness_cache.get(staffed_project.id) is None
        report = await service.get_readiness(staffed_project.id)
        assert report.cached is False
        assert report.summary.talent_status == "finalized"

    async def test_invalidate(self, service, staffed_project, readiness_cache):
        await service.get_readiness(staffed_project.id)
        await service.invalidate(staffed_project.id)

        assert len(readiness_cache) == 0

    async def test_payload_shape(self, service, staffed_project):
        report = await service.get_readiness(staffed_project.id)
        payload = report.to_dict()

        assert set(payload) == {"data", "cached", "timestamp"}
        data = payload["data"]
        assert data["overall_status"] == "operational"
        assert data["project_id"] == str(staffed_project.id)
        assert data["todoItems"][0]["id"] == "urgent-assignments"
        assert data["assignmentProgress"]["urgentIssues"] == 1
        assert data["featureAvailability"]["assignments"]["available"] is True
