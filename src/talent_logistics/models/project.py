"""Project, staffing, talent, and readiness models."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from talent_logistics.models.base import Base, TimestampMixin, utcnow


class Project(Base, TimestampMixin):
    """Production project with a scheduled date range."""

    __tablename__ = "projects"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="projects_dates_check"),
    )


class ProjectLocation(Base):
    """Talent location on a project (default seed or custom)."""

    __tablename__ = "project_locations"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ProjectRoleTemplate(Base):
    """Staff role template on a project (default seed or custom)."""

    __tablename__ = "project_role_templates"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String, nullable=False)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class TeamAssignment(Base):
    """Staff member assigned to a project in a project role."""

    __tablename__ = "team_assignments"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="team_assignments_project_user_unique"),
        CheckConstraint(
            "role IN ('supervisor', 'coordinator', 'talent_escort')",
            name="team_assignments_role_check",
        ),
    )


class TalentProjectAssignment(Base):
    """Talent on a project's roster."""

    __tablename__ = "talent_project_assignments"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    talent_id: Mapped[UUID] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        UniqueConstraint("project_id", "talent_id", name="talent_project_assignments_unique"),
    )


class TalentDailyAssignment(Base):
    """Escort assignment for one talent on one project day."""

    __tablename__ = "talent_daily_assignments"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    talent_id: Mapped[UUID] = mapped_column(nullable=False)
    assignment_date: Mapped[date] = mapped_column(Date, nullable=False)
    escort_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        UniqueConstraint(
            "project_id", "talent_id", "assignment_date", name="talent_daily_assignments_unique"
        ),
    )


class ProjectReadiness(Base, TimestampMixin):
    """Denormalized readiness summary, one row per project.

    Counts and derived statuses are owned by the aggregator. The
    ``*_finalized`` fields are only changed by finalize/unfinalize.
    """

    __tablename__ = "project_readiness"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True
    )

    # Locations
    has_default_locations: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    custom_location_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locations_finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locations_finalized_at: Mapped[datetime | None] = mapped_column(nullable=True)
    locations_finalized_by: Mapped[UUID | None] = mapped_column(nullable=True)
    locations_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="default-only"
    )

    # Roles
    has_default_roles: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    custom_role_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    roles_finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    roles_finalized_at: Mapped[datetime | None] = mapped_column(nullable=True)
    roles_finalized_by: Mapped[UUID | None] = mapped_column(nullable=True)
    roles_status: Mapped[str] = mapped_column(String(20), nullable=False, default="default-only")

    # Team
    total_staff_assigned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    supervisor_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    escort_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    coordinator_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    team_finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    team_finalized_at: Mapped[datetime | None] = mapped_column(nullable=True)
    team_finalized_by: Mapped[UUID | None] = mapped_column(nullable=True)
    team_status: Mapped[str] = mapped_column(String(20), nullable=False, default="none")

    # Talent
    total_talent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    talent_finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    talent_finalized_at: Mapped[datetime | None] = mapped_column(nullable=True)
    talent_finalized_by: Mapped[UUID | None] = mapped_column(nullable=True)
    talent_status: Mapped[str] = mapped_column(String(20), nullable=False, default="none")

    # Assignment progress
    assignments_status: Mapped[str] = mapped_column(String(20), nullable=False, default="none")
    urgent_assignment_issues: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Overall
    overall_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="getting-started"
    )
    last_updated: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "locations_status IN ('default-only', 'configured', 'finalized')",
            name="project_readiness_locations_status_check",
        ),
        CheckConstraint(
            "roles_status IN ('default-only', 'configured', 'finalized')",
            name="project_readiness_roles_status_check",
        ),
        CheckConstraint(
            "team_status IN ('none', 'partial', 'finalized')",
            name="project_readiness_team_status_check",
        ),
        CheckConstraint(
            "talent_status IN ('none', 'partial', 'finalized')",
            name="project_readiness_talent_status_check",
        ),
        CheckConstraint(
            "assignments_status IN ('none', 'partial', 'current', 'complete')",
            name="project_readiness_assignments_status_check",
        ),
        CheckConstraint(
            "overall_status IN ('getting-started', 'operational', 'production-ready')",
            name="project_readiness_overall_status_check",
        ),
    )
