"""User profile and deployment settings models."""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from talent_logistics.models.base import Base, TimestampMixin


class Profile(Base, TimestampMixin):
    """Authenticated user profile carrying the system role."""

    __tablename__ = "profiles"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="talent_escort")

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'in_house', 'supervisor', 'coordinator', 'talent_escort')",
            name="profiles_role_check",
        ),
    )


class SystemSettings(Base):
    """Per-deployment toggles for delegated timecard approval."""

    __tablename__ = "system_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    supervisor_can_approve_timecards: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    coordinator_can_approve_timecards: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    talent_escort_can_approve_timecards: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
