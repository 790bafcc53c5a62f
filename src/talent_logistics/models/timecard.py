"""Timecard header, daily entry, and audit log models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talent_logistics.models.base import Base, TimestampMixin, utcnow


class TimecardHeader(Base, TimestampMixin):
    """One timecard per user per pay period per project."""

    __tablename__ = "timecard_headers"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    period_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    total_hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0")
    )
    pay_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    edit_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejected_fields: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    admin_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_edited_by: Mapped[UUID | None] = mapped_column(nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "project_id",
            "period_start_date",
            name="timecard_headers_user_project_period_unique",
        ),
        CheckConstraint(
            "status IN ('draft', 'submitted', 'rejected', 'edited_draft', 'approved')",
            name="timecard_headers_status_check",
        ),
        CheckConstraint("total_hours >= 0", name="timecard_headers_hours_check"),
    )

    # Compare-and-swap on every flush; a stale row raises StaleDataError
    __mapper_args__ = {"version_id_col": version}

    daily_entries: Mapped[list[TimecardDailyEntry]] = relationship(
        back_populates="timecard",
        order_by="TimecardDailyEntry.work_date",
    )


class TimecardDailyEntry(Base):
    """One calendar day's check-in/break/check-out times within a timecard."""

    __tablename__ = "timecard_daily_entries"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    timecard_id: Mapped[UUID] = mapped_column(
        ForeignKey("timecard_headers.id", ondelete="CASCADE"), nullable=False
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_in_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    check_out_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    hours_worked: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        UniqueConstraint("timecard_id", "work_date", name="timecard_daily_entries_day_unique"),
    )

    timecard: Mapped[TimecardHeader] = relationship(back_populates="daily_entries")


class TimecardAuditLog(Base):
    """Immutable field-level change record for a timecard.

    Rows sharing a change_id were produced by a single user interaction
    and carry the same changed_at.
    """

    __tablename__ = "timecard_audit_log"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    timecard_id: Mapped[UUID] = mapped_column(
        ForeignKey("timecard_headers.id", ondelete="CASCADE"), nullable=False
    )
    change_id: Mapped[UUID] = mapped_column(nullable=False)
    field_name: Mapped[str | None] = mapped_column(String, nullable=True)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_by: Mapped[UUID] = mapped_column(nullable=False)
    changed_at: Mapped[datetime] = mapped_column(nullable=False)
    action_type: Mapped[str] = mapped_column(String, nullable=False)
    work_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "action_type IN ('user_edit', 'admin_edit', 'rejection_edit', 'status_change')",
            name="timecard_audit_log_action_type_check",
        ),
        Index("ix_timecard_audit_log_timecard_changed", "timecard_id", "changed_at"),
        Index("ix_timecard_audit_log_change_id", "change_id"),
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": str(self.id),
            "timecard_id": str(self.timecard_id),
            "change_id": str(self.change_id),
            "field_name": self.field_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "changed_by": str(self.changed_by),
            "changed_at": self.changed_at.isoformat(),
            "action_type": self.action_type,
            "work_date": self.work_date.isoformat() if self.work_date else None,
        }
