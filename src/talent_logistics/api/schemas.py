"""Pydantic schemas for API request/response models."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; snake_case is accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Timecard schemas
# ============================================================================


class TimecardEditRequest(CamelModel):
    """Schema for a timecard edit."""

    timecard_id: UUID
    updates: dict[str, Any] | None = None
    daily_updates: dict[str, dict[str, Any]] | None = None
    admin_note: str | None = None
    edit_comment: str | None = None
    return_to_draft: bool = False
    expected_version: int | None = None


class TimecardSubmitRequest(CamelModel):
    timecard_id: UUID
    expected_version: int | None = None


class TimecardApproveRequest(CamelModel):
    timecard_id: UUID
    comments: str | None = None
    expected_version: int | None = None


class TimecardBulkApproveRequest(CamelModel):
    timecard_ids: list[UUID] = Field(..., min_length=1)
    comments: str | None = None


class TimecardRejectRequest(CamelModel):
    """Rejection; comments become the rejection reason."""

    timecard_id: UUID
    comments: str = Field(..., min_length=1)
    rejected_fields: list[str] | None = None
    expected_version: int | None = None


class DailyEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    work_date: date
    check_in_time: time | None = None
    check_out_time: time | None = None
    break_start_time: time | None = None
    break_end_time: time | None = None
    hours_worked: Decimal


class TimecardResponse(BaseModel):
    """Schema for timecard response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    project_id: UUID
    period_start_date: date
    period_end_date: date | None = None
    status: str
    total_hours: Decimal
    pay_rate: Decimal | None = None
    admin_notes: str | None = None
    edit_comments: str | None = None
    rejection_reason: str | None = None
    rejected_fields: list[str] = Field(default_factory=list)
    admin_edited: bool
    last_edited_by: UUID | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    version: int
    daily_entries: list[DailyEntryResponse] = Field(default_factory=list)


class FieldChangeResponse(CamelModel):
    field: str
    new_value: str | None = None
    work_date: date | None = None


class TimecardMutationResponse(CamelModel):
    success: bool = True
    changes: list[FieldChangeResponse] = Field(default_factory=list)
    message: str
    timecard: TimecardResponse


class BulkApproveResponse(CamelModel):
    success: bool = True
    approved_count: int
    message: str


# ============================================================================
# Audit log schemas
# ============================================================================


class AuditLogEntryResponse(BaseModel):
    """Schema for one audit row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    timecard_id: UUID
    change_id: UUID
    field_name: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    changed_by: UUID
    changed_at: datetime
    action_type: str
    work_date: date | None = None


class GroupedAuditLogResponse(BaseModel):
    change_id: UUID
    changed_at: datetime
    changed_by: UUID
    action_type: str
    changes: list[AuditLogEntryResponse]


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class AuditLogListResponse(BaseModel):
    data: list[AuditLogEntryResponse] | list[GroupedAuditLogResponse]
    pagination: Pagination


# ============================================================================
# Readiness schemas
# ============================================================================


class FinalizeRequest(BaseModel):
    area: str


class FinalizeResponse(CamelModel):
    success: bool = True
    area: str
    finalized_at: datetime | None = None
    finalized_by: UUID | None = None
    message: str


class InvalidateResponse(CamelModel):
    success: bool = True
    message: str
    overall_status: str


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
