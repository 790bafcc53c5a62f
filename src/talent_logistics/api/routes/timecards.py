"""Timecard API endpoints."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from talent_logistics.api.dependencies import CurrentActor, Timecards
from talent_logistics.api.schemas import (
    AuditLogEntryResponse,
    AuditLogListResponse,
    BulkApproveResponse,
    ErrorResponse,
    FieldChangeResponse,
    GroupedAuditLogResponse,
    Pagination,
    TimecardApproveRequest,
    TimecardBulkApproveRequest,
    TimecardEditRequest,
    TimecardMutationResponse,
    TimecardRejectRequest,
    TimecardResponse,
    TimecardSubmitRequest,
)
from talent_logistics.services.audit_log_service import (
    ACTION_TYPES,
    AuditLogFilter,
    canonical_field_name,
    serialize_value,
)
from talent_logistics.services.errors import ValidationError
from talent_logistics.services.timecard_service import EditResult

router = APIRouter(prefix="/timecards", tags=["timecards"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _mutation_response(result: EditResult) -> TimecardMutationResponse:
    return TimecardMutationResponse(
        success=True,
        changes=[
            FieldChangeResponse(
                field=canonical_field_name(change.field_name),
                new_value=serialize_value(change.new_value),
                work_date=change.work_date,
            )
            for change in result.changes
        ],
        message=result.message,
        timecard=TimecardResponse.model_validate(result.timecard),
    )


# ============================================================================
# Mutations
# ============================================================================


@router.post("/edit", response_model=TimecardMutationResponse, responses=_ERRORS)
async def edit_timecard(
    payload: TimecardEditRequest,
    actor: CurrentActor,
    service: Timecards,
) -> TimecardMutationResponse:
    """Edit timecard fields, optionally changing status or returning to draft."""
    result = await service.edit(
        payload.timecard_id,
        actor,
        updates=payload.updates,
        daily_updates=payload.daily_updates,
        admin_note=payload.admin_note,
        edit_comment=payload.edit_comment,
        return_to_draft=payload.return_to_draft,
        expected_version=payload.expected_version,
    )
    return _mutation_response(result)


@router.post("/submit", response_model=TimecardMutationResponse, responses=_ERRORS)
async def submit_timecard(
    payload: TimecardSubmitRequest,
    actor: CurrentActor,
    service: Timecards,
) -> TimecardMutationResponse:
    result = await service.submit(
        payload.timecard_id, actor, expected_version=payload.expected_version
    )
    return _mutation_response(result)


@router.post("/approve", response_model=TimecardMutationResponse, responses=_ERRORS)
async def approve_timecard(
    payload: TimecardApproveRequest,
    actor: CurrentActor,
    service: Timecards,
) -> TimecardMutationResponse:
    result = await service.approve(
        payload.timecard_id,
        actor,
        comments=payload.comments,
        expected_version=payload.expected_version,
    )
    return _mutation_response(result)


@router.post("/approve/bulk", response_model=BulkApproveResponse, responses=_ERRORS)
async def bulk_approve_timecards(
    payload: TimecardBulkApproveRequest,
    actor: CurrentActor,
    service: Timecards,
) -> BulkApproveResponse:
    """Approve several submitted timecards at once."""
    approved = await service.bulk_approve(payload.timecard_ids, actor, comments=payload.comments)
    return BulkApproveResponse(
        approved_count=len(approved),
        message=f"Successfully approved {len(approved)} timecard(s)",
    )


@router.post("/reject", response_model=TimecardMutationResponse, responses=_ERRORS)
async def reject_timecard(
    payload: TimecardRejectRequest,
    actor: CurrentActor,
    service: Timecards,
) -> TimecardMutationResponse:
    result = await service.reject(
        payload.timecard_id,
        actor,
        reason=payload.comments,
        rejected_fields=payload.rejected_fields,
        expected_version=payload.expected_version,
    )
    return _mutation_response(result)


# ============================================================================
# Audit history
# ============================================================================


def _split(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


@router.get("/{timecard_id}/audit-logs", response_model=AuditLogListResponse, responses=_ERRORS)
async def get_timecard_audit_logs(
    timecard_id: Annotated[UUID, Path()],
    actor: CurrentActor,
    service: Timecards,
    grouped: bool = False,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    action_type: str | None = None,
    field_name: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> AuditLogListResponse:
    """Audit history for a timecard, newest first. Owner or approver only."""
    action_types = _split(action_type)
    if action_types and not set(action_types) <= ACTION_TYPES:
        raise ValidationError(
            "Invalid query parameters",
            context={"action_type": sorted(set(action_types) - ACTION_TYPES)},
        )

    timecard = await service.get_timecard(timecard_id)
    await service.authorize_view(timecard, actor)

    audit = service.audit_service
    audit_filter = AuditLogFilter(
        action_types=action_types,
        field_names=_split(field_name),
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )

    if grouped:
        groups = await audit.get_grouped_audit_logs(timecard_id, audit_filter)
        data = [
            GroupedAuditLogResponse(
                change_id=group.change_id,
                changed_at=group.changed_at,
                changed_by=group.changed_by,
                action_type=group.action_type,
                changes=[AuditLogEntryResponse.model_validate(e) for e in group.changes],
            )
            for group in groups
        ]
    else:
        entries = await audit.get_audit_logs(timecard_id, audit_filter)
        data = [AuditLogEntryResponse.model_validate(e) for e in entries]

    total = await audit.count_audit_logs(timecard_id, audit_filter)
    return AuditLogListResponse(
        data=data,
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
        ),
    )
