"""Project readiness API endpoints."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Path, Query

from talent_logistics.api.dependencies import CurrentActor, Readiness
from talent_logistics.api.schemas import (
    ErrorResponse,
    FinalizeRequest,
    FinalizeResponse,
    InvalidateResponse,
)

router = APIRouter(prefix="/projects/{project_id}/readiness", tags=["readiness"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.get("", responses=_ERRORS)
async def get_project_readiness(
    project_id: Annotated[UUID, Path()],
    actor: CurrentActor,
    service: Readiness,
    refresh: Annotated[bool, Query()] = False,
) -> dict[str, Any]:
    """Readiness summary with todo items, feature availability and progress."""
    report = await service.get_readiness(project_id, refresh=refresh)
    return report.to_dict()


@router.post("/finalize", response_model=FinalizeResponse, responses=_ERRORS)
async def finalize_area(
    project_id: Annotated[UUID, Path()],
    payload: FinalizeRequest,
    actor: CurrentActor,
    service: Readiness,
) -> FinalizeResponse:
    readiness = await service.finalize(project_id, payload.area, actor)
    return FinalizeResponse(
        area=payload.area,
        finalized_at=getattr(readiness, f"{payload.area}_finalized_at"),
        finalized_by=getattr(readiness, f"{payload.area}_finalized_by"),
        message=f"{payload.area.capitalize()} finalized successfully",
    )


@router.delete("/finalize", response_model=FinalizeResponse, responses=_ERRORS)
async def unfinalize_area(
    project_id: Annotated[UUID, Path()],
    payload: FinalizeRequest,
    actor: CurrentActor,
    service: Readiness,
) -> FinalizeResponse:
    await service.unfinalize(project_id, payload.area, actor)
    return FinalizeResponse(
        area=payload.area,
        message=f"{payload.area.capitalize()} unfinalized successfully",
    )


@router.post("/invalidate", response_model=InvalidateResponse, responses=_ERRORS)
async def invalidate_readiness(
    project_id: Annotated[UUID, Path()],
    actor: CurrentActor,
    service: Readiness,
) -> InvalidateResponse:
    """Drop the cached readiness report and recalculate."""
    readiness = await service.invalidate(project_id)
    return InvalidateResponse(
        message="Readiness cache invalidated",
        overall_status=readiness.overall_status,
    )
