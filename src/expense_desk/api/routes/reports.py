"""Report endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from expense_desk.api.dependencies import AppSettings, CurrentActor, DbSession, Emitter
from expense_desk.api.schemas import (
    ErrorResponse,
    ReportCreate,
    ReportDetailResponse,
    ReportUpdate,
)
from expense_desk.services.report_service import ReportMetadata, ReportPatch, ReportService
from expense_desk.services.views import ReportDetail

router = APIRouter(prefix="/reports", tags=["reports"])

_errors = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=ReportDetailResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_errors,
)
async def create_report(
    db: DbSession,
    actor: CurrentActor,
    emitter: Emitter,
    settings: AppSettings,
    payload: ReportCreate,
) -> ReportDetailResponse:
    """Bundle the caller's expenses into a pending report."""
    service = ReportService(db, emitter, settings)
    report = await service.create_report(
        actor.principal_id,
        payload.expenses,
        event_id=payload.event_id,
        metadata=ReportMetadata(
            title=payload.title,
            description=payload.description,
            location=payload.location,
            report_date=payload.report_date,
        ),
    )
    await db.commit()
    return ReportDetailResponse.model_validate(ReportDetail.from_report(report))


@router.get(
    "/{report_id}",
    response_model=ReportDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_report(
    db: DbSession,
    actor: CurrentActor,
    emitter: Emitter,
    settings: AppSettings,
    report_id: Annotated[UUID, Path()],
    is_event: Annotated[bool, Query(alias="isEvent")] = False,
) -> ReportDetailResponse:
    """Get a report. With ``isEvent`` the id is an event id and a draft
    report is created for the caller on first access."""
    service = ReportService(db, emitter, settings)
    report = await service.get_report(report_id, actor.principal_id, is_event=is_event)
    await db.commit()
    return ReportDetailResponse.model_validate(ReportDetail.from_report(report))


@router.patch(
    "/{report_id}",
    response_model=ReportDetailResponse,
    responses=_errors,
)
async def update_report(
    db: DbSession,
    actor: CurrentActor,
    emitter: Emitter,
    settings: AppSettings,
    report_id: Annotated[UUID, Path()],
    payload: ReportUpdate,
) -> ReportDetailResponse:
    service = ReportService(db, emitter, settings)
    report = await service.update_report(
        report_id,
        actor.principal_id,
        ReportPatch(
            expense_ids=payload.expenses,
            title=payload.title,
            description=payload.description,
            location=payload.location,
            report_date=payload.report_date,
            submit=payload.submit,
        ),
    )
    await db.commit()
    return ReportDetailResponse.model_validate(ReportDetail.from_report(report))
