"""Approver and finance review endpoints."""

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Path

from expense_desk.api.dependencies import AppSettings, CurrentActor, DbSession, Emitter
from expense_desk.api.schemas import (
    ApprovalDecision,
    ErrorResponse,
    ReimburseRequest,
    ReviewDetailResponse,
)
from expense_desk.models import UserRole
from expense_desk.services.approval_service import ApprovalService

router = APIRouter(tags=["approvals"])

_errors = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get(
    "/approvals/{report_id}",
    response_model=ReviewDetailResponse,
    responses=_errors,
)
async def get_approval(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    report_id: Annotated[UUID, Path()],
) -> ReviewDetailResponse:
    actor.require_role(UserRole.APPROVER, UserRole.ADMIN)
    detail = await ApprovalService(db, settings=settings).get_review_detail(report_id)
    return ReviewDetailResponse.model_validate(detail)


@router.post(
    "/approvals/{report_id}/{action}",
    response_model=ReviewDetailResponse,
    responses=_errors,
)
async def decide_approval(
    db: DbSession,
    actor: CurrentActor,
    emitter: Emitter,
    settings: AppSettings,
    report_id: Annotated[UUID, Path()],
    action: Annotated[Literal["approve", "reject"], Path()],
    payload: ApprovalDecision,
) -> ReviewDetailResponse:
    """Approve the whole report, or reject the listed expenses."""
    service = ApprovalService(db, emitter, settings)
    await service.decide_approval(report_id, action, payload.expenses, payload.reason, actor)
    await db.commit()
    return ReviewDetailResponse.model_validate(await service.get_review_detail(report_id))


@router.get(
    "/finance/{report_id}",
    response_model=ReviewDetailResponse,
    responses=_errors,
)
async def get_finance(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    report_id: Annotated[UUID, Path()],
) -> ReviewDetailResponse:
    actor.require_role(UserRole.FINANCE, UserRole.ADMIN)
    detail = await ApprovalService(db, settings=settings).get_review_detail(
        report_id, include_finance=True
    )
    return ReviewDetailResponse.model_validate(detail)


@router.post(
    "/finance/{report_id}/reimburse",
    response_model=ReviewDetailResponse,
    responses=_errors,
)
async def reimburse_report(
    db: DbSession,
    actor: CurrentActor,
    emitter: Emitter,
    settings: AppSettings,
    report_id: Annotated[UUID, Path()],
    payload: ReimburseRequest,
) -> ReviewDetailResponse:
    service = ApprovalService(db, emitter, settings)
    await service.reimburse(report_id, payload.finance_description, payload.deduction_amount, actor)
    await db.commit()
    return ReviewDetailResponse.model_validate(
        await service.get_review_detail(report_id, include_finance=True)
    )
