"""Expense and category endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Path, status

from expense_desk.api.dependencies import AppSettings, CurrentActor, DbSession, ReceiptRunner
from expense_desk.api.schemas import (
    CategoriesResponse,
    ErrorResponse,
    ExpenseCreate,
    ExpenseResponse,
)
from expense_desk.services.expense_service import ExpenseService
from expense_desk.services.policy import PolicyService
from expense_desk.services.views import ExpenseView

router = APIRouter(tags=["expenses"])


@router.post(
    "/expenses",
    response_model=ExpenseResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_expense(
    db: DbSession,
    actor: CurrentActor,
    payload: ExpenseCreate,
    background_tasks: BackgroundTasks,
    receipt_runner: ReceiptRunner,
) -> ExpenseResponse:
    """Record a drafted expense; receipt analysis runs after the response."""
    service = ExpenseService(db)
    expense = await service.create_expense(
        actor.principal_id,
        title=payload.title,
        category=payload.category,
        amount=payload.amount,
        description=payload.description,
        image=payload.image,
        location=payload.location,
    )
    await db.commit()

    if receipt_runner is not None:
        background_tasks.add_task(receipt_runner.run, expense.expense_id)

    return ExpenseResponse.model_validate(ExpenseView.from_expense(expense))


@router.get(
    "/expenses/{expense_id}",
    response_model=ExpenseResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_expense(
    db: DbSession,
    actor: CurrentActor,
    expense_id: Annotated[UUID, Path()],
) -> ExpenseResponse:
    expense = await ExpenseService(db).get_expense(expense_id, user_id=actor.principal_id)
    return ExpenseResponse.model_validate(ExpenseView.from_expense(expense, include_scores=True))


@router.get(
    "/categories",
    response_model=CategoriesResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_categories(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
) -> CategoriesResponse:
    """Enabled categories of the caller's tier."""
    categories = await PolicyService(db, settings).list_categories(actor.principal_id)
    return CategoriesResponse(categories=categories)
