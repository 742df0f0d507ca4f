"""Dashboard listing endpoint."""

from typing import Annotated

from fastapi import APIRouter, Query

from expense_desk.api.dependencies import AppSettings, CurrentActor, DbSession
from expense_desk.api.schemas import (
    ErrorResponse,
    EventResponse,
    ExpenseResponse,
    ListResponse,
    NotificationResponse,
    ReportSummaryResponse,
)
from expense_desk.services.listing_service import ListingService, ListType

router = APIRouter(tags=["lists"])

_item_schemas = {
    ListType.REPORTS: ReportSummaryResponse,
    ListType.APPROVALS: ReportSummaryResponse,
    ListType.EXPENSES: ExpenseResponse,
    ListType.NOTIFICATIONS: NotificationResponse,
    ListType.EVENTS: EventResponse,
}


@router.get(
    "/lists",
    response_model=ListResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def list_items(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    list_type: Annotated[str, Query(alias="type")],
    page_no: Annotated[int, Query(alias="pageNo", ge=1)] = 1,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> ListResponse:
    """Newest-first page of the caller's reports, expenses, notifications,
    events, or reports awaiting their approval."""
    page = await ListingService(db, settings).list(actor, list_type, page_no, status_filter)
    # Listing notifications marks them read
    await db.commit()

    schema = _item_schemas[ListType(list_type)]
    return ListResponse(
        items=[schema.model_validate(item) for item in page.items],
        total=page.total,
        page=page.page,
        page_size=page.page_size,
    )
