"""Event endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from expense_desk.api.dependencies import CurrentActor, DbSession
from expense_desk.api.schemas import ErrorResponse, EventCreate, EventResponse, EventUpdate
from expense_desk.models import UserRole
from expense_desk.services.event_service import EventDetails, EventPatch, EventService
from expense_desk.services.views import EventView

router = APIRouter(prefix="/events", tags=["events"])


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_event(
    db: DbSession,
    actor: CurrentActor,
    payload: EventCreate,
) -> EventResponse:
    """Admins create organization events for a staff list; users create
    their own events."""
    details = EventDetails(
        name=payload.name,
        description=payload.description,
        location=payload.location,
        start_at=payload.start_at,
        end_at=payload.end_at,
    )
    service = EventService(db)
    if actor.role == UserRole.ADMIN.value:
        event = await service.create_admin_event(actor, details, payload.staff)
    else:
        event = await service.create_event(actor.principal_id, details)
    await db.commit()
    return EventResponse.model_validate(EventView.from_event(event))


@router.patch(
    "/{event_id}",
    response_model=EventResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def update_event(
    db: DbSession,
    actor: CurrentActor,
    event_id: Annotated[UUID, Path()],
    payload: EventUpdate,
) -> EventResponse:
    event = await EventService(db).update_event(
        event_id,
        actor,
        EventPatch(
            name=payload.name,
            description=payload.description,
            location=payload.location,
            status=payload.status,
            start_at=payload.start_at,
            end_at=payload.end_at,
            staff_ids=payload.staff,
        ),
    )
    await db.commit()
    return EventResponse.model_validate(EventView.from_event(event))
