"""Events that staff attach reports to."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.models import Event, EventStatus, EventType, PrincipalKind, User, UserRole
from expense_desk.services.errors import NotFoundError, PermissionDeniedError, ValidationError
from expense_desk.services.principals import Actor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventDetails:
    name: str
    description: str | None = None
    location: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None


@dataclass(frozen=True)
class EventPatch:
    """Fields to change on an event. None leaves a field as it is.

    ``staff_ids`` replaces the staff list and is honoured for admin callers
    only.
    """

    name: str | None = None
    description: str | None = None
    location: str | None = None
    status: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    staff_ids: Sequence[UUID] | None = None


def _check_schedule(start_at: datetime | None, end_at: datetime | None) -> None:
    if start_at is not None and end_at is not None and end_at < start_at:
        raise ValidationError("Event cannot end before it starts")


class EventService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_event(self, user_id: UUID, details: EventDetails) -> Event:
        """User-created event; the creator is its only staff member.

        Reports on user events are subject to the normal tier policy.
        """
        creator = await self.session.get(User, user_id)
        if creator is None:
            raise NotFoundError("User", user_id)
        return await self._create(
            details,
            EventType.USER,
            PrincipalKind.USER,
            user_id,
            [creator],
        )

    async def create_admin_event(
        self,
        actor: Actor,
        details: EventDetails,
        staff_ids: Sequence[UUID],
    ) -> Event:
        """Organization event; reports attached to it skip policy limits."""
        actor.require_role(UserRole.ADMIN)
        staff = await self._load_staff(staff_ids)
        return await self._create(
            details,
            EventType.ADMIN,
            PrincipalKind.ADMIN,
            actor.principal_id,
            staff,
        )

    async def update_event(self, event_id: UUID, actor: Actor, patch: EventPatch) -> Event:
        event = await self.session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event", event_id)

        is_admin = actor.role == UserRole.ADMIN.value
        if not is_admin and (event.is_admin_event or event.creator_id != actor.principal_id):
            raise PermissionDeniedError(
                "Only the event creator can change this event",
                event_id=str(event_id),
            )

        if patch.status is not None:
            try:
                EventStatus(patch.status)
            except ValueError:
                raise ValidationError(f"Unknown event status {patch.status!r}") from None
        _check_schedule(
            patch.start_at if patch.start_at is not None else event.start_at,
            patch.end_at if patch.end_at is not None else event.end_at,
        )
        if patch.name is not None and not patch.name.strip():
            raise ValidationError("Event name is required")

        if patch.staff_ids is not None:
            if not is_admin:
                raise PermissionDeniedError("Only admins can change event staff")
            event.staff = await self._load_staff(patch.staff_ids)

        for name in ("name", "description", "location", "status", "start_at", "end_at"):
            value = getattr(patch, name)
            if value is not None:
                setattr(event, name, value)

        await self.session.flush()
        logger.info("Updated event %s", event_id)
        return event

    async def _create(
        self,
        details: EventDetails,
        event_type: EventType,
        creator_kind: PrincipalKind,
        creator_id: UUID,
        staff: list[User],
    ) -> Event:
        if not details.name or not details.name.strip():
            raise ValidationError("Event name is required")
        _check_schedule(details.start_at, details.end_at)

        event = Event(
            name=details.name.strip(),
            description=details.description,
            location=details.location,
            type=event_type.value,
            status=EventStatus.UPCOMING.value,
            creator_kind=creator_kind.value,
            creator_id=creator_id,
            start_at=details.start_at,
            end_at=details.end_at,
        )
        event.staff = staff
        self.session.add(event)
        await self.session.flush()

        logger.info(
            "Created %s event %s with %d staff member(s)",
            event_type.value,
            event.event_id,
            len(staff),
        )
        return event

    async def _load_staff(self, staff_ids: Sequence[UUID]) -> list[User]:
        ids = list(dict.fromkeys(staff_ids))
        if not ids:
            return []
        result = await self.session.execute(select(User).where(User.user_id.in_(ids)))
        found = {u.user_id: u for u in result.scalars().all()}
        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundError("User", missing[0])
        return [found[i] for i in ids]
