"""Tests for event creation and updates."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

import pytest

from expense_desk.models import EventType
from expense_desk.services.errors import NotFoundError, PermissionDeniedError, ValidationError
from expense_desk.services.event_service import EventDetails, EventPatch, EventService


@pytest.fixture
def events(session) -> EventService:
    return EventService(session)


class TestCreateEvent:
    async def test_user_event(self, events, staff):
        event = await events.create_event(
            staff.user_id, EventDetails(name="  Client visit ", location="Pune")
        )

        assert event.type == EventType.USER.value
        assert event.creator_kind == "user"
        assert event.creator_id == staff.user_id
        assert event.status == "upcoming"
        assert event.name == "Client visit"
        assert [u.user_id for u in event.staff] == [staff.user_id]

    async def test_unknown_creator(self, events):
        with pytest.raises(NotFoundError):
            await events.create_event(uuid4(), EventDetails(name="Ghost trip"))

    async def test_name_required(self, events, staff):
        with pytest.raises(ValidationError):
            await events.create_event(staff.user_id, EventDetails(name="   "))

    async def test_end_before_start(self, events, staff):
        details = EventDetails(
            name="Backwards",
            start_at=datetime(2026, 3, 2),
            end_at=datetime(2026, 3, 1),
        )
        with pytest.raises(ValidationError):
            await events.create_event(staff.user_id, details)


class TestCreateAdminEvent:
    async def test_admin_event_with_staff(self, events, admin_actor, staff, other_staff):
        event = await events.create_admin_event(
            admin_actor,
            EventDetails(name="Annual summit"),
            [staff.user_id, other_staff.user_id, staff.user_id],
        )

        assert event.type == EventType.ADMIN.value
        assert event.is_admin_event
        assert event.creator_kind == "admin"
        assert [u.user_id for u in event.staff] == [staff.user_id, other_staff.user_id]

    async def test_requires_admin(self, events, staff_actor, staff):
        with pytest.raises(PermissionDeniedError):
            await events.create_admin_event(staff_actor, EventDetails(name="Summit"), [staff.user_id])

    async def test_unknown_staff_member(self, events, admin_actor):
        with pytest.raises(NotFoundError):
            await events.create_admin_event(admin_actor, EventDetails(name="Summit"), [uuid4()])


class TestUpdateEvent:
    async def test_creator_updates_fields(self, events, staff, staff_actor):
        event = await events.create_event(staff.user_id, EventDetails(name="Trip"))

        updated = await events.update_event(
            event.event_id,
            staff_actor,
            EventPatch(description="Customer onsite", status="ongoing"),
        )

        assert updated.description == "Customer onsite"
        assert updated.status == "ongoing"
        assert updated.name == "Trip"

    async def test_other_user_cannot_update(self, events, staff, other_staff, staff_actor):
        event = await events.create_event(other_staff.user_id, EventDetails(name="Theirs"))
        with pytest.raises(PermissionDeniedError):
            await events.update_event(event.event_id, staff_actor, EventPatch(name="Mine now"))

    async def test_staff_cannot_edit_admin_event(self, events, admin_actor, staff, staff_actor):
        event = await events.create_admin_event(admin_actor, EventDetails(name="Summit"), [staff.user_id])
        with pytest.raises(PermissionDeniedError):
            await events.update_event(event.event_id, staff_actor, EventPatch(location="Goa"))

    async def test_only_admin_changes_staff(self, events, staff, other_staff, staff_actor, admin_actor):
        event = await events.create_event(staff.user_id, EventDetails(name="Trip"))

        with pytest.raises(PermissionDeniedError):
            await events.update_event(event.event_id, staff_actor, EventPatch(staff_ids=[other_staff.user_id]))

        updated = await events.update_event(
            event.event_id, admin_actor, EventPatch(staff_ids=[staff.user_id, other_staff.user_id])
        )
        assert {u.user_id for u in updated.staff} == {staff.user_id, other_staff.user_id}

    async def test_unknown_status(self, events, staff, staff_actor):
        event = await events.create_event(staff.user_id, EventDetails(name="Trip"))
        with pytest.raises(ValidationError):
            await events.update_event(event.event_id, staff_actor, EventPatch(status="postponed"))

    async def test_schedule_checked_against_stored_dates(self, events, staff, staff_actor):
        event = await events.create_event(
            staff.user_id, EventDetails(name="Trip", start_at=datetime(2026, 5, 10))
        )
        with pytest.raises(ValidationError):
            await events.update_event(event.event_id, staff_actor, EventPatch(end_at=datetime(2026, 5, 1)))

    async def test_missing_event(self, events, staff_actor):
        with pytest.raises(NotFoundError):
            await events.update_event(uuid4(), staff_actor, EventPatch(name="x"))
