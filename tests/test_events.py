"""Tests for the event emitter and notification delivery."""

from __future__ import annotations

import logging
from uuid import uuid4

import pytest
from sqlalchemy import select

from expense_desk.events import (
    AsyncEventEmitter,
    EventMetadata,
    NotificationRequested,
    ReportApproved,
    ReportSubmitted,
)
from expense_desk.models import Notification, Report, utcnow
from expense_desk.services.notifications import NotificationService


def submitted() -> ReportSubmitted:
    return ReportSubmitted(
        metadata=EventMetadata.create(),
        report_id=uuid4(),
        user_id=uuid4(),
        label="Rep#001",
        admin_event=False,
    )


def approved() -> ReportApproved:
    return ReportApproved(
        metadata=EventMetadata.create(),
        report_id=uuid4(),
        user_id=uuid4(),
        expense_ids=(uuid4(),),
    )


class TestAsyncEventEmitter:
    async def test_type_filtering(self):
        emitter = AsyncEventEmitter()
        seen = []
        emitter.on(ReportSubmitted, seen.append)

        await emitter.emit(submitted())
        await emitter.emit(approved())

        assert [e.event_type for e in seen] == ["ReportSubmitted"]

    async def test_async_handlers(self):
        emitter = AsyncEventEmitter()
        seen = []

        async def handler(event):
            seen.append(event.event_type)

        emitter.on([ReportSubmitted, ReportApproved], handler)
        await emitter.emit(submitted())
        await emitter.emit(approved())

        assert seen == ["ReportSubmitted", "ReportApproved"]

    async def test_failing_handler_is_isolated(self):
        emitter = AsyncEventEmitter()
        seen = []

        def broken(event):
            raise RuntimeError("transport down")

        async def broken_async(event):
            raise RuntimeError("async transport down")

        emitter.on_all(broken)
        emitter.on_all(broken_async)
        emitter.on_all(seen.append)

        errors = await emitter.emit(submitted())

        assert len(seen) == 1
        assert len(errors) == 2
        assert all(isinstance(e, RuntimeError) for e in errors)

    async def test_off(self):
        emitter = AsyncEventEmitter()
        seen = []

        def handler(event):
            seen.append(event)

        emitter.on_all(handler)
        emitter.off(handler)

        await emitter.emit(submitted())
        assert seen == []

    async def test_batch_delivers_on_clean_exit(self):
        emitter = AsyncEventEmitter()
        seen = []
        emitter.on_all(seen.append)

        async with emitter.batch() as batch:
            await batch.add(submitted())
            await batch.add(approved())
            assert seen == []

        assert len(seen) == 2
        assert batch.errors == []

    async def test_batch_discarded_on_error(self):
        emitter = AsyncEventEmitter()
        seen = []
        emitter.on_all(seen.append)

        with pytest.raises(ValueError):
            async with emitter.batch() as batch:
                await batch.add(submitted())
                raise ValueError("rolled back")

        assert seen == []
        await emitter.emit(approved())
        assert len(seen) == 1

    def test_to_dict_carries_event_type(self):
        data = submitted().to_dict()
        assert data["event_type"] == "ReportSubmitted"
        assert data["label"] == "Rep#001"


class TestNotificationService:
    @pytest.fixture
    async def report(self, session, staff) -> Report:
        report = Report(user_id=staff.user_id, status="pending", report_date=utcnow(), reasons=[])
        session.add(report)
        await session.flush()
        return report

    async def test_notify_records_row_and_emits(self, session, emitter, recorder, report, staff):
        notification = await NotificationService(session, emitter).notify(
            report.report_id, staff.user_id, "pending"
        )

        assert notification is not None
        stored = (await session.execute(select(Notification))).scalar_one()
        assert stored.notification_id == notification.notification_id
        assert stored.is_read is False

        event = recorder.of_type("NotificationRequested")[0]
        assert isinstance(event, NotificationRequested)
        assert event.user_id == staff.user_id
        assert event.status == "pending"

    async def test_missing_recipient_is_skipped(self, session, emitter, recorder, report):
        result = await NotificationService(session, emitter).notify(report.report_id, None, "pending")

        assert result is None
        assert (await session.execute(select(Notification))).first() is None
        assert recorder.events == []

    async def test_delivery_failure_does_not_raise(self, session, report, staff, caplog):
        emitter = AsyncEventEmitter()

        async def transport(event):
            raise ConnectionError("push gateway unreachable")

        emitter.on(NotificationRequested, transport)

        with caplog.at_level(logging.WARNING):
            notification = await NotificationService(session, emitter).notify(
                report.report_id, staff.user_id, "approved"
            )

        assert notification is not None
        assert "notification handler(s) failed" in caplog.text
