"""Paginated, newest-first listings for the caller's dashboard."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.config import Settings, get_settings
from expense_desk.models import Event, Expense, Notification, Report, User, UserRole, event_staff
from expense_desk.services.errors import NotFoundError, PermissionDeniedError, ValidationError
from expense_desk.services.principals import Actor
from expense_desk.services.views import (
    EventView,
    ExpenseView,
    NotificationView,
    Page,
    ReportSummary,
)

logger = logging.getLogger(__name__)


class ListType(str, Enum):
    REPORTS = "reports"
    EXPENSES = "expenses"
    NOTIFICATIONS = "notifications"
    EVENTS = "events"
    APPROVALS = "approvals"


class ListingService:
    """Read-only listings, one page at a time.

    Every listing is sorted by creation time, newest first, and paged with
    ``settings.page_size`` items per page. ``page_no`` starts at 1.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def list(
        self,
        actor: Actor,
        list_type: str,
        page_no: int = 1,
        status: str | None = None,
    ) -> Page[Any]:
        try:
            kind = ListType(list_type)
        except ValueError:
            raise ValidationError(f"Unknown list type {list_type!r}", type=list_type) from None
        if page_no < 1:
            raise ValidationError("pageNo must be at least 1", page_no=page_no)

        if kind == ListType.REPORTS:
            return await self.list_reports(actor.principal_id, page_no, status)
        if kind == ListType.EXPENSES:
            return await self.list_expenses(actor.principal_id, page_no, status)
        if kind == ListType.NOTIFICATIONS:
            return await self.list_notifications(actor.principal_id, page_no)
        if kind == ListType.EVENTS:
            return await self.list_events(actor.principal_id, page_no, status)
        return await self.list_approvals(actor, page_no, status)

    async def list_reports(
        self, user_id: UUID, page_no: int = 1, status: str | None = None
    ) -> Page[ReportSummary]:
        query = select(Report).where(Report.user_id == user_id)
        if status:
            query = query.where(Report.status == status)
        total, reports = await self._page(query, Report.created_at, page_no)
        return self._wrap([ReportSummary.from_report(r) for r in reports], total, page_no)

    async def list_expenses(
        self, user_id: UUID, page_no: int = 1, status: str | None = None
    ) -> Page[ExpenseView]:
        query = select(Expense).where(Expense.user_id == user_id)
        if status:
            query = query.where(Expense.status == status)
        total, expenses = await self._page(query, Expense.created_at, page_no)
        return self._wrap([ExpenseView.from_expense(e) for e in expenses], total, page_no)

    async def list_notifications(self, user_id: UUID, page_no: int = 1) -> Page[NotificationView]:
        """Unread notifications; the returned page is marked read."""
        query = select(Notification).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        total, notifications = await self._page(query, Notification.created_at, page_no)
        if not notifications:
            return self._wrap([], total, page_no)

        report_ids = {n.report_id for n in notifications}
        result = await self.session.execute(select(Report).where(Report.report_id.in_(report_ids)))
        reports = {r.report_id: r for r in result.scalars().all()}
        items = [NotificationView.build(n, reports.get(n.report_id)) for n in notifications]

        await self.session.execute(
            update(Notification)
            .where(Notification.notification_id.in_([n.notification_id for n in notifications]))
            .values(is_read=True)
            .execution_options(synchronize_session="evaluate")
        )
        logger.debug("Marked %d notification(s) read for user %s", len(items), user_id)
        return self._wrap(items, total, page_no)

    async def list_events(
        self, user_id: UUID, page_no: int = 1, status: str | None = None
    ) -> Page[EventView]:
        query = (
            select(Event)
            .join(event_staff, event_staff.c.event_id == Event.event_id)
            .where(event_staff.c.user_id == user_id)
        )
        if status:
            query = query.where(Event.status == status)
        total, events = await self._page(query, Event.created_at, page_no)
        return self._wrap([EventView.from_event(e) for e in events], total, page_no)

    async def list_approvals(
        self, actor: Actor, page_no: int = 1, status: str | None = None
    ) -> Page[ReportSummary]:
        """Reports whose owner names the caller as approver."""
        actor.require_role(UserRole.APPROVER)
        approver = await self.session.get(User, actor.principal_id)
        if approver is None:
            raise NotFoundError("User", actor.principal_id)
        if approver.role != UserRole.APPROVER.value:
            raise PermissionDeniedError(
                "You don't have permission to perform this action",
                role=approver.role,
            )

        query = (
            select(Report)
            .join(User, User.user_id == Report.user_id)
            .where(User.approver_id == approver.user_id)
        )
        if status:
            query = query.where(Report.status == status)
        total, reports = await self._page(query, Report.created_at, page_no)
        return self._wrap([ReportSummary.from_report(r) for r in reports], total, page_no)

    async def _page(self, query: Select[Any], order_column: Any, page_no: int) -> tuple[int, list[Any]]:
        page_size = self.settings.page_size
        total = await self.session.scalar(select(func.count()).select_from(query.subquery())) or 0
        result = await self.session.execute(
            query.order_by(order_column.desc()).offset((page_no - 1) * page_size).limit(page_size)
        )
        return total, list(result.scalars().all())

    def _wrap(self, items: list[Any], total: int, page_no: int) -> Page[Any]:
        return Page(items=items, total=total, page=page_no, page_size=self.settings.page_size)
