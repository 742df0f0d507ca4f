"""Report aggregation: eligibility checks, creation, event drafts, edits."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from expense_desk.config import Settings, get_settings
from expense_desk.events import AsyncEventEmitter, EventMetadata, ReportSubmitted
from expense_desk.models import (
    Event,
    Expense,
    PrincipalKind,
    Report,
    ReportExpense,
    User,
    event_staff,
    utcnow,
)
from expense_desk.services.errors import (
    AlreadyMappedError,
    ExpenseAlreadyReportedError,
    NotFoundError,
    PolicyViolation,
    StateConflict,
    ValidationError,
)
from expense_desk.services.notifications import NotificationService
from expense_desk.services.policy import PolicyService, TierPolicy, aggregate_by_category
from expense_desk.services.principals import PrincipalDirectory
from expense_desk.services.sequence import SequenceService
from expense_desk.services.state_machine import (
    EXPENSE_IN_REPORT,
    ExpenseStatus,
    ReportStateMachine,
    ReportStatus,
)
from expense_desk.services.transitions import apply_transition, map_expenses, set_expense_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportMetadata:
    """Caller-supplied descriptive fields for a new report."""

    title: str | None = None
    description: str | None = None
    location: str | None = None
    report_date: datetime | None = None


@dataclass(frozen=True)
class ReportPatch:
    """Partial update of a report.

    ``expense_ids`` replaces the report's expense list when given and
    non-empty. ``submit`` moves a drafted report to pending.
    """

    expense_ids: Sequence[UUID] | None = None
    title: str | None = None
    description: str | None = None
    location: str | None = None
    report_date: datetime | None = None
    submit: bool = False


def _unique(ids: Sequence[UUID]) -> list[UUID]:
    seen: set[UUID] = set()
    ordered = []
    for expense_id in ids:
        if expense_id not in seen:
            seen.add(expense_id)
            ordered.append(expense_id)
    return ordered


class ReportService:
    """Service for building reports out of expenses.

    Operations:
    - create_report: eligibility checks, then map expenses and notify
    - get_report: load a report, or the caller's draft for an event
    - update_report: edit the expense list and metadata, submit drafts
    """

    def __init__(
        self,
        session: AsyncSession,
        emitter: AsyncEventEmitter | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.emitter = emitter
        self.settings = settings or get_settings()
        self.policy = PolicyService(session, self.settings)
        self.sequence = SequenceService(session)
        self.notifications = NotificationService(session, emitter)
        self.directory = PrincipalDirectory(session)

    async def load_report(self, report_id: UUID) -> Report | None:
        """Load a report with its expenses and event, bypassing stale state."""
        result = await self.session.execute(
            select(Report)
            .where(Report.report_id == report_id)
            .options(
                selectinload(Report.expense_links).selectinload(ReportExpense.expense),
                selectinload(Report.event),
                selectinload(Report.owner),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_report(
        self,
        user_id: UUID,
        expense_ids: Sequence[UUID],
        event_id: UUID | None = None,
        metadata: ReportMetadata | None = None,
    ) -> Report:
        """Create a pending report from the user's expenses.

        All checks run before the first write. Reports attached to an
        admin-created event skip the tier policy checks, but no expense is
        ever mapped into two reports.
        """
        if not expense_ids:
            raise ValidationError("Expenses are required")
        metadata = metadata or ReportMetadata()
        ids = _unique(expense_ids)

        user = await self.directory.get_user(user_id)
        expenses = await self._load_expenses(ids, owner_id=user.user_id)

        event = None
        if event_id is not None:
            event = await self.session.get(Event, event_id)
            if event is None:
                raise NotFoundError("Event", event_id)

        admin_event = event is not None and event.is_admin_event
        policy = None if admin_event else await self.policy.get_tier_for_user(user)

        self._check_not_mapped(expenses)
        if policy is not None:
            self._check_categories(user, policy, expenses)
        await self._check_not_reported(ids)
        if policy is not None:
            await self._check_monthly_cap(user, policy, expenses)

        await map_expenses(self.session, expenses)
        label = await self.sequence.next_report_label()

        report = Report(
            label=label,
            user_id=user.user_id,
            event_id=event.event_id if event is not None else None,
            title=metadata.title,
            description=metadata.description,
            location=metadata.location,
            status=ReportStatus.PENDING.value,
            report_date=metadata.report_date or utcnow(),
            reasons=[],
        )
        report.expense_links = [
            ReportExpense(expense=expense, position=position)
            for position, expense in enumerate(expenses)
        ]
        self.session.add(report)
        await self.session.flush()

        logger.info(
            "Created report %s for user %s with %d expense(s)%s",
            label,
            user.user_id,
            len(expenses),
            " (admin event, policy bypassed)" if admin_event else "",
        )

        await self._announce_submission(report, user, admin_event)
        loaded = await self.load_report(report.report_id)
        assert loaded is not None
        return loaded

    async def get_report(
        self,
        report_id: UUID,
        user_id: UUID,
        is_event: bool = False,
    ) -> Report:
        """Fetch one of the user's reports.

        With ``is_event`` the id is an event id: the user's report for that
        event is returned, and a drafted one is created on first access.
        """
        if not is_event:
            report = await self.load_report(report_id)
            if report is None or report.user_id != user_id:
                raise NotFoundError("Report", report_id)
            return report

        event_id = report_id
        existing = await self.session.scalar(
            select(Report.report_id).where(Report.event_id == event_id, Report.user_id == user_id)
            .order_by(Report.created_at.desc())
            .limit(1)
        )
        if existing is not None:
            report = await self.load_report(existing)
            assert report is not None
            return report

        event = await self.session.scalar(
            select(Event)
            .join(event_staff, event_staff.c.event_id == Event.event_id)
            .where(Event.event_id == event_id, event_staff.c.user_id == user_id)
        )
        if event is None:
            raise NotFoundError("Event", event_id)

        report = Report(
            user_id=user_id,
            event_id=event.event_id,
            title=event.name,
            description=event.description,
            location=event.location or "Event Location",
            status=ReportStatus.DRAFTED.value,
            report_date=utcnow(),
            reasons=[],
        )
        report.expense_links = []
        self.session.add(report)
        await self.session.flush()
        logger.info("Drafted report %s for event %s, user %s", report.report_id, event_id, user_id)

        loaded = await self.load_report(report.report_id)
        assert loaded is not None
        return loaded

    async def update_report(self, report_id: UUID, user_id: UUID, patch: ReportPatch) -> Report:
        """Apply ``patch`` to the user's report.

        Expenses newly added are mapped, expenses dropped go back to
        drafted. Reports created before numbering existed get a label here.
        """
        report = await self.load_report(report_id)
        if report is None or report.user_id != user_id:
            raise NotFoundError("Report", report_id)

        user = await self.directory.get_user(user_id)

        added: list[UUID] = []
        removed: list[UUID] = []
        new_expenses: list[Expense] = []
        if patch.expense_ids:
            requested = _unique(patch.expense_ids)
            current = report.expense_ids
            added = [i for i in requested if i not in current]
            removed = [i for i in current if i not in requested]

            if (added or removed) and not ReportStateMachine.can_modify_expenses(report.status):
                raise StateConflict(
                    f"Expenses of a {report.status} report can no longer change",
                    report_id=str(report.report_id),
                    status=report.status,
                )

            new_expenses = await self._load_expenses(added, owner_id=user_id)
            self._check_not_mapped(new_expenses)
            await self._check_not_reported(added)

            by_id = {e.expense_id: e for e in new_expenses}
            for link in list(report.expense_links):
                if link.expense_id in removed:
                    report.expense_links.remove(link)
            for expense_id in added:
                report.expense_links.append(ReportExpense(expense=by_id[expense_id]))
            order = {expense_id: position for position, expense_id in enumerate(requested)}
            for link in report.expense_links:
                link.position = order[link.expense.expense_id]
            report.expense_links.sort(key=lambda link: link.position)

        if patch.submit:
            ReportStateMachine.validate_transition(report.status, ReportStatus.PENDING)
            expenses = [link.expense for link in report.expense_links]
            if not expenses:
                raise ValidationError("Expenses are required")
            if report.event is None or not report.event.is_admin_event:
                policy = await self.policy.get_tier_for_user(user)
                self._check_categories(user, policy, expenses)
                await self._check_monthly_cap(user, policy, expenses)

        # All checks passed; writes start here
        await map_expenses(self.session, new_expenses)
        await set_expense_status(self.session, removed, ExpenseStatus.DRAFTED.value)

        for name in ("title", "description", "location", "report_date"):
            value = getattr(patch, name)
            if value is not None:
                setattr(report, name, value)

        if report.label is None:
            report.label = await self.sequence.next_report_label()

        await self.session.flush()

        if patch.submit:
            await apply_transition(self.session, report, ReportStatus.PENDING.value)
            await self._announce_submission(
                report, user, report.event is not None and report.event.is_admin_event
            )

        logger.info(
            "Updated report %s: +%d/-%d expense(s)%s",
            report.label,
            len(added),
            len(removed),
            ", submitted" if patch.submit else "",
        )
        loaded = await self.load_report(report.report_id)
        assert loaded is not None
        return loaded

    # ===== Eligibility checks =====

    async def _load_expenses(self, ids: Sequence[UUID], owner_id: UUID) -> list[Expense]:
        if not ids:
            return []
        result = await self.session.execute(select(Expense).where(Expense.expense_id.in_(ids)))
        found = {e.expense_id: e for e in result.scalars().all()}
        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundError("Expense", missing[0])
        foreign = [e for e in found.values() if e.user_id != owner_id]
        if foreign:
            raise ValidationError(
                f"Expense {foreign[0].expense_id} does not belong to the submitter",
                expense_id=str(foreign[0].expense_id),
            )
        return [found[i] for i in ids]

    def _check_not_mapped(self, expenses: Sequence[Expense]) -> None:
        for expense in expenses:
            if expense.status in EXPENSE_IN_REPORT:
                raise AlreadyMappedError(expense.title, expense.expense_id)

    async def _check_not_reported(self, ids: Sequence[UUID]) -> None:
        """Reject expenses already on an approved or reimbursed report."""
        if not ids:
            return
        existing = await self.session.scalar(
            select(Report)
            .join(ReportExpense, ReportExpense.report_id == Report.report_id)
            .where(
                ReportExpense.expense_id.in_(ids),
                Report.status.in_([s.value for s in ReportStateMachine.LOCKS_EXPENSES]),
            )
            .limit(1)
        )
        if existing is not None:
            raise ExpenseAlreadyReportedError(existing.title or existing.label, existing.report_id)

    def _check_categories(self, user: User, policy: TierPolicy, expenses: Sequence[Expense]) -> None:
        try:
            policy.check_category_totals(aggregate_by_category(expenses))
        except PolicyViolation as exc:
            logger.info("Report for user %s rejected by tier %s: %s", user.user_id, policy.title, exc)
            raise

    async def _check_monthly_cap(
        self,
        user: User,
        policy: TierPolicy,
        expenses: Sequence[Expense],
    ) -> None:
        existing_total = await self.policy.monthly_committed_total(user)
        report_total = sum((Decimal(e.amount) for e in expenses), Decimal("0"))
        try:
            policy.check_monthly_total(existing_total, report_total)
        except PolicyViolation as exc:
            logger.info("Report for user %s rejected by tier %s: %s", user.user_id, policy.title, exc)
            raise

    # ===== Side effects =====

    async def _announce_submission(self, report: Report, user: User, admin_event: bool) -> None:
        await self.notifications.notify(report.report_id, user.user_id, report.status)
        await self.notifications.notify(report.report_id, user.approver_id, report.status)

        if self.emitter is not None:
            await self.emitter.emit(
                ReportSubmitted(
                    metadata=EventMetadata.create(
                        actor_id=user.user_id, actor_kind=PrincipalKind.USER.value
                    ),
                    report_id=report.report_id,
                    user_id=user.user_id,
                    label=report.label,
                    admin_event=admin_event,
                )
            )
