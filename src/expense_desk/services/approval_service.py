"""Approval and reimbursement of submitted reports."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.config import Settings
from expense_desk.events import (
    AsyncEventEmitter,
    EventMetadata,
    ReportApproved,
    ReportRejected,
    ReportReimbursed,
)
from expense_desk.formatting import format_display_date
from expense_desk.models import Deduction, DeductionMode, Report, UserRole, utcnow
from expense_desk.services.errors import (
    ExpenseMismatchError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from expense_desk.services.notifications import NotificationService
from expense_desk.services.principals import Actor, PrincipalDirectory, PrincipalRef
from expense_desk.services.report_service import ReportService
from expense_desk.services.state_machine import ExpenseStatus, ReportStateMachine, ReportStatus
from expense_desk.services.transitions import apply_transition, set_expense_status
from expense_desk.services.views import ExpenseView, ReviewDetail

logger = logging.getLogger(__name__)

APPROVE = "approve"
REJECT = "reject"


class ApprovalService:
    """Service for the review half of the report lifecycle.

    Operations:
    - decide_approval: pending → approved | rejected, reconciling expenses
    - reimburse: approved → reimbursed, recording any bank deduction
    - get_review_detail: approver / finance view of a report
    """

    def __init__(
        self,
        session: AsyncSession,
        emitter: AsyncEventEmitter | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.emitter = emitter
        self.reports = ReportService(session, emitter, settings)
        self.notifications = NotificationService(session, emitter)
        self.directory = PrincipalDirectory(session)

    async def _get_report(self, report_id: UUID) -> Report:
        report = await self.reports.load_report(report_id)
        if report is None:
            raise NotFoundError("Report", report_id)
        return report

    async def decide_approval(
        self,
        report_id: UUID,
        action: str,
        expense_ids: Sequence[UUID],
        reason: str | None,
        actor: Actor,
    ) -> Report:
        """Approve or reject a pending report.

        Approval requires ``expense_ids`` to be exactly the report's current
        expense set. Rejection marks the listed expenses rejected and every
        other expense on the report approved.
        """
        if action not in (APPROVE, REJECT):
            raise ValidationError(f"Unknown approval action {action!r}", action=action)
        if not expense_ids:
            raise ValidationError("Expenses are required")
        actor.require_role(UserRole.APPROVER, UserRole.ADMIN)

        report = await self._get_report(report_id)
        if actor.role == UserRole.APPROVER.value and report.owner.approver_id != actor.principal_id:
            raise PermissionDeniedError(
                "Report is not assigned to this approver",
                report_id=str(report_id),
            )

        to_status = ReportStatus.APPROVED if action == APPROVE else ReportStatus.REJECTED
        ReportStateMachine.validate_transition(report.status, to_status)

        current = report.expense_ids
        supplied = list(expense_ids)
        supplied_set = set(supplied)
        if action == APPROVE:
            if len(supplied) != len(current) or supplied_set != set(current):
                raise ExpenseMismatchError()
            rejected: list[UUID] = []
            approved = list(current)
        else:
            if not supplied_set <= set(current):
                raise ExpenseMismatchError()
            rejected = [i for i in current if i in supplied_set]
            approved = [i for i in current if i not in supplied_set]

        await apply_transition(
            self.session,
            report,
            to_status.value,
            reasons=[*(report.reasons or []), reason or ""],
            approver_kind=actor.kind.value,
            approver_id=actor.principal_id,
        )
        await set_expense_status(self.session, rejected, ExpenseStatus.REJECTED.value)
        await set_expense_status(self.session, approved, ExpenseStatus.APPROVED.value)

        logger.info(
            "Report %s %s by %s: %d approved, %d rejected",
            report.label,
            to_status.value,
            actor.principal_id,
            len(approved),
            len(rejected),
        )

        await self.notifications.notify(report.report_id, report.user_id, to_status.value)
        if self.emitter is not None:
            metadata = EventMetadata.create(actor_id=actor.principal_id, actor_kind=actor.kind.value)
            if action == APPROVE:
                event = ReportApproved(
                    metadata=metadata,
                    report_id=report.report_id,
                    user_id=report.user_id,
                    expense_ids=tuple(approved),
                )
            else:
                event = ReportRejected(
                    metadata=metadata,
                    report_id=report.report_id,
                    user_id=report.user_id,
                    rejected_expense_ids=tuple(rejected),
                    approved_expense_ids=tuple(approved),
                )
            await self.emitter.emit(event)

        return await self._get_report(report_id)

    async def reimburse(
        self,
        report_id: UUID,
        finance_description: str | None,
        deduction_amount: Decimal | None,
        actor: Actor,
    ) -> Report:
        """Mark an approved report reimbursed.

        A positive ``deduction_amount`` is recorded as a bank-mode deduction
        against the report owner, attributed to the acting finance user.
        """
        actor.require_role(UserRole.FINANCE, UserRole.ADMIN)
        amount = Decimal(deduction_amount or 0)
        if amount < 0:
            raise ValidationError("Deduction amount cannot be negative", amount=str(amount))

        report = await self._get_report(report_id)
        # Only approved reports can be reimbursed, so a second call fails here
        ReportStateMachine.validate_transition(report.status, ReportStatus.REIMBURSED)

        await apply_transition(
            self.session,
            report,
            ReportStatus.REIMBURSED.value,
            finance_description=finance_description,
            reimburser_kind=actor.kind.value,
            reimburser_id=actor.principal_id,
        )

        deduction = None
        if amount > 0:
            deduction = Deduction(
                user_id=report.user_id,
                amount=amount,
                deducted_by_kind=actor.kind.value,
                deducted_by_id=actor.principal_id,
                deducted_on=utcnow(),
                report_id=report.report_id,
                mode=DeductionMode.BANK.value,
            )
            self.session.add(deduction)
            await self.session.flush()

        approved = [e.expense_id for e in report.expenses if e.status == ExpenseStatus.APPROVED.value]
        await set_expense_status(self.session, approved, ExpenseStatus.REIMBURSED.value)

        logger.info(
            "Report %s reimbursed by %s (deduction %s)",
            report.label,
            actor.principal_id,
            amount if deduction is not None else "none",
        )

        await self.notifications.notify(report.report_id, report.user_id, ReportStatus.REIMBURSED.value)
        if self.emitter is not None:
            await self.emitter.emit(
                ReportReimbursed(
                    metadata=EventMetadata.create(
                        actor_id=actor.principal_id, actor_kind=actor.kind.value
                    ),
                    report_id=report.report_id,
                    user_id=report.user_id,
                    deduction_id=deduction.deduction_id if deduction is not None else None,
                )
            )

        return await self._get_report(report_id)

    async def get_review_detail(self, report_id: UUID, include_finance: bool = False) -> ReviewDetail:
        report = await self._get_report(report_id)
        owner = report.owner
        approver = await self.directory.display_name(
            PrincipalRef.of(report.approver_kind, report.approver_id)
        )
        reimburser = None
        if include_finance:
            reimburser = await self.directory.display_name(
                PrincipalRef.of(report.reimburser_kind, report.reimburser_id)
            )

        return ReviewDetail(
            report_id=report.report_id,
            label=report.label,
            user=owner.name,
            employee_id=owner.employee_id,
            tier=owner.tier.title if owner.tier is not None else None,
            title=report.title,
            description=report.description,
            location=report.location,
            status=report.status,
            approver=approver,
            expenses=[ExpenseView.from_expense(e) for e in report.expenses],
            total_amount=report.total_amount,
            report_date=format_display_date(report.report_date),
            created_at=format_display_date(report.created_at),
            updated_at=format_display_date(report.updated_at),
            reasons=list(report.reasons or []),
            reimburser=reimburser,
            finance_description=report.finance_description if include_finance else None,
        )
