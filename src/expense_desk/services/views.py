"""Read models returned by the services and serialized by the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar
from uuid import UUID

from expense_desk.formatting import format_display_date
from expense_desk.models import Event, Expense, Notification, Report

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a newest-first listing."""

    items: list[T]
    total: int
    page: int
    page_size: int


@dataclass(frozen=True)
class ExpenseView:
    expense_id: UUID
    title: str
    status: str
    amount: Decimal
    category: str
    description: str | None
    image: str | None
    location: str | None
    date: str | None
    ai_scores: dict[str, Any] | None = None

    @classmethod
    def from_expense(cls, expense: Expense, include_scores: bool = False) -> ExpenseView:
        return cls(
            expense_id=expense.expense_id,
            title=expense.title,
            status=expense.status,
            amount=Decimal(expense.amount),
            category=expense.category,
            description=expense.description,
            image=expense.image,
            location=expense.location,
            date=format_display_date(expense.created_at),
            ai_scores=expense.ai_scores if include_scores else None,
        )


@dataclass(frozen=True)
class ReportSummary:
    report_id: UUID
    label: str | None
    title: str | None
    status: str
    is_event: bool
    event_type: str | None
    total_amount: Decimal
    expense_count: int
    date: str | None

    @classmethod
    def from_report(cls, report: Report) -> ReportSummary:
        return cls(
            report_id=report.report_id,
            label=report.label,
            title=report.title,
            status=report.status,
            is_event=report.event_id is not None,
            event_type=report.event.type if report.event is not None else None,
            total_amount=report.total_amount,
            expense_count=len(report.expense_links),
            date=format_display_date(report.report_date),
        )


@dataclass(frozen=True)
class ReportDetail:
    report_id: UUID
    label: str | None
    title: str | None
    status: str
    total_amount: Decimal
    expense_count: int
    event_id: UUID | None
    event_status: str | None
    expenses: list[ExpenseView]
    date: str | None
    reasons: list[str]

    @classmethod
    def from_report(cls, report: Report) -> ReportDetail:
        return cls(
            report_id=report.report_id,
            label=report.label,
            title=report.title,
            status=report.status,
            total_amount=report.total_amount,
            expense_count=len(report.expense_links),
            event_id=report.event_id,
            event_status=report.event.status if report.event is not None else None,
            expenses=[ExpenseView.from_expense(e) for e in report.expenses],
            date=format_display_date(report.report_date),
            reasons=list(report.reasons or []),
        )


@dataclass(frozen=True)
class ReviewDetail:
    """What an approver or finance reviewer sees for one report."""

    report_id: UUID
    label: str | None
    user: str
    employee_id: str | None
    tier: str | None
    title: str | None
    description: str | None
    location: str | None
    status: str
    approver: str | None
    expenses: list[ExpenseView]
    total_amount: Decimal
    report_date: str | None
    created_at: str | None
    updated_at: str | None
    reasons: list[str] = field(default_factory=list)
    reimburser: str | None = None
    finance_description: str | None = None


@dataclass(frozen=True)
class EventView:
    event_id: UUID
    name: str
    description: str | None
    location: str | None
    status: str
    type: str
    start_at: datetime | None
    end_at: datetime | None

    @classmethod
    def from_event(cls, event: Event) -> EventView:
        return cls(
            event_id=event.event_id,
            name=event.name,
            description=event.description,
            location=event.location,
            status=event.status,
            type=event.type,
            start_at=event.start_at,
            end_at=event.end_at,
        )


@dataclass(frozen=True)
class NotificationView:
    notification_id: UUID
    report_id: UUID
    report_label: str | None
    report_title: str | None
    status: str
    total_amount: Decimal
    expense_count: int
    date: str | None

    @classmethod
    def build(cls, notification: Notification, report: Report | None) -> NotificationView:
        return cls(
            notification_id=notification.notification_id,
            report_id=notification.report_id,
            report_label=report.label if report is not None else None,
            report_title=report.title if report is not None else None,
            status=notification.status,
            total_amount=report.total_amount if report is not None else Decimal("0"),
            expense_count=len(report.expense_links) if report is not None else 0,
            date=format_display_date(notification.created_at),
        )


@dataclass(frozen=True)
class WalletEntry:
    display_id: str
    amount: Decimal
    date: datetime
    mode: str  # credit or debit
    counterparty: str | None


@dataclass(frozen=True)
class WalletView:
    total_amount: Decimal
    total_expenses: Decimal
    balance_amount: Decimal
    entries: list[WalletEntry]
    categories: list[str]


@dataclass(frozen=True)
class WalletUsedView:
    total_amount: Decimal
    total_expenses: Decimal
    expenses: list[ExpenseView]
    categories: list[str]


@dataclass(frozen=True)
class TransactionView:
    """An advance payment with its parties resolved to names."""

    transaction_id: UUID
    display_id: str
    amount: Decimal
    status: str
    sender: str | None
    receiver: str | None
    paid_by: str | None
    requested_on: datetime
    paid_on: datetime | None
    payment_method: str | None
    description: str | None
