"""Expense report, its expense links, and the report number sequence."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_desk.models.base import Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from expense_desk.models.event import Event
    from expense_desk.models.expense import Expense
    from expense_desk.models.users import User


class Report(Base, TimestampMixin):
    """A bundle of expenses routed through approval and reimbursement."""

    __tablename__ = "report"

    report_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    label: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id"),
        nullable=False,
        index=True,
    )
    event_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("event.event_id"),
        nullable=True,
    )
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    report_date: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    reasons: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Approver and reimburser may be a user or an admin
    approver_kind: Mapped[str | None] = mapped_column(String, nullable=True)
    approver_id: Mapped[UUID | None] = mapped_column(nullable=True)
    reimburser_kind: Mapped[str | None] = mapped_column(String, nullable=True)
    reimburser_id: Mapped[UUID | None] = mapped_column(nullable=True)
    finance_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(
            "status IN ('drafted', 'pending', 'approved', 'rejected', 'reimbursed')",
            name="report_status_check",
        ),
        CheckConstraint(
            "approver_kind IS NULL OR approver_kind IN ('user', 'admin')",
            name="report_approver_kind_check",
        ),
        CheckConstraint(
            "reimburser_kind IS NULL OR reimburser_kind IN ('user', 'admin')",
            name="report_reimburser_kind_check",
        ),
    )

    # Relationships
    owner: Mapped[User] = relationship(lazy="selectin")
    event: Mapped[Event | None] = relationship(lazy="selectin")
    expense_links: Mapped[list[ReportExpense]] = relationship(
        back_populates="report",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ReportExpense.position",
    )

    @property
    def expenses(self) -> list[Expense]:
        """Expenses in report order."""
        return [link.expense for link in self.expense_links]

    @property
    def expense_ids(self) -> list[UUID]:
        return [link.expense_id for link in self.expense_links]

    @property
    def total_amount(self) -> Decimal:
        return sum((e.amount for e in self.expenses), Decimal("0"))


class ReportExpense(Base):
    """Membership of an expense in a report, with its position."""

    __tablename__ = "report_expense"

    report_id: Mapped[UUID] = mapped_column(
        ForeignKey("report.report_id", ondelete="CASCADE"),
        primary_key=True,
    )
    expense_id: Mapped[UUID] = mapped_column(
        ForeignKey("expense.expense_id"),
        primary_key=True,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    report: Mapped[Report] = relationship(back_populates="expense_links")
    expense: Mapped[Expense] = relationship(lazy="selectin")


class ReportSequence(Base):
    """Named monotonically increasing counter (report numbering)."""

    __tablename__ = "report_sequence"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
