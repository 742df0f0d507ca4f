"""Wallet models: advance payments (credits) and deductions (debits)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from expense_desk.models.base import Base, TimestampMixin, utcnow


class DeductionMode(str, Enum):
    """Where a deduction is taken from."""

    BANK = "bank"
    WALLET = "wallet"


class TransactionStatus(str, Enum):
    """Advance payment status."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """How an advance was paid out."""

    BANK_TRANSFER = "Bank Transfer"
    CASH = "Cash"
    CREDIT_CARD = "Credit Card"
    OTHER = "Other"


class Deduction(Base, TimestampMixin):
    """A debit against a user, taken at reimbursement or from the wallet."""

    __tablename__ = "deduction"

    deduction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    deducted_by_kind: Mapped[str] = mapped_column(String, nullable=False)
    deducted_by_id: Mapped[UUID] = mapped_column(nullable=False)
    deducted_on: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    report_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("report.report_id"),
        nullable=True,
    )
    mode: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="deduction_amount_check"),
        CheckConstraint("mode IN ('bank', 'wallet')", name="deduction_mode_check"),
        CheckConstraint(
            "deducted_by_kind IN ('user', 'admin')",
            name="deduction_deducted_by_kind_check",
        ),
    )


class WalletTransaction(Base, TimestampMixin):
    """An advance payment from an admin to a user; credits the wallet."""

    __tablename__ = "wallet_transaction"

    transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    sender_id: Mapped[UUID] = mapped_column(ForeignKey("admin.admin_id"), nullable=False)
    receiver_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id"),
        nullable=False,
        index=True,
    )
    requested_on: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    paid_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("admin.admin_id"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=TransactionStatus.PENDING.value
    )
    paid_on: Mapped[datetime | None] = mapped_column(nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="wallet_transaction_amount_check"),
        CheckConstraint(
            "status IN ('pending', 'completed', 'cancelled')",
            name="wallet_transaction_status_check",
        ),
        CheckConstraint(
            "payment_method IS NULL OR payment_method IN "
            "('Bank Transfer', 'Cash', 'Credit Card', 'Other')",
            name="wallet_transaction_method_check",
        ),
    )
