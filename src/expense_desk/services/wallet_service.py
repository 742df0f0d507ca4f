"""Wallet read models, wallet debits, and advance payments."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.formatting import month_bounds, short_transaction_id
from expense_desk.models import (
    Admin,
    Deduction,
    DeductionMode,
    Expense,
    PaymentMethod,
    PrincipalKind,
    Report,
    TransactionStatus,
    User,
    UserRole,
    WalletTransaction,
    utcnow,
)
from expense_desk.services.errors import NotFoundError, StateConflict, ValidationError
from expense_desk.services.policy import TierPolicy
from expense_desk.services.principals import Actor, PrincipalDirectory, PrincipalRef
from expense_desk.services.state_machine import ExpenseStatus
from expense_desk.services.views import (
    ExpenseView,
    TransactionView,
    WalletEntry,
    WalletUsedView,
    WalletView,
)

logger = logging.getLogger(__name__)

CREDIT = "credit"
DEBIT = "debit"

# Expenses counted against the monthly allowance in the "used" view
WALLET_USED_STATUSES = (
    ExpenseStatus.MAPPED.value,
    ExpenseStatus.APPROVED.value,
    ExpenseStatus.REIMBURSED.value,
)

TRANSACTION_TRANSITIONS: dict[str, set[str]] = {
    TransactionStatus.PENDING.value: {
        TransactionStatus.COMPLETED.value,
        TransactionStatus.CANCELLED.value,
    },
    TransactionStatus.COMPLETED.value: set(),
    TransactionStatus.CANCELLED.value: set(),
}


def _money(value: Decimal | int | str | float) -> Decimal:
    try:
        amount = Decimal(str(value))
    except ArithmeticError:
        raise ValidationError("Amount must be a number", amount=str(value)) from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero", amount=str(value))
    return amount


class WalletService:
    """Derived wallet balance plus the writes that feed it.

    Credits are completed advance payments received this month, debits are
    active wallet-mode deductions taken this month. Both use UTC calendar
    month boundaries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.directory = PrincipalDirectory(session)

    # ===== Read models =====

    async def get_wallet(self, user_id: UUID, now: datetime | None = None) -> WalletView:
        user = await self.directory.get_user(user_id)
        start, end = month_bounds(now or utcnow())

        advances = (
            await self.session.execute(
                select(WalletTransaction).where(
                    WalletTransaction.receiver_id == user.user_id,
                    WalletTransaction.status == TransactionStatus.COMPLETED.value,
                    WalletTransaction.created_at >= start,
                    WalletTransaction.created_at < end,
                )
            )
        ).scalars().all()

        deductions = (
            await self.session.execute(
                select(Deduction).where(
                    Deduction.user_id == user.user_id,
                    Deduction.mode == DeductionMode.WALLET.value,
                    Deduction.status.is_(True),
                    Deduction.deducted_on >= start,
                    Deduction.deducted_on < end,
                )
            )
        ).scalars().all()

        entries: list[WalletEntry] = []
        for advance in advances:
            sender = await self.session.get(Admin, advance.sender_id)
            entries.append(
                WalletEntry(
                    display_id=short_transaction_id(advance.transaction_id),
                    amount=Decimal(advance.amount),
                    date=advance.created_at,
                    mode=CREDIT,
                    counterparty=sender.name if sender is not None else "User",
                )
            )
        for deduction in deductions:
            entries.append(
                WalletEntry(
                    display_id=short_transaction_id(deduction.deduction_id),
                    amount=Decimal(deduction.amount),
                    date=deduction.deducted_on,
                    mode=DEBIT,
                    counterparty=await self.directory.display_name(
                        PrincipalRef.of(deduction.deducted_by_kind, deduction.deducted_by_id)
                    ),
                )
            )
        entries.sort(key=lambda entry: entry.date, reverse=True)

        total_amount = sum((Decimal(a.amount) for a in advances), Decimal("0"))
        total_expenses = sum((Decimal(d.amount) for d in deductions), Decimal("0"))

        return WalletView(
            total_amount=total_amount,
            total_expenses=total_expenses,
            balance_amount=total_amount - total_expenses,
            entries=entries,
            categories=self._categories(user),
        )

    async def get_wallet_used(self, user_id: UUID, now: datetime | None = None) -> WalletUsedView:
        """Tier allowance against this month's mapped, approved and reimbursed expenses."""
        user = await self.directory.get_user(user_id)
        start, end = month_bounds(now or utcnow())

        expenses = (
            await self.session.execute(
                select(Expense)
                .where(
                    Expense.user_id == user.user_id,
                    Expense.status.in_(WALLET_USED_STATUSES),
                    Expense.created_at >= start,
                    Expense.created_at < end,
                )
                .order_by(Expense.created_at.desc())
            )
        ).scalars().all()

        return WalletUsedView(
            total_amount=Decimal(user.tier.total_amount) if user.tier is not None else Decimal("0"),
            total_expenses=sum((Decimal(e.amount) for e in expenses), Decimal("0")),
            expenses=[ExpenseView.from_expense(e) for e in expenses],
            categories=self._categories(user),
        )

    def _categories(self, user: User) -> list[str]:
        if user.tier is None:
            return []
        return TierPolicy.from_tier(user.tier).enabled_category_titles()

    # ===== Debits =====

    async def record_wallet_debit(
        self,
        user_id: UUID,
        amount: Decimal,
        actor: Actor,
        report_id: UUID | None = None,
    ) -> Deduction:
        """Take ``amount`` out of the user's wallet for this month."""
        actor.require_role(UserRole.ADMIN, UserRole.FINANCE, UserRole.APPROVER)
        value = _money(amount)
        user = await self.directory.get_user(user_id)

        if report_id is not None:
            report = await self.session.get(Report, report_id)
            if report is None or report.user_id != user.user_id:
                raise NotFoundError("Report", report_id)

        deduction = Deduction(
            user_id=user.user_id,
            amount=value,
            deducted_by_kind=actor.kind.value,
            deducted_by_id=actor.principal_id,
            deducted_on=utcnow(),
            report_id=report_id,
            mode=DeductionMode.WALLET.value,
        )
        self.session.add(deduction)
        await self.session.flush()

        logger.info("Wallet debit of %s for user %s by %s", value, user.user_id, actor.principal_id)
        return deduction

    # ===== Advance payments =====

    async def create_transaction(
        self,
        actor: Actor,
        receiver_id: UUID,
        amount: Decimal,
        payment_method: str | None = None,
        description: str | None = None,
    ) -> WalletTransaction:
        """Request an advance from the acting admin to a user."""
        actor.require_role(UserRole.ADMIN, UserRole.FINANCE)
        value = _money(amount)
        if payment_method is not None:
            try:
                payment_method = PaymentMethod(payment_method).value
            except ValueError:
                raise ValidationError(
                    f"Unknown payment method {payment_method!r}",
                    payment_method=payment_method,
                ) from None

        receiver = await self.directory.get_user(receiver_id)
        transaction = WalletTransaction(
            sender_id=actor.principal_id,
            receiver_id=receiver.user_id,
            requested_on=utcnow(),
            amount=value,
            status=TransactionStatus.PENDING.value,
            payment_method=payment_method,
            description=description,
        )
        self.session.add(transaction)
        await self.session.flush()

        logger.info(
            "Advance %s of %s requested for user %s",
            transaction.transaction_id,
            value,
            receiver.user_id,
        )
        return transaction

    async def complete_transaction(
        self,
        transaction_id: UUID,
        actor: Actor,
        payment_method: str | None = None,
    ) -> WalletTransaction:
        """Mark a pending advance paid; it now credits the receiver's wallet."""
        actor.require_role(UserRole.ADMIN, UserRole.FINANCE)
        values: dict[str, object] = {"paid_by_id": actor.principal_id, "paid_on": utcnow()}
        if payment_method is not None:
            try:
                values["payment_method"] = PaymentMethod(payment_method).value
            except ValueError:
                raise ValidationError(
                    f"Unknown payment method {payment_method!r}",
                    payment_method=payment_method,
                ) from None
        return await self._transition(transaction_id, TransactionStatus.COMPLETED.value, **values)

    async def cancel_transaction(self, transaction_id: UUID, actor: Actor) -> WalletTransaction:
        actor.require_role(UserRole.ADMIN, UserRole.FINANCE)
        return await self._transition(transaction_id, TransactionStatus.CANCELLED.value)

    async def get_transaction(self, transaction_id: UUID, actor: Actor) -> TransactionView:
        """Advance detail. Users only see advances addressed to them."""
        transaction = await self.session.get(WalletTransaction, transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)
        if actor.kind == PrincipalKind.USER and transaction.receiver_id != actor.principal_id:
            raise NotFoundError("Transaction", transaction_id)

        return TransactionView(
            transaction_id=transaction.transaction_id,
            display_id=short_transaction_id(transaction.transaction_id),
            amount=Decimal(transaction.amount),
            status=transaction.status,
            sender=await self.directory.display_name(
                PrincipalRef(PrincipalKind.ADMIN, transaction.sender_id)
            ),
            receiver=await self.directory.display_name(
                PrincipalRef(PrincipalKind.USER, transaction.receiver_id)
            ),
            paid_by=await self.directory.display_name(
                PrincipalRef.of(PrincipalKind.ADMIN.value, transaction.paid_by_id)
            ),
            requested_on=transaction.requested_on,
            paid_on=transaction.paid_on,
            payment_method=transaction.payment_method,
            description=transaction.description,
        )

    async def _transition(self, transaction_id: UUID, to_status: str, **values: object) -> WalletTransaction:
        transaction = await self.session.get(WalletTransaction, transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)

        from_status = transaction.status
        if to_status not in TRANSACTION_TRANSITIONS.get(from_status, set()):
            raise StateConflict(
                f"Transaction is already {from_status}",
                transaction_id=str(transaction_id),
                status=from_status,
            )

        result = await self.session.execute(
            update(WalletTransaction)
            .where(
                WalletTransaction.transaction_id == transaction_id,
                WalletTransaction.status == from_status,
            )
            .values(status=to_status, updated_at=utcnow(), **values)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount == 0:
            raise StateConflict(
                "Transaction was modified concurrently; reload and retry",
                transaction_id=str(transaction_id),
            )
        await self.session.refresh(transaction)

        logger.info("Transaction %s %s -> %s", transaction_id, from_status, to_status)
        return transaction
