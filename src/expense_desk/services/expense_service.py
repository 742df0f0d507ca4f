"""Expense ledger writes and reads."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.models import Expense
from expense_desk.services.errors import NotFoundError, ValidationError
from expense_desk.services.principals import PrincipalDirectory
from expense_desk.services.state_machine import ExpenseStatus

logger = logging.getLogger(__name__)


class ExpenseService:
    """Creates expenses and stores receipt-analysis scores on them."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.directory = PrincipalDirectory(session)

    async def create_expense(
        self,
        user_id: UUID,
        title: str,
        category: str,
        amount: Decimal | int | str,
        description: str | None = None,
        image: str | None = None,
        location: str | None = None,
    ) -> Expense:
        """Record a new drafted expense for ``user_id``.

        Receipt analysis is scheduled by the caller once the expense is
        committed; nothing here waits on it.
        """
        if not title or not title.strip():
            raise ValidationError("Title is required")
        if not category or not category.strip():
            raise ValidationError("Category is required")
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            raise ValidationError("Amount must be a number", amount=str(amount)) from None
        if not value.is_finite() or value < 0:
            raise ValidationError("Amount cannot be negative", amount=str(amount))

        user = await self.directory.get_user(user_id)
        expense = Expense(
            user_id=user.user_id,
            title=title.strip(),
            category=category.strip(),
            amount=value,
            description=description,
            image=image,
            location=location,
            status=ExpenseStatus.DRAFTED.value,
        )
        self.session.add(expense)
        await self.session.flush()

        logger.info("Created expense %s (%s %s) for user %s", expense.expense_id, category, value, user_id)
        return expense

    async def get_expense(self, expense_id: UUID, user_id: UUID | None = None) -> Expense:
        """Fetch an expense; with ``user_id`` only the owner's expense is visible."""
        expense = await self.session.get(Expense, expense_id)
        if expense is None or (user_id is not None and expense.user_id != user_id):
            raise NotFoundError("Expense", expense_id)
        return expense

    async def record_receipt_analysis(self, expense_id: UUID, scores: dict[str, Any]) -> Expense:
        expense = await self.get_expense(expense_id)
        expense.ai_scores = dict(scores)
        await self.session.flush()
        logger.info("Stored receipt analysis for expense %s", expense_id)
        return expense
