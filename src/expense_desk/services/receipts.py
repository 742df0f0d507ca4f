"""Background receipt analysis.

Analysis (OCR, image checks) is an external collaborator. The runner is
scheduled after an expense is committed, opens its own session, and only
writes ``ai_scores`` back if the analyzer produced a result. Failures are
logged and never reach the request that created the expense.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from expense_desk.models import Expense
from expense_desk.services.expense_service import ExpenseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptInput:
    """What an analyzer is given about an expense."""

    expense_id: UUID
    image: str | None
    title: str
    category: str
    amount: Decimal

    @classmethod
    def from_expense(cls, expense: Expense) -> ReceiptInput:
        return cls(
            expense_id=expense.expense_id,
            image=expense.image,
            title=expense.title,
            category=expense.category,
            amount=Decimal(expense.amount),
        )


class ReceiptAnalyzer(Protocol):
    async def analyze(self, receipt: ReceiptInput) -> dict[str, Any] | None:
        """Return scores for the receipt, or None when nothing could be read."""
        ...


class ReceiptAnalysisRunner:
    """Runs a ReceiptAnalyzer for one expense in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], analyzer: ReceiptAnalyzer):
        self.session_factory = session_factory
        self.analyzer = analyzer

    async def run(self, expense_id: UUID) -> None:
        try:
            async with self.session_factory() as session:
                service = ExpenseService(session)
                expense = await service.get_expense(expense_id)
                if expense.image is None:
                    logger.debug("Expense %s has no receipt image; skipping analysis", expense_id)
                    return

                scores = await self.analyzer.analyze(ReceiptInput.from_expense(expense))
                if scores is None:
                    logger.info("No analysis result for expense %s", expense_id)
                    return

                await service.record_receipt_analysis(expense_id, scores)
                await session.commit()
        except Exception:
            logger.exception("Receipt analysis failed for expense %s", expense_id)
