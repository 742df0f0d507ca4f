"""Tests for expense creation and background receipt analysis."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest

from expense_desk.services.errors import NotFoundError, ValidationError
from expense_desk.services.expense_service import ExpenseService
from expense_desk.services.receipts import ReceiptAnalysisRunner, ReceiptInput


class FakeAnalyzer:
    def __init__(self, result: dict[str, Any] | None = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[ReceiptInput] = []

    async def analyze(self, receipt: ReceiptInput) -> dict[str, Any] | None:
        self.calls.append(receipt)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def expenses(session) -> ExpenseService:
    return ExpenseService(session)


class TestCreateExpense:
    async def test_creates_drafted_expense(self, expenses, staff):
        expense = await expenses.create_expense(
            staff.user_id, " Taxi ", "Travel", "42.50", image="receipts/taxi.jpg"
        )

        assert expense.status == "drafted"
        assert expense.title == "Taxi"
        assert expense.amount == Decimal("42.50")
        assert expense.user_id == staff.user_id
        assert expense.ai_scores is None

    @pytest.mark.parametrize(
        ("title", "category", "amount"),
        [
            ("", "Travel", "10"),
            ("Taxi", " ", "10"),
            ("Taxi", "Travel", "ten"),
            ("Taxi", "Travel", "-1"),
            ("Taxi", "Travel", "NaN"),
        ],
    )
    async def test_rejects_bad_input(self, expenses, staff, title, category, amount):
        with pytest.raises(ValidationError):
            await expenses.create_expense(staff.user_id, title, category, amount)

    async def test_unknown_user(self, expenses):
        with pytest.raises(NotFoundError):
            await expenses.create_expense(uuid4(), "Taxi", "Travel", "10")


class TestGetExpense:
    async def test_owner_sees_expense(self, expenses, staff, make_expense):
        expense = await make_expense("10")
        assert (await expenses.get_expense(expense.expense_id, staff.user_id)) is expense

    async def test_other_user_gets_not_found(self, expenses, other_staff, make_expense):
        expense = await make_expense("10")
        with pytest.raises(NotFoundError):
            await expenses.get_expense(expense.expense_id, other_staff.user_id)

    async def test_record_receipt_analysis(self, expenses, make_expense):
        expense = await make_expense("10")
        stored = await expenses.record_receipt_analysis(expense.expense_id, {"total_match": 0.9})
        assert stored.ai_scores == {"total_match": 0.9}


class TestReceiptAnalysisRunner:
    """The runner works in its own session, so seed data is committed first."""

    async def _committed_expense(self, session, staff, image: str | None):
        expense = await ExpenseService(session).create_expense(
            staff.user_id, "Hotel", "Travel", "80", image=image
        )
        await session.commit()
        return expense

    async def test_stores_scores(self, session, session_factory, staff):
        expense = await self._committed_expense(session, staff, "receipts/hotel.png")
        analyzer = FakeAnalyzer({"ocr_total": "80.00", "confidence": 0.97})

        await ReceiptAnalysisRunner(session_factory, analyzer).run(expense.expense_id)

        await session.refresh(expense)
        assert expense.ai_scores == {"ocr_total": "80.00", "confidence": 0.97}
        assert analyzer.calls[0].image == "receipts/hotel.png"
        assert analyzer.calls[0].amount == Decimal("80")

    async def test_skips_expense_without_image(self, session, session_factory, staff):
        expense = await self._committed_expense(session, staff, None)
        analyzer = FakeAnalyzer({"confidence": 1.0})

        await ReceiptAnalysisRunner(session_factory, analyzer).run(expense.expense_id)

        assert analyzer.calls == []
        await session.refresh(expense)
        assert expense.ai_scores is None

    async def test_no_result_leaves_scores_empty(self, session, session_factory, staff):
        expense = await self._committed_expense(session, staff, "receipts/blurry.png")

        await ReceiptAnalysisRunner(session_factory, FakeAnalyzer(None)).run(expense.expense_id)

        await session.refresh(expense)
        assert expense.ai_scores is None

    async def test_analyzer_failure_is_logged(self, session, session_factory, staff, caplog):
        expense = await self._committed_expense(session, staff, "receipts/hotel.png")
        analyzer = FakeAnalyzer(error=TimeoutError("OCR timed out"))

        with caplog.at_level(logging.ERROR):
            await ReceiptAnalysisRunner(session_factory, analyzer).run(expense.expense_id)

        assert "Receipt analysis failed" in caplog.text
        await session.refresh(expense)
        assert expense.ai_scores is None

    async def test_missing_expense_is_logged(self, session_factory, caplog):
        with caplog.at_level(logging.ERROR):
            await ReceiptAnalysisRunner(session_factory, FakeAnalyzer({})).run(uuid4())
        assert "Receipt analysis failed" in caplog.text
