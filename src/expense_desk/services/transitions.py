"""Guarded report status updates."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.models import Expense, Report, utcnow
from expense_desk.services.errors import AlreadyMappedError, ConcurrentUpdateError
from expense_desk.services.state_machine import ExpenseStatus, ReportStateMachine

logger = logging.getLogger(__name__)


async def apply_transition(
    session: AsyncSession,
    report: Report,
    to_status: str,
    **values: Any,
) -> Report:
    """Move ``report`` to ``to_status`` with an optimistic version check.

    The UPDATE only matches if the row still holds the status and version
    this process read, so of two concurrent deciders exactly one wins and
    the other gets ConcurrentUpdateError with nothing written.
    """
    from_status = report.status
    to_status = getattr(to_status, "value", to_status)
    ReportStateMachine.validate_transition(from_status, to_status)

    result = await session.execute(
        update(Report)
        .where(
            Report.report_id == report.report_id,
            Report.status == from_status,
            Report.version == report.version,
        )
        .values(status=to_status, version=Report.version + 1, updated_at=utcnow(), **values)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount == 0:
        raise ConcurrentUpdateError(report.report_id)

    logger.info(
        "Report %s (%s) %s -> %s",
        report.report_id,
        report.label,
        from_status,
        to_status,
    )
    return report


async def set_expense_status(session: AsyncSession, expense_ids: list[Any], status: str) -> int:
    """Bulk-set the status of the given expenses; returns rows touched."""
    if not expense_ids:
        return 0
    result = await session.execute(
        update(Expense)
        .where(Expense.expense_id.in_(expense_ids))
        .values(status=status, updated_at=utcnow())
        .execution_options(synchronize_session="evaluate")
    )
    return result.rowcount or 0


async def map_expenses(session: AsyncSession, expenses: Sequence[Expense]) -> None:
    """Mark ``expenses`` mapped, all or none.

    Only rows still drafted are matched. An expense another request mapped
    after this one read it raises AlreadyMappedError, and the caller's
    rollback discards the rows that did match.
    """
    if not expenses:
        return
    result = await session.execute(
        update(Expense)
        .where(
            Expense.expense_id.in_([e.expense_id for e in expenses]),
            Expense.status == ExpenseStatus.DRAFTED.value,
        )
        .values(status=ExpenseStatus.MAPPED.value, updated_at=utcnow())
        .returning(Expense.expense_id)
        .execution_options(synchronize_session="evaluate")
    )
    mapped = set(result.scalars().all())
    for expense in expenses:
        if expense.expense_id not in mapped:
            logger.warning("Expense %s was mapped by another request", expense.expense_id)
            raise AlreadyMappedError(expense.title, expense.expense_id)
