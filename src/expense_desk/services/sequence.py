"""Atomic report number sequence."""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.formatting import format_report_label
from expense_desk.models import Report, ReportSequence

logger = logging.getLogger(__name__)

REPORT_SEQUENCE = "report"


class SequenceService:
    """Hands out report numbers from a storage-owned counter.

    The increment is a single ``UPDATE ... RETURNING`` so two concurrent
    creators can never read the same value. The first allocation seeds the
    counter from the number of existing reports, so numbering continues
    from reports created before the counter existed. Two writers racing to
    seed collide on the primary key and the loser's transaction fails with
    an IntegrityError instead of producing a duplicate label.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_value(self, name: str = REPORT_SEQUENCE) -> int:
        value = await self._increment(name)
        if value is not None:
            return value

        existing = await self.session.scalar(select(func.count()).select_from(Report)) or 0
        self.session.add(ReportSequence(name=name, value=existing + 1))
        await self.session.flush()

        logger.info("Seeded sequence %s at %d", name, existing + 1)
        return existing + 1

    async def next_report_label(self) -> str:
        return format_report_label(await self.next_value(REPORT_SEQUENCE))

    async def peek_report_label(self) -> str:
        """Label the next report will get, without allocating it."""
        value = await self.session.scalar(
            select(ReportSequence.value).where(ReportSequence.name == REPORT_SEQUENCE)
        )
        if value is None:
            value = await self.session.scalar(select(func.count()).select_from(Report)) or 0
        return format_report_label(value + 1)

    async def _increment(self, name: str) -> int | None:
        result = await self.session.execute(
            update(ReportSequence)
            .where(ReportSequence.name == name)
            .values(value=ReportSequence.value + 1)
            .returning(ReportSequence.value)
        )
        return result.scalar_one_or_none()
