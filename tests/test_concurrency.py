"""Concurrent report creation against a file-backed database.

Every writer gets its own session and connection, so these runs exercise
the storage-level guards rather than a single shared transaction.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import create_async_engine

from expense_desk.database import create_all, make_session_factory
from expense_desk.models import (
    Expense,
    Report,
    ReportExpense,
    ReportSequence,
    Tier,
    TierCategory,
    User,
    UserRole,
)
from expense_desk.services.errors import AlreadyMappedError
from expense_desk.services.report_service import ReportService
from expense_desk.services.sequence import REPORT_SEQUENCE, SequenceService

WRITERS = 4


@pytest.fixture
async def file_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'expense_desk.db'}",
        connect_args={"timeout": 5},
    )
    await create_all(engine)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
async def submitter(file_factory) -> User:
    async with file_factory() as session:
        tier = Tier(title="Standard", total_amount=Decimal("1000"))
        tier.categories = [TierCategory(title="Travel", max_amount=Decimal("200"), enabled=True)]
        session.add(tier)
        await session.flush()

        approver = User(
            name="Priya Approver",
            employee_id="EMP-001",
            mobile="5550001",
            role=UserRole.APPROVER.value,
            tier_id=tier.tier_id,
        )
        session.add(approver)
        await session.flush()

        user = User(
            name="Sam Staff",
            employee_id="EMP-002",
            mobile="5550002",
            role=UserRole.STAFF.value,
            tier_id=tier.tier_id,
            approver_id=approver.user_id,
        )
        session.add(user)
        await session.commit()
    return user


async def drafted_expenses(factory, user: User, count: int) -> list[Expense]:
    async with factory() as session:
        expenses = [
            Expense(
                user_id=user.user_id,
                title=f"Taxi {n}",
                category="Travel",
                amount=Decimal("10"),
                status="drafted",
            )
            for n in range(count)
        ]
        session.add_all(expenses)
        await session.commit()
    return expenses


async def submit(factory, settings, user: User, expense_ids) -> str | Exception:
    """Create a report in a session of its own; returns the label or the error."""
    async with factory() as session:
        try:
            report = await ReportService(session, None, settings).create_report(user.user_id, expense_ids)
            await session.commit()
        except (AlreadyMappedError, IntegrityError, OperationalError) as exc:
            await session.rollback()
            return exc
        return report.label


async def allocate(factory) -> int | Exception:
    async with factory() as session:
        try:
            value = await SequenceService(session).next_value()
            await session.commit()
        except (IntegrityError, OperationalError) as exc:
            await session.rollback()
            return exc
        return value


async def counter_value(factory) -> int | None:
    async with factory() as session:
        return await session.scalar(
            select(ReportSequence.value).where(ReportSequence.name == REPORT_SEQUENCE)
        )


class TestConcurrentReportCreation:
    async def test_labels_are_unique(self, file_factory, settings, submitter):
        expenses = await drafted_expenses(file_factory, submitter, WRITERS + 1)
        first = await submit(file_factory, settings, submitter, [expenses[0].expense_id])
        assert first == "Rep#001"

        outcomes = await asyncio.gather(
            *(submit(file_factory, settings, submitter, [e.expense_id]) for e in expenses[1:])
        )
        labels = [first] + [o for o in outcomes if isinstance(o, str)]

        # Losers may only fail on the database lock, never with a duplicate
        assert all(isinstance(o, (str, OperationalError)) for o in outcomes)
        assert len(labels) >= 2
        assert len(labels) == len(set(labels))

        async with file_factory() as session:
            stored = (await session.scalars(select(Report.label))).all()
        assert sorted(stored) == sorted(labels)
        assert await counter_value(file_factory) == len(labels)

    async def test_expense_lands_in_one_report(self, file_factory, settings, submitter):
        (expense,) = await drafted_expenses(file_factory, submitter, 1)

        outcomes = await asyncio.gather(
            *(submit(file_factory, settings, submitter, [expense.expense_id]) for _ in range(WRITERS))
        )

        assert len([o for o in outcomes if isinstance(o, str)]) == 1
        async with file_factory() as session:
            links = await session.scalar(
                select(func.count())
                .select_from(ReportExpense)
                .where(ReportExpense.expense_id == expense.expense_id)
            )
            reports = await session.scalar(select(func.count()).select_from(Report))
            status = await session.scalar(
                select(Expense.status).where(Expense.expense_id == expense.expense_id)
            )
        assert links == 1
        assert reports == 1
        assert status == "mapped"


class TestSequenceSeeding:
    async def test_racing_seeds_never_repeat_a_value(self, file_factory):
        outcomes = await asyncio.gather(*(allocate(file_factory) for _ in range(2)))
        values = [o for o in outcomes if isinstance(o, int)]

        assert all(isinstance(o, (int, IntegrityError, OperationalError)) for o in outcomes)
        assert values
        assert len(values) == len(set(values))
        assert await counter_value(file_factory) == max(values)

    async def test_losing_seed_fails_on_primary_key(self, file_factory):
        async with file_factory() as first:
            assert await SequenceService(first).next_value() == 1
            await first.commit()

        async with file_factory() as second:
            second.add(ReportSequence(name=REPORT_SEQUENCE, value=1))
            with pytest.raises(IntegrityError):
                await second.flush()

        assert await counter_value(file_factory) == 1

    async def test_peek_follows_existing_reports_until_seeded(self, file_factory, submitter):
        async with file_factory() as session:
            session.add(Report(user_id=submitter.user_id, status="pending", reasons=[]))
            await session.flush()
            sequence = SequenceService(session)

            assert await sequence.peek_report_label() == "Rep#002"
            assert await sequence.next_report_label() == "Rep#002"
            assert await sequence.peek_report_label() == "Rep#003"
