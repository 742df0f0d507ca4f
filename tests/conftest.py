"""Pytest fixtures for expense desk tests."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from expense_desk.config import Settings
from expense_desk.database import create_all, make_session_factory
from expense_desk.events import AsyncEventEmitter, DomainEvent
from expense_desk.models import (
    Admin,
    Event,
    EventType,
    Expense,
    PrincipalKind,
    Tier,
    TierCategory,
    User,
    UserRole,
)
from expense_desk.services.principals import Actor

# In-memory SQLite shared across connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        page_size=10,
        monthly_cap_scope="organization",
    )


@pytest.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    await create_all(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


class RecordingHandler:
    """Collects every event the emitter dispatches."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, name: str) -> list[DomainEvent]:
        return [e for e in self.events if e.event_type == name]


@pytest.fixture
def recorder() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def emitter(recorder: RecordingHandler) -> AsyncEventEmitter:
    emitter = AsyncEventEmitter()
    emitter.on_all(recorder)
    return emitter


# ============================================================================
# Seed data
# ============================================================================


@pytest.fixture
async def tier(session: AsyncSession) -> Tier:
    """Standard tier: Travel capped at 200, Meals at 100, Lodging disabled."""
    tier = Tier(title="Standard", total_amount=Decimal("1000"))
    tier.categories = [
        TierCategory(title="Travel", max_amount=Decimal("200"), enabled=True),
        TierCategory(title="Meals", max_amount=Decimal("100"), enabled=True),
        TierCategory(title="Lodging", max_amount=Decimal("300"), enabled=False),
    ]
    session.add(tier)
    await session.flush()
    return tier


@pytest.fixture
async def approver(session: AsyncSession, tier: Tier) -> User:
    user = User(
        name="Priya Approver",
        employee_id="EMP-001",
        mobile="5550001",
        role=UserRole.APPROVER.value,
        tier_id=tier.tier_id,
    )
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def staff(session: AsyncSession, tier: Tier, approver: User) -> User:
    user = User(
        name="Sam Staff",
        employee_id="EMP-002",
        mobile="5550002",
        role=UserRole.STAFF.value,
        tier_id=tier.tier_id,
        approver_id=approver.user_id,
    )
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def other_staff(session: AsyncSession, tier: Tier, approver: User) -> User:
    user = User(
        name="Olu Other",
        employee_id="EMP-003",
        mobile="5550003",
        role=UserRole.STAFF.value,
        tier_id=tier.tier_id,
        approver_id=approver.user_id,
    )
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def admin(session: AsyncSession) -> Admin:
    admin = Admin(name="Ada Admin", role=UserRole.ADMIN.value)
    session.add(admin)
    await session.flush()
    return admin


@pytest.fixture
async def finance(session: AsyncSession) -> Admin:
    admin = Admin(name="Fin Reviewer", role=UserRole.FINANCE.value)
    session.add(admin)
    await session.flush()
    return admin


@pytest.fixture
def staff_actor(staff: User) -> Actor:
    return Actor(principal_id=staff.user_id, role=UserRole.STAFF.value)


@pytest.fixture
def approver_actor(approver: User) -> Actor:
    return Actor(principal_id=approver.user_id, role=UserRole.APPROVER.value)


@pytest.fixture
def admin_actor(admin: Admin) -> Actor:
    return Actor(principal_id=admin.admin_id, role=UserRole.ADMIN.value)


@pytest.fixture
def finance_actor(finance: Admin) -> Actor:
    return Actor(principal_id=finance.admin_id, role=UserRole.FINANCE.value)


ExpenseFactory = Callable[..., Awaitable[Expense]]


@pytest.fixture
def make_expense(session: AsyncSession, staff: User) -> ExpenseFactory:
    """Factory for drafted expenses owned by ``staff`` unless told otherwise."""

    async def _make(
        amount: str | Decimal,
        category: str = "Travel",
        title: str | None = None,
        user: User | None = None,
        created_at: datetime | None = None,
    ) -> Expense:
        owner = user or staff
        expense = Expense(
            user_id=owner.user_id,
            title=title or f"{category} {amount}",
            category=category,
            amount=Decimal(str(amount)),
            status="drafted",
        )
        if created_at is not None:
            expense.created_at = created_at
        session.add(expense)
        await session.flush()
        return expense

    return _make


@pytest.fixture
def make_event(session: AsyncSession):
    """Factory for events with a given creator type and staff list."""

    async def _make(
        event_type: EventType,
        staff_members: list[User],
        creator_id: UUID,
        name: str = "Offsite",
    ) -> Event:
        event = Event(
            name=name,
            description=f"{name} description",
            location=None,
            type=event_type.value,
            creator_kind=(
                PrincipalKind.ADMIN.value
                if event_type == EventType.ADMIN
                else PrincipalKind.USER.value
            ),
            creator_id=creator_id,
        )
        event.staff = list(staff_members)
        session.add(event)
        await session.flush()
        return event

    return _make
