"""API test fixtures: the app wired to the per-test SQLite database."""

from collections.abc import AsyncGenerator
from typing import Any
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient

from expense_desk.api.app import create_app
from expense_desk.api.dependencies import get_session_factory


class StubAnalyzer:
    """Receipt analyzer returning fixed scores."""

    def __init__(self) -> None:
        self.seen: list[UUID] = []

    async def analyze(self, receipt: Any) -> dict[str, Any] | None:
        self.seen.append(receipt.expense_id)
        return {"amount_match": True, "confidence": 0.93}


@pytest.fixture
def analyzer() -> StubAnalyzer:
    return StubAnalyzer()


@pytest.fixture
async def seeded(session, tier, approver, staff, other_staff, admin, finance):
    """Commit the seed rows so request sessions can see them."""
    await session.commit()
    return session


@pytest.fixture
async def client(seeded, session_factory, settings, emitter, analyzer) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(settings, emitter, receipt_analyzer=analyzer)
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def bare_client(session_factory, settings, emitter) -> AsyncGenerator[AsyncClient, None]:
    """Client over an empty schema: no tiers, users or reports."""
    app = create_app(settings, emitter)
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
