"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from expense_desk.config import Settings
from expense_desk.database import init_db
from expense_desk.events import AsyncEventEmitter
from expense_desk.models import UserRole
from expense_desk.services.principals import Actor
from expense_desk.services.receipts import ReceiptAnalysisRunner


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for request sessions and background work."""
    _, factory = init_db()
    return factory


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def get_db_session(factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency. Uncommitted work is rolled back on close."""
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the caller identity from headers set by the auth gateway."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-ID header is required",
        )
    try:
        principal_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-ID format",
        )
    role = (x_user_role or UserRole.STAFF.value).lower()
    try:
        UserRole(role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-Role",
        )
    return Actor(principal_id=principal_id, role=role)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_emitter(request: Request) -> AsyncEventEmitter:
    return request.app.state.emitter


def get_receipt_runner(request: Request, factory: SessionFactory) -> ReceiptAnalysisRunner | None:
    analyzer = request.app.state.receipt_analyzer
    if analyzer is None:
        return None
    return ReceiptAnalysisRunner(factory, analyzer)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Emitter = Annotated[AsyncEventEmitter, Depends(get_emitter)]
ReceiptRunner = Annotated[ReceiptAnalysisRunner | None, Depends(get_receipt_runner)]
