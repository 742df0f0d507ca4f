"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from expense_desk import __version__
from expense_desk.api.routes import (
    approvals_router,
    events_router,
    expenses_router,
    health_router,
    lists_router,
    reports_router,
    wallet_router,
)
from expense_desk.config import Settings, configure_logging, get_settings
from expense_desk.database import dispose_db, init_db
from expense_desk.events import AsyncEventEmitter
from expense_desk.services.errors import ExpenseDeskError, InternalError
from expense_desk.services.receipts import ReceiptAnalyzer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    init_db()
    logger.info("Expense desk %s started", __version__)
    yield
    # Shutdown
    await dispose_db()


def create_app(
    settings: Settings | None = None,
    emitter: AsyncEventEmitter | None = None,
    receipt_analyzer: ReceiptAnalyzer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``emitter`` carries notifications to the delivery transport and
    ``receipt_analyzer`` is run in the background for new expenses; both
    are optional collaborators.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Expense Desk API",
        description="Expense reimbursement back office",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.emitter = emitter or AsyncEventEmitter()
    app.state.receipt_analyzer = receipt_analyzer

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ExpenseDeskError)
    async def domain_exception_handler(request: Request, exc: ExpenseDeskError) -> JSONResponse:
        """Translate domain errors into their HTTP status and code."""
        if exc.http_status >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.http_status,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Storage failure on %s %s", request.method, request.url.path)
        error = InternalError("Storage is unavailable, try again later")
        return JSONResponse(
            status_code=error.http_status,
            content={"detail": error.message, "code": error.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    for router in (
        expenses_router,
        reports_router,
        approvals_router,
        events_router,
        lists_router,
        wallet_router,
    ):
        app.include_router(router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
