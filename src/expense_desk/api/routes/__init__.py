"""API routes."""

from expense_desk.api.routes.approvals import router as approvals_router
from expense_desk.api.routes.events import router as events_router
from expense_desk.api.routes.expenses import router as expenses_router
from expense_desk.api.routes.health import router as health_router
from expense_desk.api.routes.lists import router as lists_router
from expense_desk.api.routes.reports import router as reports_router
from expense_desk.api.routes.wallet import router as wallet_router

__all__ = [
    "approvals_router",
    "events_router",
    "expenses_router",
    "health_router",
    "lists_router",
    "reports_router",
    "wallet_router",
]
