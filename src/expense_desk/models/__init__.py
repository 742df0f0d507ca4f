"""ORM models."""

from expense_desk.models.base import Base, TimestampMixin, utcnow
from expense_desk.models.event import Event, EventStatus, EventType, event_staff
from expense_desk.models.expense import Expense
from expense_desk.models.notification import Notification
from expense_desk.models.report import Report, ReportExpense, ReportSequence
from expense_desk.models.tier import Tier, TierCategory
from expense_desk.models.users import Admin, PrincipalKind, User, UserRole
from expense_desk.models.wallet import (
    Deduction,
    DeductionMode,
    PaymentMethod,
    TransactionStatus,
    WalletTransaction,
)

__all__ = [
    "Admin",
    "Base",
    "Deduction",
    "DeductionMode",
    "Event",
    "EventStatus",
    "EventType",
    "Expense",
    "Notification",
    "PaymentMethod",
    "PrincipalKind",
    "Report",
    "ReportExpense",
    "ReportSequence",
    "Tier",
    "TierCategory",
    "TimestampMixin",
    "TransactionStatus",
    "User",
    "UserRole",
    "WalletTransaction",
    "event_staff",
    "utcnow",
]
