"""Expense desk services."""

from expense_desk.services.approval_service import ApprovalService
from expense_desk.services.errors import ExpenseDeskError, InvalidTransitionError
from expense_desk.services.event_service import EventDetails, EventPatch, EventService
from expense_desk.services.expense_service import ExpenseService
from expense_desk.services.listing_service import ListingService, ListType
from expense_desk.services.policy import PolicyService, TierPolicy
from expense_desk.services.principals import Actor
from expense_desk.services.report_service import ReportMetadata, ReportPatch, ReportService
from expense_desk.services.state_machine import ExpenseStatus, ReportStateMachine, ReportStatus
from expense_desk.services.wallet_service import WalletService

__all__ = [
    "Actor",
    "ApprovalService",
    "EventDetails",
    "EventPatch",
    "EventService",
    "ExpenseDeskError",
    "ExpenseService",
    "ExpenseStatus",
    "InvalidTransitionError",
    "ListType",
    "ListingService",
    "PolicyService",
    "ReportMetadata",
    "ReportPatch",
    "ReportService",
    "ReportStateMachine",
    "ReportStatus",
    "TierPolicy",
    "WalletService",
]
