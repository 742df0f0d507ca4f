"""Report and expense status machine with transition validation."""

from __future__ import annotations

from enum import Enum

from expense_desk.services.errors import InvalidTransitionError


def _value(status: str) -> str:
    return status.value if isinstance(status, Enum) else status


class ReportStatus(str, Enum):
    """Report status values."""

    DRAFTED = "drafted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REIMBURSED = "reimbursed"


class ExpenseStatus(str, Enum):
    """Expense status values."""

    DRAFTED = "drafted"
    MAPPED = "mapped"
    APPROVED = "approved"
    REJECTED = "rejected"
    REIMBURSED = "reimbursed"


class ReportStateMachine:
    """State machine for report status transitions.

    Allowed transitions:
    - drafted → pending (submission of an event draft)
    - pending → approved
    - pending → rejected
    - approved → reimbursed
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ReportStatus.DRAFTED: [ReportStatus.PENDING],
        ReportStatus.PENDING: [ReportStatus.APPROVED, ReportStatus.REJECTED],
        ReportStatus.APPROVED: [ReportStatus.REIMBURSED],
        ReportStatus.REJECTED: [],  # Terminal state
        ReportStatus.REIMBURSED: [],  # Terminal state
    }

    # Statuses where the expense set may still change
    EXPENSES_MUTABLE = {
        ReportStatus.DRAFTED,
        ReportStatus.PENDING,
    }

    # Reports holding these statuses lock their expenses against other reports
    LOCKS_EXPENSES = {
        ReportStatus.APPROVED,
        ReportStatus.REIMBURSED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            reason = None
            if from_status != ReportStatus.PENDING and to_status in (
                ReportStatus.APPROVED,
                ReportStatus.REJECTED,
            ):
                reason = "Approval has already done"
            raise InvalidTransitionError(_value(from_status), _value(to_status), reason)

    @classmethod
    def can_modify_expenses(cls, status: str) -> bool:
        """Check if the report's expense set can be edited."""
        return status in cls.EXPENSES_MUTABLE

    @classmethod
    def locks_expenses(cls, status: str) -> bool:
        return status in cls.LOCKS_EXPENSES

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])


# An expense in any of these statuses belongs to exactly one report
EXPENSE_IN_REPORT = frozenset(
    {
        ExpenseStatus.MAPPED,
        ExpenseStatus.APPROVED,
        ExpenseStatus.REJECTED,
        ExpenseStatus.REIMBURSED,
    }
)
