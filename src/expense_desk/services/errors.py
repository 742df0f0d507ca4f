"""Error taxonomy for expense desk operations.

Every error carries a stable ``code`` and the HTTP status the API layer
should answer with. Services raise these before any write whenever the
failure can be detected up front, so a raised ``ValidationError``,
``NotFoundError`` or ``PolicyViolation`` never leaves partial state.
"""

from __future__ import annotations

from typing import Any


class ExpenseDeskError(Exception):
    """Base class for all domain errors."""

    code = "EXPENSE_DESK_ERROR"
    http_status = 500

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(ExpenseDeskError):
    """Missing or malformed input."""

    code = "VALIDATION_ERROR"
    http_status = 400


class NotFoundError(ExpenseDeskError):
    """A referenced entity does not exist."""

    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=str(entity_id))


class PermissionDeniedError(ExpenseDeskError):
    """The caller's role does not allow the operation."""

    code = "PERMISSION_DENIED"
    http_status = 403


class InternalError(ExpenseDeskError):
    """Storage or collaborator failure."""

    code = "INTERNAL_ERROR"
    http_status = 500


# ===== Policy violations =====


class PolicyViolation(ExpenseDeskError):
    """Report would break the submitter's tier policy."""

    code = "POLICY_VIOLATION"
    http_status = 422


class CategoryNotAllowedError(PolicyViolation):
    code = "CATEGORY_NOT_ALLOWED"

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Category {category} not found.", category=category)


class CategoryDisabledError(PolicyViolation):
    code = "CATEGORY_DISABLED"

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Category {category} is disabled.", category=category)


class CategoryLimitExceededError(PolicyViolation):
    code = "CATEGORY_LIMIT_EXCEEDED"

    def __init__(self, category: str, total: Any, limit: Any):
        self.category = category
        self.total = total
        self.limit = limit
        super().__init__(
            f"Total amount for category {category} exceeds the maximum allowed.",
            category=category,
            total=str(total),
            limit=str(limit),
        )


class TierLimitExceededError(PolicyViolation):
    code = "TIER_LIMIT_EXCEEDED"

    def __init__(self, existing_total: Any, report_total: Any, limit: Any):
        self.existing_total = existing_total
        self.report_total = report_total
        self.limit = limit
        super().__init__(
            f"The total amount of reports this month exceeds your tier limit of {limit}.",
            existing_total=str(existing_total),
            report_total=str(report_total),
            limit=str(limit),
        )


# ===== State conflicts =====


class StateConflict(ExpenseDeskError):
    """The entity is in the wrong state for the requested operation."""

    code = "STATE_CONFLICT"
    http_status = 409


class AlreadyMappedError(StateConflict):
    code = "ALREADY_MAPPED"

    def __init__(self, expense_title: str, expense_id: Any):
        self.expense_id = expense_id
        super().__init__(
            f"Expense with title {expense_title} is already mapped.",
            expense_id=str(expense_id),
        )


class ExpenseAlreadyReportedError(StateConflict):
    code = "EXPENSE_ALREADY_REPORTED"

    def __init__(self, report_title: str | None, report_id: Any):
        self.report_id = report_id
        super().__init__(
            f"{report_title or 'Another report'} already includes some of these expenses.",
            report_id=str(report_id),
        )


class ExpenseMismatchError(StateConflict):
    code = "EXPENSE_MISMATCH"

    def __init__(self) -> None:
        super().__init__("Expenses do not match")


class InvalidTransitionError(StateConflict):
    """Raised when an invalid status transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, from_status=from_status, to_status=to_status)


class ConcurrentUpdateError(StateConflict):
    """The report changed between read and conditional update."""

    code = "CONCURRENT_UPDATE"

    def __init__(self, report_id: Any):
        self.report_id = report_id
        super().__init__(
            f"Report {report_id} was modified concurrently; reload and retry",
            report_id=str(report_id),
        )
