"""Tests for report state machine."""

import pytest

from expense_desk.services.errors import InvalidTransitionError, StateConflict
from expense_desk.services.state_machine import (
    EXPENSE_IN_REPORT,
    ReportStateMachine,
    ReportStatus,
)


class TestReportStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # drafted → pending (event draft submitted)
        assert ReportStateMachine.can_transition("drafted", "pending") is True

        # pending → approved / rejected
        assert ReportStateMachine.can_transition("pending", "approved") is True
        assert ReportStateMachine.can_transition("pending", "rejected") is True

        # approved → reimbursed
        assert ReportStateMachine.can_transition("approved", "reimbursed") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Can't skip approval
        assert ReportStateMachine.can_transition("pending", "reimbursed") is False
        assert ReportStateMachine.can_transition("drafted", "approved") is False

        # Rejected and reimbursed are terminal
        assert ReportStateMachine.can_transition("rejected", "approved") is False
        assert ReportStateMachine.can_transition("reimbursed", "reimbursed") is False
        assert ReportStateMachine.can_transition("approved", "rejected") is False

    def test_enum_and_string_statuses_agree(self):
        assert ReportStateMachine.can_transition(ReportStatus.PENDING, "approved") is True
        assert ReportStateMachine.can_transition("approved", ReportStatus.REIMBURSED) is True

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            ReportStateMachine.validate_transition("approved", "rejected")

        assert exc_info.value.from_status == "approved"
        assert exc_info.value.to_status == "rejected"
        assert "Approval has already done" in str(exc_info.value)
        assert isinstance(exc_info.value, StateConflict)

    def test_double_reimbursement_is_invalid(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            ReportStateMachine.validate_transition(ReportStatus.REIMBURSED, ReportStatus.REIMBURSED)

        assert exc_info.value.from_status == "reimbursed"
        assert exc_info.value.reason is None

    def test_can_modify_expenses(self):
        """Test expense edits allowed statuses."""
        assert ReportStateMachine.can_modify_expenses("drafted") is True
        assert ReportStateMachine.can_modify_expenses("pending") is True
        assert ReportStateMachine.can_modify_expenses("approved") is False
        assert ReportStateMachine.can_modify_expenses("rejected") is False
        assert ReportStateMachine.can_modify_expenses("reimbursed") is False

    def test_locks_expenses(self):
        assert ReportStateMachine.locks_expenses("approved") is True
        assert ReportStateMachine.locks_expenses("reimbursed") is True
        assert ReportStateMachine.locks_expenses("pending") is False

    def test_get_next_statuses(self):
        """Test getting valid next statuses."""
        assert set(ReportStateMachine.get_next_statuses("pending")) == {"approved", "rejected"}
        assert ReportStateMachine.get_next_statuses("rejected") == []
        assert ReportStateMachine.get_next_statuses("unknown") == []

    def test_expense_in_report_statuses(self):
        assert "drafted" not in EXPENSE_IN_REPORT
        assert {"mapped", "approved", "rejected", "reimbursed"} <= EXPENSE_IN_REPORT
