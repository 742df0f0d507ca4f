"""Expense reimbursement back office.

Staff submit expenses, bundle them into reports, route reports through
approver and finance review, and draw down a monthly wallet governed by a
tiered spending policy.
"""

__version__ = "0.1.0"
