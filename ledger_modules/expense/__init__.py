"""
Expense Module (``ledger_modules.expense``).

Operating expenses paid from petty cash (``exp-{id}``) or reimbursed to
employees (``exp-{id}`` on approval, ``exp-reimb-{id}`` on payment).
"""

from ledger_modules.expense.models import (
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    ExpenseType,
)
from ledger_modules.expense.profiles import EXPENSE, REIMBURSEMENT
from ledger_modules.expense.service import ExpenseService

__all__ = [
    "Expense",
    "ExpenseCategory",
    "ExpenseStatus",
    "ExpenseType",
    "EXPENSE",
    "REIMBURSEMENT",
    "ExpenseService",
]
