"""
Expense Domain Models (``ledger_modules.expense.models``).

Responsibility
--------------
Frozen value objects for operating expenses: categories that map to an
expense account, and individual expense claims paid from petty cash or
reimbursed to an employee.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class ExpenseType(str, Enum):
    """How an expense is funded."""

    PETTY_CASH = "PETTY_CASH"
    REIMBURSABLE = "REIMBURSABLE"


class ExpenseStatus(str, Enum):
    """Expense workflow states.

    PETTY_CASH:   SUBMITTED -> PAID (on approval)
    REIMBURSABLE: SUBMITTED -> APPROVED -> PAID (on reimbursement)
    Either:       SUBMITTED -> REJECTED
    """

    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    PAID = "PAID"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class ExpenseCategory:
    """A spending category and the expense account it books to."""

    id: int
    code: str
    name: str
    expense_account_code: str
    max_amount: int | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Expense:
    """An expense claim.

    ``paid_from_account_code`` is the petty-cash account for PETTY_CASH
    expenses and None for reimbursable ones.
    """

    id: int
    expense_number: str
    description: str
    amount: int
    expense_date: date
    expense_type: ExpenseType
    status: ExpenseStatus
    category_id: int
    payee: str
    paid_from_account_code: str | None = None
    approved_at: datetime | None = None
    paid_at: datetime | None = None
    rejection_reason: str | None = None
    payment_reference: str | None = None
    reimbursement_date: date | None = None
    reimbursement_account_code: str | None = None
