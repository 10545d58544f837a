"""
Expense posting profiles.

Profiles:
    petty_cash_lines     -- Dr category expense / Cr petty cash
    reimbursable_lines   -- Dr category expense / Cr Employee Payables
    reimbursement_lines  -- Dr Employee Payables / Cr bank
"""

from ledger_config.schema import AccountRoles
from ledger_kernel.domain.dtos import LineSpec

MODULE_NAME = "expense"

EXPENSE = "exp"
REIMBURSEMENT = "exp-reimb"


def petty_cash_lines(
    amount: int,
    expense_account_code: str,
    petty_cash_account_code: str,
) -> tuple[LineSpec, ...]:
    return (
        LineSpec.dr(expense_account_code, amount),
        LineSpec.cr(petty_cash_account_code, amount, "Paid from petty cash"),
    )


def reimbursable_lines(
    amount: int,
    expense_account_code: str,
    roles: AccountRoles,
) -> tuple[LineSpec, ...]:
    return (
        LineSpec.dr(expense_account_code, amount),
        LineSpec.cr(roles.employee_payables, amount, "Owed to employee"),
    )


def reimbursement_lines(
    amount: int,
    bank_account_code: str,
    roles: AccountRoles,
) -> tuple[LineSpec, ...]:
    return (
        LineSpec.dr(roles.employee_payables, amount, "Employee reimbursed"),
        LineSpec.cr(bank_account_code, amount, "Employee reimbursed"),
    )
