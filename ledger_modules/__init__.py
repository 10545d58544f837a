"""
Ledger Modules.

Thin sub-ledger layers over the ledger kernel.  Each posting module
contains:
- Domain models (frozen dataclass documents)
- ORM tables
- Posting profiles (document -> balanced journal lines, by account role)
- A service that persists the document and posts it through
  ``ModulePostingService``

Modules:
- AP: Vendor bills and bill payments
- AR: Customer invoices and receipts
- Expense: Petty-cash and reimbursable expense claims
- Assets: Fixed-asset register and monthly straight-line depreciation
- Payroll: Payroll runs, withholdings, accrual and disbursement
- Reporting: Trial balance, balance sheet, profit & loss, general ledger

Actual posting logic lives in the kernel.
"""

from ledger_modules import (
    ap,
    ar,
    assets,
    expense,
    payroll,
    reporting,
)

__all__ = [
    "ap",
    "ar",
    "assets",
    "expense",
    "payroll",
    "reporting",
]
