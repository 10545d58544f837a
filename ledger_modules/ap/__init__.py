"""
Accounts Payable Module (``ledger_modules.ap``).

Responsibility
--------------
Purchase-side sub-ledger: vendor bills (``bill-{id}``) and bill payments
(``pay-{id}``), with OPEN / PARTIAL / PAID settlement tracking.

Architecture position
---------------------
**Modules layer** -- pure profiles, ORM tables and a service facade that
posts through ``ledger_kernel`` via ``ModulePostingService``.
"""

from ledger_modules.ap.models import Bill, BillPayment, BillStatus
from ledger_modules.ap.profiles import BILL, BILL_PAYMENT
from ledger_modules.ap.service import APService

__all__ = [
    "Bill",
    "BillPayment",
    "BillStatus",
    "BILL",
    "BILL_PAYMENT",
    "APService",
]
