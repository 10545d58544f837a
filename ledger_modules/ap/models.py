"""
Accounts Payable Domain Models (``ledger_modules.ap.models``).

Responsibility
--------------
Frozen value objects for the purchase side: vendor bills and the payments
that settle them.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.  These
objects flow *out of* ``APService`` as immutable snapshots of the ORM rows.

Invariants enforced
-------------------
* All monetary fields are ``int`` minor units.
* All dataclasses are ``frozen=True``.
"""

from dataclasses import dataclass
from datetime import date

from ledger_modules._posting_helpers import SettlementStatus

BillStatus = SettlementStatus


@dataclass(frozen=True)
class Bill:
    """A vendor bill received for purchased goods.

    Contract: ``amount_paid <= total_amount``; status follows from the two
    (OPEN, PARTIAL, PAID).
    """

    id: int
    vendor_name: str
    bill_number: str | None
    bill_date: date
    due_date: date | None
    total_amount: int
    amount_paid: int
    status: BillStatus

    @property
    def balance_remaining(self) -> int:
        return self.total_amount - self.amount_paid


@dataclass(frozen=True)
class BillPayment:
    """A payment made against one vendor bill from a bank or cash account."""

    id: int
    bill_id: int
    payment_date: date
    amount: int
    bank_account_code: str
    reference: str | None = None
