"""
Accounts Receivable Domain Models (``ledger_modules.ar.models``).

Responsibility
--------------
Frozen value objects for the sales side: customer invoices and the
receipts that settle them.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.

Invariants enforced
-------------------
* All monetary fields are ``int`` minor units.
* ``total_amount == subtotal - discount_amount + tax_amount``.
"""

from dataclasses import dataclass
from datetime import date

from ledger_modules._posting_helpers import SettlementStatus

InvoiceStatus = SettlementStatus


@dataclass(frozen=True)
class Invoice:
    """A customer invoice.

    ``subtotal`` is the gross sales amount before discount.  ``cost_amount``
    is the cost of the goods shipped (zero for services).
    """

    id: int
    invoice_number: str
    customer_name: str
    invoice_date: date
    due_date: date | None
    subtotal: int
    discount_amount: int
    tax_amount: int
    total_amount: int
    cost_amount: int
    amount_paid: int
    status: InvoiceStatus

    @property
    def balance_remaining(self) -> int:
        return self.total_amount - self.amount_paid


@dataclass(frozen=True)
class Receipt:
    """Cash received from a customer against one invoice."""

    id: int
    invoice_id: int
    receipt_date: date
    amount: int
    bank_account_code: str
    payment_method: str = "CASH"
    reference: str | None = None
