"""
Accounts Receivable Module (``ledger_modules.ar``).

Sales-side sub-ledger: customer invoices (``invoice-{id}``) with discount,
sales tax and cost of goods sold, and customer receipts (``rcpt-{id}``).
"""

from ledger_modules.ar.models import Invoice, InvoiceStatus, Receipt
from ledger_modules.ar.profiles import INVOICE, RECEIPT
from ledger_modules.ar.service import ARService

__all__ = [
    "Invoice",
    "InvoiceStatus",
    "Receipt",
    "INVOICE",
    "RECEIPT",
    "ARService",
]
