"""
Accounts Receivable Module Service (``ledger_modules.ar.service``).

Responsibility
--------------
Issues customer invoices and records receipts against them, keeping
settlement status, and posts both through ``ModulePostingService``.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  ``ARService`` is the sole public entry
point for AR operations.

Invariants enforced
-------------------
* An invoice and its ``invoice-{id}`` entry (a receipt and its
  ``rcpt-{id}`` entry) are written in one SAVEPOINT.
* ``0 <= discount <= subtotal``; tax and cost are non-negative.
* A receipt is > 0 and <= the invoice's remaining balance.
* Status moves OPEN -> PARTIAL -> PAID.

Failure modes
-------------
* Validation or kernel rejection -> failed ``PostingResult``.
* Database exceptions propagate.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import SourceRef
from ledger_kernel.exceptions import (
    InvalidSourceDocumentError,
    SourceDocumentNotFoundError,
    SourceDocumentStateError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.module_posting_service import (
    ModulePostingService,
    PostingResult,
    PostingStatus,
)
from ledger_modules._posting_helpers import (
    SettlementStatus,
    SourceHandler,
    document_exists,
    document_id,
    document_keys,
    require_amount,
    require_posting_account,
    settlement_status,
)
from ledger_modules.ar.models import Invoice, Receipt
from ledger_modules.ar.orm import CustomerInvoiceModel, CustomerReceiptModel
from ledger_modules.ar.profiles import (
    INVOICE,
    RECEIPT,
    invoice_lines,
    invoice_total,
    receipt_lines,
)

logger = get_logger("modules.ar.service")


class ARService:
    """
    Orchestrates accounts receivable operations through the kernel.

    Contract
    --------
    * Posting methods return ``PostingResult``; ``document_id`` is the
      invoice or receipt id.

    Guarantees
    ----------
    * Flush only unless ``auto_commit=True``.
    """

    def __init__(
        self,
        session: Session,
        config: LedgerConfig,
        clock: Clock | None = None,
        auto_commit: bool = False,
    ):
        self._session = session
        self._roles = config.roles
        self._clock = clock or SystemClock()
        self._poster = ModulePostingService(session, self._clock, auto_commit=auto_commit)

    # =========================================================================
    # Invoices
    # =========================================================================

    def create_invoice(
        self,
        customer_name: str,
        invoice_date: date,
        subtotal: int,
        discount_amount: int = 0,
        tax_amount: int = 0,
        cost_amount: int = 0,
        invoice_number: str | None = None,
        due_date: date | None = None,
    ) -> PostingResult:
        """
        Issue an invoice and post the receivable, revenue, discount, tax and
        (when ``cost_amount`` > 0) cost-of-sales lines.

        ``invoice_number`` defaults to ``INV-{id:05d}``.
        """

        def work() -> PostingResult:
            gross = require_amount(INVOICE, "subtotal", subtotal)
            discount = require_amount(INVOICE, "discount_amount", discount_amount, allow_zero=True)
            tax = require_amount(INVOICE, "tax_amount", tax_amount, allow_zero=True)
            cost = require_amount(INVOICE, "cost_amount", cost_amount, allow_zero=True)
            if discount > gross:
                raise InvalidSourceDocumentError(
                    INVOICE, f"discount {discount} exceeds subtotal {gross}"
                )
            if not customer_name:
                raise InvalidSourceDocumentError(INVOICE, "customer_name is required")
            if due_date is not None and due_date < invoice_date:
                raise InvalidSourceDocumentError(INVOICE, "due_date precedes invoice_date")

            invoice = CustomerInvoiceModel(
                invoice_number=invoice_number,
                customer_name=customer_name,
                invoice_date=invoice_date,
                due_date=due_date,
                subtotal=gross,
                discount_amount=discount,
                tax_amount=tax,
                total_amount=invoice_total(gross, discount, tax),
                cost_amount=cost,
                amount_paid=0,
                status=SettlementStatus.OPEN.value,
            )
            self._session.add(invoice)
            self._session.flush()
            if invoice.invoice_number is None:
                invoice.invoice_number = f"INV-{invoice.id:05d}"
                self._session.flush()

            logger.info("ar_invoice_created", extra={
                "invoice_id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "total_amount": invoice.total_amount,
            })
            return self._post_invoice(invoice).with_document(invoice.id)

        return self._poster.run("ar.create_invoice", work)

    def delete_invoice(
        self,
        invoice_id: int,
        reason: str = "Invoice deleted",
        reversal_date: date | None = None,
    ) -> PostingResult:
        """Delete an invoice after reversing its receipts' entries and its own."""

        def work() -> PostingResult:
            invoice = self._load_invoice(invoice_id)
            reversal_ids: list[int] = []
            for receipt in invoice.receipts:
                result = self._poster.reverse_source(
                    SourceRef.of(RECEIPT, receipt.id), reason, reversal_date
                )
                reversal_ids.extend(result.journal_entry_ids)
            result = self._poster.reverse_source(
                SourceRef.of(INVOICE, invoice.id), reason, reversal_date
            )
            reversal_ids.extend(result.journal_entry_ids)

            self._session.delete(invoice)
            self._session.flush()
            logger.info("ar_invoice_deleted", extra={
                "invoice_id": invoice_id,
                "reversal_entry_ids": reversal_ids,
            })
            return PostingResult(
                status=PostingStatus.REVERSED if reversal_ids else PostingStatus.COMPLETED,
                transaction_id=SourceRef.of(INVOICE, invoice_id).transaction_id,
                document_id=invoice_id,
                journal_entry_ids=tuple(reversal_ids),
            )

        return self._poster.run("ar.delete_invoice", work)

    def get_invoice(self, invoice_id: int) -> Invoice | None:
        invoice = self._session.get(CustomerInvoiceModel, invoice_id)
        return invoice.to_dto() if invoice is not None else None

    def list_open_invoices(self) -> list[Invoice]:
        stmt = (
            select(CustomerInvoiceModel)
            .where(CustomerInvoiceModel.status != SettlementStatus.PAID.value)
            .order_by(CustomerInvoiceModel.invoice_date, CustomerInvoiceModel.id)
        )
        return [invoice.to_dto() for invoice in self._session.scalars(stmt)]

    # =========================================================================
    # Receipts
    # =========================================================================

    def record_receipt(
        self,
        invoice_id: int,
        amount: int,
        receipt_date: date,
        bank_account_code: str | None = None,
        payment_method: str = "CASH",
        reference: str | None = None,
    ) -> PostingResult:
        """Apply a customer receipt to an invoice: Dr bank / Cr AR."""

        def work() -> PostingResult:
            received = require_amount(RECEIPT, "amount", amount)
            invoice = self._load_invoice(invoice_id)
            if invoice.status == SettlementStatus.PAID.value:
                raise SourceDocumentStateError(
                    INVOICE, invoice_id, invoice.status, "OPEN or PARTIAL"
                )
            remaining = invoice.total_amount - invoice.amount_paid
            if received > remaining:
                raise InvalidSourceDocumentError(
                    RECEIPT,
                    f"receipt {received} exceeds remaining balance {remaining} "
                    f"of invoice {invoice_id}",
                )

            receipt = CustomerReceiptModel(
                invoice_id=invoice.id,
                receipt_date=receipt_date,
                amount=received,
                bank_account_code=require_posting_account(
                    self._session, bank_account_code or self._roles.bank
                ),
                payment_method=payment_method,
                reference=reference,
            )
            self._session.add(receipt)
            invoice.amount_paid += received
            invoice.status = settlement_status(invoice.total_amount, invoice.amount_paid).value
            self._session.flush()

            logger.info("ar_receipt_recorded", extra={
                "invoice_id": invoice.id,
                "receipt_id": receipt.id,
                "amount": received,
                "invoice_status": invoice.status,
            })
            return self._post_receipt(receipt).with_document(receipt.id)

        return self._poster.run("ar.record_receipt", work)

    def list_receipts(self, invoice_id: int) -> list[Receipt]:
        stmt = (
            select(CustomerReceiptModel)
            .where(CustomerReceiptModel.invoice_id == invoice_id)
            .order_by(CustomerReceiptModel.id)
        )
        return [receipt.to_dto() for receipt in self._session.scalars(stmt)]

    # =========================================================================
    # Integrity hooks
    # =========================================================================

    def source_handlers(self) -> list[SourceHandler]:
        return [
            SourceHandler(
                kind=INVOICE,
                document_keys=lambda: document_keys(self._session, CustomerInvoiceModel),
                document_exists=lambda key: document_exists(
                    self._session, CustomerInvoiceModel, key
                ),
                repost=self.repost_invoice,
            ),
            SourceHandler(
                kind=RECEIPT,
                document_keys=lambda: document_keys(self._session, CustomerReceiptModel),
                document_exists=lambda key: document_exists(
                    self._session, CustomerReceiptModel, key
                ),
                repost=self.repost_receipt,
            ),
        ]

    def repost_invoice(self, key: str) -> PostingResult:
        return self._poster.run(
            "ar.repost_invoice",
            lambda: self._post_invoice(self._load_invoice(document_id(INVOICE, key))),
            transaction_id=SourceRef.of(INVOICE, key).transaction_id,
        )

    def repost_receipt(self, key: str) -> PostingResult:
        def work() -> PostingResult:
            receipt = self._session.get(CustomerReceiptModel, document_id(RECEIPT, key))
            if receipt is None:
                raise SourceDocumentNotFoundError(RECEIPT, key)
            return self._post_receipt(receipt)

        return self._poster.run(
            "ar.repost_receipt", work, transaction_id=SourceRef.of(RECEIPT, key).transaction_id
        )

    # =========================================================================
    # Internal
    # =========================================================================

    def _post_invoice(self, invoice: CustomerInvoiceModel) -> PostingResult:
        return self._poster.post(
            SourceRef.of(INVOICE, invoice.id),
            invoice.invoice_date,
            f"Invoice {invoice.invoice_number} - {invoice.customer_name}",
            invoice_lines(
                invoice.subtotal,
                invoice.discount_amount,
                invoice.tax_amount,
                invoice.cost_amount,
                self._roles,
            ),
            reference=invoice.invoice_number,
        )

    def _post_receipt(self, receipt: CustomerReceiptModel) -> PostingResult:
        return self._poster.post(
            SourceRef.of(RECEIPT, receipt.id),
            receipt.receipt_date,
            f"Receipt for invoice #{receipt.invoice_id}",
            receipt_lines(receipt.amount, receipt.bank_account_code, self._roles),
            reference=receipt.reference,
        )

    def _load_invoice(self, invoice_id: int) -> CustomerInvoiceModel:
        invoice = self._session.get(CustomerInvoiceModel, invoice_id)
        if invoice is None:
            raise SourceDocumentNotFoundError(INVOICE, invoice_id)
        return invoice
