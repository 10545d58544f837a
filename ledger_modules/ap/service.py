"""
Accounts Payable Module Service (``ledger_modules.ap.service``).

Responsibility
--------------
Records vendor bills and bill payments, keeps bill settlement status, and
posts both to the general ledger through
``ledger_kernel.services.module_posting_service``.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  ``APService`` is the sole public entry
point for AP operations.

Invariants enforced
-------------------
* A bill and its ``bill-{id}`` entry (a payment and its ``pay-{id}``
  entry) are written in one SAVEPOINT.
* A payment is > 0 and <= the bill's remaining balance.
* Status moves OPEN -> PARTIAL -> PAID as payments accumulate.
* Deleting a bill reverses its payments' entries and its own entry before
  the rows are removed.

Failure modes
-------------
* Validation or kernel rejection -> ``PostingResult`` with
  ``is_success == False``; nothing written.
* Database exceptions propagate.

Audit relevance
---------------
Structured log events for every operation; journal entries carry the
bill / payment transaction id.

Usage::

    service = APService(session, config, clock=clock)
    result = service.record_bill("Acme Metals", date(2024, 3, 1), 250_000)
    service.record_payment(result.document_id, 100_000, date(2024, 3, 15))
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
from ledger_modules.ap.models import Bill, BillPayment
from ledger_modules.ap.orm import BillPaymentModel, VendorBillModel
from ledger_modules.ap.profiles import (
    BILL,
    BILL_PAYMENT,
    bill_lines,
    bill_payment_lines,
)

logger = get_logger("modules.ap.service")


class APService:
    """
    Orchestrates accounts payable operations through the kernel.

    Contract
    --------
    * Every posting method returns ``PostingResult``; callers inspect
      ``result.is_success``.  ``result.document_id`` is the bill or
      payment id.
    * Query helpers (``get_bill``, ``list_bills``) return frozen DTOs.

    Guarantees
    ----------
    * Flush only unless ``auto_commit=True``.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        config: LedgerConfig,
        clock: Clock | None = None,
        auto_commit: bool = False,
    ):
        self._session = session
        self._config = config
        self._roles = config.roles
        self._clock = clock or SystemClock()
        self._poster = ModulePostingService(session, self._clock, auto_commit=auto_commit)

    # =========================================================================
    # Bills
    # =========================================================================

    def record_bill(
        self,
        vendor_name: str,
        bill_date: date,
        total_amount: int,
        bill_number: str | None = None,
        due_date: date | None = None,
    ) -> PostingResult:
        """
        Record a vendor bill and post Dr Inventory / Cr Accounts Payable.

        Postconditions:
            - On success: one ``bill-{id}`` entry; bill status OPEN.
            - On failure: nothing written.
        """

        def work() -> PostingResult:
            amount = require_amount(BILL, "total_amount", total_amount)
            if not vendor_name:
                raise InvalidSourceDocumentError(BILL, "vendor_name is required")
            if due_date is not None and due_date < bill_date:
                raise InvalidSourceDocumentError(BILL, "due_date precedes bill_date")

            bill = VendorBillModel(
                vendor_name=vendor_name,
                bill_number=bill_number,
                bill_date=bill_date,
                due_date=due_date,
                total_amount=amount,
                amount_paid=0,
                status=SettlementStatus.OPEN.value,
            )
            self._session.add(bill)
            self._session.flush()

            logger.info("ap_bill_recorded", extra={
                "bill_id": bill.id,
                "vendor_name": vendor_name,
                "total_amount": amount,
            })
            return self._post_bill(bill).with_document(bill.id)

        return self._poster.run("ap.record_bill", work)

    def delete_bill(
        self,
        bill_id: int,
        reason: str = "Bill deleted",
        reversal_date: date | None = None,
    ) -> PostingResult:
        """
        Delete a bill after reversing its payments' entries and its own.

        Returns:
            REVERSED with the reversal entry ids, or COMPLETED when the bill
            had no live entries.
        """

        def work() -> PostingResult:
            bill = self._load_bill(bill_id)
            reversal_ids: list[int] = []
            for payment in bill.payments:
                result = self._poster.reverse_source(
                    SourceRef.of(BILL_PAYMENT, payment.id), reason, reversal_date
                )
                reversal_ids.extend(result.journal_entry_ids)
            result = self._poster.reverse_source(SourceRef.of(BILL, bill.id), reason, reversal_date)
            reversal_ids.extend(result.journal_entry_ids)

            self._session.delete(bill)
            self._session.flush()

            logger.info("ap_bill_deleted", extra={
                "bill_id": bill_id,
                "reversal_entry_ids": reversal_ids,
            })
            return PostingResult(
                status=PostingStatus.REVERSED if reversal_ids else PostingStatus.COMPLETED,
                transaction_id=SourceRef.of(BILL, bill_id).transaction_id,
                document_id=bill_id,
                journal_entry_ids=tuple(reversal_ids),
            )

        return self._poster.run("ap.delete_bill", work)

    def get_bill(self, bill_id: int) -> Bill | None:
        bill = self._session.get(VendorBillModel, bill_id)
        return bill.to_dto() if bill is not None else None

    def list_bills(self, status: SettlementStatus | None = None) -> list[Bill]:
        stmt = select(VendorBillModel).order_by(VendorBillModel.id)
        if status is not None:
            stmt = stmt.where(VendorBillModel.status == SettlementStatus(status).value)
        return [bill.to_dto() for bill in self._session.scalars(stmt)]

    # =========================================================================
    # Payments
    # =========================================================================

    def record_payment(
        self,
        bill_id: int,
        amount: int,
        payment_date: date,
        bank_account_code: str | None = None,
        reference: str | None = None,
    ) -> PostingResult:
        """
        Pay (part of) a bill: Dr Accounts Payable / Cr bank.

        Preconditions:
            - bill exists and is not PAID.
            - 0 < amount <= remaining balance.
        Postconditions:
            - On success: one ``pay-{id}`` entry; bill status PARTIAL or PAID.
        """

        def work() -> PostingResult:
            paid = require_amount(BILL_PAYMENT, "amount", amount)
            bill = self._load_bill(bill_id)
            if bill.status == SettlementStatus.PAID.value:
                raise SourceDocumentStateError(BILL, bill_id, bill.status, "OPEN or PARTIAL")
            remaining = bill.total_amount - bill.amount_paid
            if paid > remaining:
                raise InvalidSourceDocumentError(
                    BILL_PAYMENT,
                    f"payment {paid} exceeds remaining balance {remaining} of bill {bill_id}",
                )

            payment = BillPaymentModel(
                bill_id=bill.id,
                payment_date=payment_date,
                amount=paid,
                bank_account_code=require_posting_account(
                    self._session, bank_account_code or self._roles.bank
                ),
                reference=reference,
            )
            self._session.add(payment)
            bill.amount_paid += paid
            bill.status = settlement_status(bill.total_amount, bill.amount_paid).value
            self._session.flush()

            logger.info("ap_payment_recorded", extra={
                "bill_id": bill.id,
                "payment_id": payment.id,
                "amount": paid,
                "bill_status": bill.status,
            })
            return self._post_payment(payment).with_document(payment.id)

        return self._poster.run("ap.record_payment", work)

    def list_payments(self, bill_id: int) -> list[BillPayment]:
        stmt = (
            select(BillPaymentModel)
            .where(BillPaymentModel.bill_id == bill_id)
            .order_by(BillPaymentModel.id)
        )
        return [payment.to_dto() for payment in self._session.scalars(stmt)]

    # =========================================================================
    # Integrity hooks
    # =========================================================================

    def source_handlers(self) -> list[SourceHandler]:
        return [
            SourceHandler(
                kind=BILL,
                document_keys=lambda: document_keys(self._session, VendorBillModel),
                document_exists=lambda key: document_exists(self._session, VendorBillModel, key),
                repost=self.repost_bill,
            ),
            SourceHandler(
                kind=BILL_PAYMENT,
                document_keys=lambda: document_keys(self._session, BillPaymentModel),
                document_exists=lambda key: document_exists(self._session, BillPaymentModel, key),
                repost=self.repost_payment,
            ),
        ]

    def repost_bill(self, key: str) -> PostingResult:
        """Post a stored bill's entry if it is missing."""
        source = SourceRef.of(BILL, key)
        return self._poster.run(
            "ap.repost_bill",
            lambda: self._post_bill(self._load_bill(document_id(BILL, key))),
            transaction_id=source.transaction_id,
        )

    def repost_payment(self, key: str) -> PostingResult:
        """Post a stored payment's entry if it is missing."""
        source = SourceRef.of(BILL_PAYMENT, key)

        def work() -> PostingResult:
            payment = self._session.get(BillPaymentModel, document_id(BILL_PAYMENT, key))
            if payment is None:
                raise SourceDocumentNotFoundError(BILL_PAYMENT, key)
            return self._post_payment(payment)

        return self._poster.run("ap.repost_payment", work, transaction_id=source.transaction_id)

    # =========================================================================
    # Internal
    # =========================================================================

    def _post_bill(self, bill: VendorBillModel) -> PostingResult:
        label = bill.bill_number or f"#{bill.id}"
        return self._poster.post(
            SourceRef.of(BILL, bill.id),
            bill.bill_date,
            f"Vendor bill {label} - {bill.vendor_name}",
            bill_lines(bill.total_amount, self._roles),
            reference=bill.bill_number,
        )

    def _post_payment(self, payment: BillPaymentModel) -> PostingResult:
        return self._poster.post(
            SourceRef.of(BILL_PAYMENT, payment.id),
            payment.payment_date,
            f"Payment for vendor bill #{payment.bill_id}",
            bill_payment_lines(payment.amount, payment.bank_account_code, self._roles),
            reference=payment.reference,
        )

    def _load_bill(self, bill_id: int) -> VendorBillModel:
        bill = self._session.get(VendorBillModel, bill_id)
        if bill is None:
            raise SourceDocumentNotFoundError(BILL, bill_id)
        return bill
