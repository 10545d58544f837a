"""
Tests for the accounts payable module.

Validates:
- A bill posts Dr Inventory / Cr Accounts Payable under ``bill-{id}``
- Payments settle the bill OPEN -> PARTIAL -> PAID
- Rejected operations write neither the document nor an entry
- Deleting a bill reverses every entry it produced
"""

from datetime import date

import pytest

from ledger_kernel.services.module_posting_service import PostingStatus
from ledger_modules.ap.models import BillStatus

BILL_DATE = date(2024, 6, 3)


@pytest.fixture
def bill(ap_service):
    result = ap_service.record_bill(
        "Acme Metals", BILL_DATE, 500_000, bill_number="AM-1001", due_date=date(2024, 7, 3)
    )
    assert result.is_success
    return result


class TestRecordBill:

    def test_posts_inventory_and_payable(self, bill, balance_of, journal_selector):
        assert bill.status == PostingStatus.POSTED
        assert bill.transaction_id == "bill-1"
        assert bill.document_id == 1
        assert balance_of("1310") == 500_000
        assert balance_of("2100") == 500_000

        entry = journal_selector.find_by_transaction_id("bill-1")
        assert entry.id == bill.journal_entry_id
        assert entry.entry_date == BILL_DATE
        assert entry.reference == "AM-1001"
        assert "Acme Metals" in entry.description

    def test_bill_is_open(self, ap_service, bill):
        stored = ap_service.get_bill(bill.document_id)
        assert stored.status == BillStatus.OPEN
        assert stored.amount_paid == 0
        assert stored.balance_remaining == 500_000
        assert stored.due_date == date(2024, 7, 3)

    @pytest.mark.parametrize("amount", [0, -100, 12.5])
    def test_invalid_amount(self, ap_service, journal_selector, amount):
        result = ap_service.record_bill("Acme Metals", BILL_DATE, amount)

        assert result.status == PostingStatus.VALIDATION_FAILED
        assert result.error_code == "INVALID_SOURCE_DOCUMENT"
        assert ap_service.list_bills() == []
        assert journal_selector.list_entries() == []

    def test_vendor_required(self, ap_service):
        assert ap_service.record_bill("", BILL_DATE, 100).status == PostingStatus.VALIDATION_FAILED

    def test_due_date_before_bill_date(self, ap_service):
        result = ap_service.record_bill(
            "Acme Metals", BILL_DATE, 100, due_date=date(2024, 6, 1)
        )
        assert result.status == PostingStatus.VALIDATION_FAILED

    def test_closed_period_writes_nothing(self, ap_service, period_service, balance_of):
        period_service.close_fiscal_period(date(2024, 6, 30))

        result = ap_service.record_bill("Acme Metals", BILL_DATE, 100)

        assert result.status == PostingStatus.PERIOD_CLOSED
        assert result.error_code == "CLOSED_PERIOD"
        assert not result.is_success
        assert ap_service.list_bills() == []
        assert balance_of("2100") == 0

    def test_list_bills_by_status(self, ap_service, bill):
        second = ap_service.record_bill("Bolt Supply", BILL_DATE, 10_000)
        ap_service.record_payment(second.document_id, 10_000, date(2024, 6, 10))

        assert [b.id for b in ap_service.list_bills()] == [1, 2]
        assert [b.id for b in ap_service.list_bills(BillStatus.OPEN)] == [1]
        assert [b.id for b in ap_service.list_bills(BillStatus.PAID)] == [2]


class TestRecordPayment:

    def test_partial_then_full_payment(self, ap_service, bill, balance_of):
        first = ap_service.record_payment(bill.document_id, 200_000, date(2024, 6, 10))

        assert first.status == PostingStatus.POSTED
        assert first.transaction_id == f"pay-{first.document_id}"
        assert ap_service.get_bill(bill.document_id).status == BillStatus.PARTIAL
        assert balance_of("2100") == 300_000
        assert balance_of("1110") == -200_000

        ap_service.record_payment(bill.document_id, 300_000, date(2024, 6, 20), reference="CHK-9")

        stored = ap_service.get_bill(bill.document_id)
        assert stored.status == BillStatus.PAID
        assert stored.balance_remaining == 0
        assert balance_of("2100") == 0
        assert balance_of("1110") == -500_000
        payments = ap_service.list_payments(bill.document_id)
        assert [p.amount for p in payments] == [200_000, 300_000]
        assert payments[1].reference == "CHK-9"
        assert payments[1].bank_account_code == "1110"

    def test_payment_from_other_account(self, ap_service, bill, balance_of):
        ap_service.record_payment(bill.document_id, 1_000, date(2024, 6, 10), "1010")
        assert balance_of("1010") == -1_000
        assert balance_of("1110") == 0

    def test_overpayment_rejected(self, ap_service, bill, balance_of):
        result = ap_service.record_payment(bill.document_id, 500_001, date(2024, 6, 10))

        assert result.status == PostingStatus.VALIDATION_FAILED
        assert "exceeds remaining balance" in result.message
        assert ap_service.list_payments(bill.document_id) == []
        assert ap_service.get_bill(bill.document_id).amount_paid == 0
        assert balance_of("2100") == 500_000

    def test_paid_bill_rejects_payment(self, ap_service, bill):
        ap_service.record_payment(bill.document_id, 500_000, date(2024, 6, 10))

        result = ap_service.record_payment(bill.document_id, 1, date(2024, 6, 11))

        assert result.status == PostingStatus.INVALID_STATE
        assert result.error_code == "SOURCE_DOCUMENT_STATE"

    def test_unknown_bill(self, ap_service):
        result = ap_service.record_payment(404, 100, date(2024, 6, 10))
        assert result.status == PostingStatus.NOT_FOUND

    def test_unknown_bank_account(self, ap_service, bill):
        result = ap_service.record_payment(bill.document_id, 100, date(2024, 6, 10), "1999")
        assert result.status == PostingStatus.VALIDATION_FAILED
        assert result.error_code == "ACCOUNT_NOT_FOUND"


class TestDeleteBill:

    def test_delete_reverses_bill_and_payments(
        self, ap_service, bill, balance_of, journal_selector
    ):
        payment = ap_service.record_payment(bill.document_id, 200_000, date(2024, 6, 10))

        result = ap_service.delete_bill(bill.document_id, reason="Duplicate bill")

        assert result.status == PostingStatus.REVERSED
        assert len(result.journal_entry_ids) == 2
        assert ap_service.get_bill(bill.document_id) is None
        assert ap_service.list_payments(bill.document_id) == []
        for code in ("1310", "2100", "1110"):
            assert balance_of(code) == 0

        # The original entries stay in the journal, each with its reversal
        assert journal_selector.find_by_transaction_id("bill-1").is_reversed
        assert journal_selector.find_by_transaction_id(
            f"pay-{payment.document_id}"
        ).is_reversed

    def test_delete_unknown_bill(self, ap_service):
        assert ap_service.delete_bill(404).status == PostingStatus.NOT_FOUND


class TestRepost:

    def test_repost_existing_entry_is_idempotent(self, ap_service, bill, balance_of):
        result = ap_service.repost_bill(str(bill.document_id))

        assert result.status == PostingStatus.ALREADY_POSTED
        assert result.journal_entry_id == bill.journal_entry_id
        assert balance_of("2100") == 500_000

    def test_repost_unknown_key(self, ap_service):
        assert ap_service.repost_bill("abc").status == PostingStatus.NOT_FOUND
        assert ap_service.repost_payment("77").status == PostingStatus.NOT_FOUND

    def test_source_handlers(self, ap_service, bill):
        handlers = {h.kind: h for h in ap_service.source_handlers()}

        assert set(handlers) == {"bill", "pay"}
        assert handlers["bill"].document_keys() == ["1"]
        assert handlers["bill"].document_exists("1")
        assert not handlers["bill"].document_exists("2")
        assert not handlers["bill"].document_exists("x")
