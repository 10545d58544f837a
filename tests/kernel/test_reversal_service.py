"""
Tests for ReversalService.

Validates:
- The reversal mirrors every line and nets each account back to zero
- Default reversal date comes from the clock
- An entry is reversed at most once; reversals are not reversible
- Reversal dates must be open
"""

from datetime import date

import pytest

from ledger_kernel.domain.dtos import LineSpec, SourceRef
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    EntryAlreadyReversedError,
    EntryNotFoundError,
    EntryNotPostedError,
)
from ledger_kernel.models.journal import EntryType


class TestReverseJournalEntry:

    def test_reversal_mirrors_lines(self, reversal_service, post_entry):
        entry = post_entry("1110", "3100", 75_000, description="Capital")

        result = reversal_service.reverse_journal_entry(entry.id, reason="Posted twice")

        reversal = result.reversal
        assert result.original_entry_id == entry.id
        assert result.reversal_entry_id == reversal.id
        assert reversal.entry_type == EntryType.REVERSAL.value
        assert reversal.reversal_of_id == entry.id
        assert reversal.reference == f"REV-JE{entry.id}"
        assert reversal.description == f"Reversal of JE #{entry.id}: Posted twice"
        assert [(l.account_code, l.debit, l.credit) for l in reversal.lines] == [
            ("1110", 0, 75_000),
            ("3100", 75_000, 0),
        ]

    def test_description_falls_back_to_original(self, reversal_service, post_entry):
        entry = post_entry("1110", "3100", 100, description="Capital")
        result = reversal_service.reverse_journal_entry(entry.id)
        assert result.reversal.description == f"Reversal of JE #{entry.id}: Capital"

    def test_default_date_is_clock_today(self, reversal_service, post_entry):
        entry = post_entry("1110", "3100", 100)
        result = reversal_service.reverse_journal_entry(entry.id)
        assert result.reversal_date == date(2024, 6, 30)
        assert result.reversal.entry_date == date(2024, 6, 30)

    def test_default_date_follows_clock(self, reversal_service, post_entry, deterministic_clock):
        entry = post_entry("1110", "3100", 100)
        deterministic_clock.set_date(date(2024, 7, 1))
        deterministic_clock.advance(days=1)

        result = reversal_service.reverse_journal_entry(entry.id)

        assert result.reversal_date == date(2024, 7, 2)

    def test_explicit_date(self, reversal_service, post_entry):
        entry = post_entry("1110", "3100", 100)
        result = reversal_service.reverse_journal_entry(entry.id, reversal_date=date(2024, 6, 5))
        assert result.reversal.entry_date == date(2024, 6, 5)

    def test_balances_net_to_zero(self, reversal_service, post_entry, balance_of):
        keep = post_entry("1110", "3100", 10_000)
        entry = post_entry("5300", "1110", 2_500)

        reversal_service.reverse_journal_entry(entry.id)

        assert balance_of("5300") == 0
        assert balance_of("1110") == 10_000
        assert balance_of("3100") == 10_000
        assert keep.id != entry.id

    def test_original_is_marked_reversed(self, reversal_service, journal_selector, post_entry):
        entry = post_entry("1110", "3100", 100)
        result = reversal_service.reverse_journal_entry(entry.id)

        original = journal_selector.get_entry(entry.id)
        assert original.is_reversed
        assert original.reversed_by_id == result.reversal_entry_id
        assert original.is_posted

    def test_second_reversal_rejected(self, reversal_service, post_entry):
        entry = post_entry("1110", "3100", 100)
        first = reversal_service.reverse_journal_entry(entry.id)

        with pytest.raises(EntryAlreadyReversedError) as exc_info:
            reversal_service.reverse_journal_entry(entry.id)
        assert exc_info.value.reversal_entry_id == first.reversal_entry_id

    def test_reversal_of_reversal_rejected(self, reversal_service, post_entry):
        entry = post_entry("1110", "3100", 100)
        result = reversal_service.reverse_journal_entry(entry.id)

        with pytest.raises(EntryNotPostedError, match="reversal entries"):
            reversal_service.reverse_journal_entry(result.reversal_entry_id)

    def test_unknown_entry(self, reversal_service, seeded_chart):
        with pytest.raises(EntryNotFoundError):
            reversal_service.reverse_journal_entry(999)

    def test_closed_reversal_date_rejected(
        self, reversal_service, period_service, journal_selector, post_entry
    ):
        entry = post_entry("1110", "3100", 100, entry_date=date(2024, 6, 10))
        period_service.close_fiscal_period(date(2024, 6, 15))

        with pytest.raises(ClosedPeriodError):
            reversal_service.reverse_journal_entry(entry.id, reversal_date=date(2024, 6, 15))

        # Reversing into the open period is fine
        result = reversal_service.reverse_journal_entry(entry.id, reversal_date=date(2024, 6, 16))
        assert journal_selector.get_entry(entry.id).reversed_by_id == result.reversal_entry_id

    def test_logs_reversal(self, reversal_service, post_entry, captured_logs):
        entry = post_entry("1110", "3100", 100)
        result = reversal_service.reverse_journal_entry(entry.id, reason="typo")

        logs = [r for r in captured_logs() if r["message"] == "journal_entry_reversed"]
        assert len(logs) == 1
        assert logs[0]["entry_id"] == entry.id
        assert logs[0]["reversal_entry_id"] == result.reversal_entry_id
        assert logs[0]["reason"] == "typo"


class TestReverseByTransactionId:

    def _post_bill(self, journal_service, key=1):
        return journal_service.post_for_source(
            SourceRef.of("bill", key),
            date(2024, 6, 1),
            "Vendor bill",
            [LineSpec.dr("1310", 500), LineSpec.cr("2100", 500)],
        ).entry

    def test_reverses_source_entry(self, reversal_service, journal_service, seeded_chart, balance_of):
        entry = self._post_bill(journal_service)

        result = reversal_service.reverse_by_transaction_id("bill-1", reason="Bill deleted")

        assert result is not None
        assert result.original_entry_id == entry.id
        # The reversal does not carry the document's transaction id
        assert result.reversal.transaction_id is None
        assert balance_of("1310") == 0
        assert balance_of("2100") == 0

    def test_unknown_transaction_returns_none(self, reversal_service, seeded_chart):
        assert reversal_service.reverse_by_transaction_id("bill-404") is None

    def test_already_reversed_returns_none(self, reversal_service, journal_service, seeded_chart):
        self._post_bill(journal_service)
        reversal_service.reverse_by_transaction_id("bill-1")
        assert reversal_service.reverse_by_transaction_id("bill-1") is None
