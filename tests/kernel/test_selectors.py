"""
Tests for the read side: LedgerSelector and JournalSelector.
"""

from datetime import date

import pytest

from ledger_kernel.domain.dtos import LineSpec, SourceRef
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.journal import EntryType, JournalEntry, JournalLine


@pytest.fixture
def activity(post_entry):
    """Three entries touching the main bank account."""
    return [
        post_entry("1110", "3100", 10_000, entry_date=date(2024, 6, 1), description="Capital"),
        post_entry("5300", "1110", 2_500, entry_date=date(2024, 6, 5), description="Office"),
        post_entry("1110", "4000", 1_000, entry_date=date(2024, 6, 10), description="Sale"),
    ]


class TestTrialBalance:

    def test_rows_for_active_accounts_only(self, ledger_selector, activity):
        rows = {r.account_code: r for r in ledger_selector.trial_balance()}

        assert list(rows) == ["1110", "3100", "4000", "5300"]
        assert rows["1110"].debit_total == 11_000
        assert rows["1110"].credit_total == 2_500
        assert rows["1110"].natural_balance == 8_500
        assert rows["3100"].natural_balance == 10_000
        assert rows["3100"].net_debit == -10_000
        assert sum(r.debit_total for r in rows.values()) == sum(
            r.credit_total for r in rows.values()
        )

    def test_as_of_cutoff(self, ledger_selector, activity):
        rows = {r.account_code: r for r in ledger_selector.trial_balance(as_of=date(2024, 6, 5))}
        assert "4000" not in rows
        assert rows["1110"].natural_balance == 7_500

    def test_window_start(self, ledger_selector, activity):
        rows = {r.account_code for r in ledger_selector.trial_balance(start=date(2024, 6, 2))}
        assert rows == {"1110", "4000", "5300"}

    def test_reversal_pair_nets_out_of_effective_view(
        self, ledger_selector, reversal_service, activity
    ):
        reversal_service.reverse_journal_entry(activity[1].id)

        full = {r.account_code: r for r in ledger_selector.trial_balance()}
        effective = {
            r.account_code: r for r in ledger_selector.trial_balance(exclude_reversals=True)
        }

        assert full["5300"].natural_balance == 0
        assert full["5300"].debit_total == 2_500
        assert "5300" not in effective
        assert full["1110"].natural_balance == effective["1110"].natural_balance == 11_000


class TestComputedBalance:

    def test_matches_cache(self, ledger_selector, activity, balance_of):
        assert ledger_selector.computed_balance("1110") == balance_of("1110") == 8_500
        assert ledger_selector.computed_balance("1110", as_of=date(2024, 6, 1)) == 10_000

    def test_unknown_account(self, ledger_selector, seeded_chart):
        with pytest.raises(AccountNotFoundError):
            ledger_selector.computed_balance("9999")

    def test_no_discrepancies_after_normal_posting(self, ledger_selector, activity):
        assert ledger_selector.balance_discrepancies() == []

    def test_cache_reread_after_savepoint_rollback(
        self, session, ledger_selector, post_entry, balance_of
    ):
        # Load every GLAccount into the identity map first
        assert ledger_selector.balance_discrepancies() == []

        savepoint = session.begin_nested()
        post_entry("1110", "3100", 500)
        assert {a.code: a.balance for a in ledger_selector.chart_of_accounts()}["1110"] == 500
        savepoint.rollback()

        assert balance_of("1110") == 0
        assert ledger_selector.balance_discrepancies() == []
        balances = {b.account_code: b for b in ledger_selector.account_balances()}
        assert balances["1110"].cached_balance == 0
        assert balances["3100"].cached_balance == 0
        chart = {a.code: a.balance for a in ledger_selector.chart_of_accounts()}
        assert chart["1110"] == chart["3100"] == 0


class TestChartOfAccounts:

    def test_inactive_filter(self, ledger_selector, account_service, seeded_chart):
        account_service.update_account_details("1010", is_active=False)

        everything = [a.code for a in ledger_selector.chart_of_accounts()]
        active = [a.code for a in ledger_selector.chart_of_accounts(include_inactive=False)]

        assert "1010" in everything
        assert "1010" not in active
        assert len(everything) == len(active) + 1


class TestAccountRegister:

    def test_running_balance(self, ledger_selector, activity):
        register = ledger_selector.account_register("1110")

        assert register.opening_balance == 0
        assert [line.running_balance for line in register.lines] == [10_000, 7_500, 8_500]
        assert [line.description for line in register.lines] == ["Capital", "Office", "Sale"]
        assert register.total_debits == 11_000
        assert register.total_credits == 2_500
        assert register.closing_balance == 8_500

    def test_window_with_opening_balance(self, ledger_selector, activity):
        register = ledger_selector.account_register(
            "1110", start=date(2024, 6, 2), end=date(2024, 6, 5)
        )

        assert register.opening_balance == 10_000
        assert len(register.lines) == 1
        assert register.lines[0].credit == 2_500
        assert register.closing_balance == 7_500

    def test_reversals_hidden_by_default(self, ledger_selector, reversal_service, activity):
        reversal_service.reverse_journal_entry(activity[1].id)

        effective = ledger_selector.account_register("1110")
        full = ledger_selector.account_register("1110", include_reversals=True)

        assert len(effective.lines) == 2
        assert len(full.lines) == 4
        assert full.lines[-1].entry_type == EntryType.REVERSAL.value
        assert effective.closing_balance == full.closing_balance == 11_000

    def test_unknown_account(self, ledger_selector, seeded_chart):
        with pytest.raises(AccountNotFoundError):
            ledger_selector.account_register("9999")


class TestJournalSelector:

    def _post_bill(self, journal_service, key, amount=500):
        return journal_service.post_for_source(
            SourceRef.of("bill", key),
            date(2024, 6, 1),
            f"Bill {key}",
            [LineSpec.dr("1310", amount), LineSpec.cr("2100", amount)],
        ).entry

    def test_find_by_transaction_id(self, journal_selector, journal_service, seeded_chart):
        entry = self._post_bill(journal_service, 1)
        assert journal_selector.find_by_transaction_id("bill-1").id == entry.id
        assert journal_selector.find_by_transaction_id("bill-2") is None

    def test_list_entries(self, journal_selector, reversal_service, activity):
        reversal_service.reverse_journal_entry(activity[0].id)

        june = journal_selector.list_entries(date(2024, 6, 1), date(2024, 6, 9))
        assert [e.id for e in june] == [activity[0].id, activity[1].id]

        reversals = journal_selector.list_entries(entry_type=EntryType.REVERSAL)
        assert len(reversals) == 1
        assert reversals[0].reversal_of_id == activity[0].id

    def test_gl_impact_includes_reversals(
        self, journal_selector, journal_service, reversal_service, post_entry
    ):
        entry = self._post_bill(journal_service, 1)
        self._post_bill(journal_service, 2)
        referenced = post_entry("2100", "1110", 100, reference="bill-1")
        reversal = reversal_service.reverse_by_transaction_id("bill-1")

        impact = journal_selector.get_gl_impact("bill-1")

        assert [e.id for e in impact] == [entry.id, referenced.id, reversal.reversal_entry_id]

    def test_gl_impact_unknown(self, journal_selector, seeded_chart):
        assert journal_selector.get_gl_impact("bill-404") == []

    def test_source_entries(self, journal_selector, journal_service, reversal_service, post_entry):
        self._post_bill(journal_service, 1)
        self._post_bill(journal_service, 2)
        post_entry("1110", "3100", 100)
        reversal_service.reverse_by_transaction_id("bill-2")

        refs = journal_selector.source_entries("bill")

        assert [(r.transaction_id, r.is_reversed) for r in refs] == [
            ("bill-1", False),
            ("bill-2", True),
        ]
        assert refs[0].source_kind == "bill"
        assert refs[0].source_key == "1"
        assert journal_selector.posted_transaction_ids() == {"bill-1", "bill-2"}
        assert journal_selector.source_entries("pay") == []

    def test_unbalanced_entries(self, journal_selector, session, activity):
        assert journal_selector.unbalanced_entries() == []

        broken = JournalEntry(
            entry_date=date(2024, 6, 2),
            description="Corrupt",
            transaction_id="bill-99",
            source_kind="bill",
            source_key="99",
        )
        broken.lines.append(JournalLine(line_no=1, account_code="1310", debit=300, credit=0))
        session.add(broken)
        session.flush()

        found = journal_selector.unbalanced_entries()
        assert len(found) == 1
        assert found[0].journal_entry_id == broken.id
        assert found[0].transaction_id == "bill-99"
        assert (found[0].debit_total, found[0].credit_total) == (300, 0)
