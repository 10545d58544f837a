"""
Tests for AccountService: chart seeding, account maintenance and cached
balance repair.
"""

from datetime import date

import pytest
from sqlalchemy import update

from ledger_kernel.exceptions import AccountNotFoundError, DuplicateAccountError
from ledger_kernel.models.account import AccountType, GLAccount, NormalBalance


class TestSeedChart:

    def test_seeds_every_configured_account(self, seeded_chart, ledger_config, ledger_selector):
        assert seeded_chart == len(ledger_config.accounts)
        codes = [a.code for a in ledger_selector.chart_of_accounts()]
        assert codes == sorted(a.code for a in ledger_config.accounts)

    def test_seeding_is_idempotent(self, account_service, seeded_chart, ledger_config):
        assert account_service.seed_chart(ledger_config.accounts) == 0

    def test_new_accounts_start_at_zero(self, ledger_selector, seeded_chart):
        assert all(a.balance == 0 and a.is_active for a in ledger_selector.chart_of_accounts())


class TestAccountTypes:

    @pytest.mark.parametrize(
        "account_type, normal",
        [
            (AccountType.ASSET, NormalBalance.DEBIT),
            (AccountType.EXPENSE, NormalBalance.DEBIT),
            (AccountType.LIABILITY, NormalBalance.CREDIT),
            (AccountType.EQUITY, NormalBalance.CREDIT),
            (AccountType.REVENUE, NormalBalance.CREDIT),
        ],
    )
    def test_normal_balance(self, account_type, normal):
        assert account_type.normal_balance == normal

    def test_natural_amount(self):
        assert AccountType.ASSET.natural_amount(100, 30) == 70
        assert AccountType.LIABILITY.natural_amount(100, 30) == -70


class TestCreateAccount:

    def test_create_child_account(self, account_service, seeded_chart):
        info = account_service.create_account(
            "1120", "Bank - Payroll", AccountType.ASSET, parent_code="1000"
        )
        assert info.code == "1120"
        assert info.type == "Asset"
        assert info.parent_code == "1000"
        assert info.balance == 0

    def test_type_accepts_string(self, account_service, seeded_chart):
        assert account_service.create_account("5600", "Rent", "Expense").type == "Expense"

    def test_duplicate_code_rejected(self, account_service, seeded_chart):
        with pytest.raises(DuplicateAccountError):
            account_service.create_account("1110", "Another bank", AccountType.ASSET)

    def test_unknown_parent_rejected(self, account_service, seeded_chart):
        with pytest.raises(AccountNotFoundError):
            account_service.create_account("1120", "Orphan", AccountType.ASSET, parent_code="9")

    def test_unknown_type_rejected(self, account_service, seeded_chart):
        with pytest.raises(ValueError):
            account_service.create_account("7000", "Mystery", "Contra")


class TestUpdateAccountDetails:

    def test_rename_and_deactivate(self, account_service, seeded_chart):
        info = account_service.update_account_details(
            "1010", name="Cash in Till", is_active=False
        )
        assert info.name == "Cash in Till"
        assert not info.is_active
        assert info.type == "Asset"

    def test_clear_parent(self, account_service, seeded_chart):
        assert account_service.update_account_details("1010", parent_code=None).parent_code is None

    def test_own_parent_rejected(self, account_service, seeded_chart):
        with pytest.raises(ValueError):
            account_service.update_account_details("1010", parent_code="1010")

    def test_unknown_account(self, account_service, seeded_chart):
        with pytest.raises(AccountNotFoundError):
            account_service.update_account_details("9999", name="Nope")


class TestAccountQueries:

    def test_account_details(self, account_service, seeded_chart):
        details = account_service.get_account_details("1000")
        assert details.account.name == "Cash and Cash Equivalents"
        assert details.parent is None
        assert [c.code for c in details.children] == ["1010", "1020", "1110"]

        child = account_service.get_account_details("1310")
        assert child.parent.code == "1300"
        assert child.children == ()

    def test_account_details_unknown(self, account_service, seeded_chart):
        with pytest.raises(AccountNotFoundError):
            account_service.get_account_details("9999")

    def test_account_balances_as_of(self, account_service, post_entry):
        post_entry("1110", "3100", 1_000, entry_date=date(2024, 6, 1))
        post_entry("1110", "3100", 500, entry_date=date(2024, 6, 20))

        current = {b.account_code: b for b in account_service.get_account_balances()}
        assert current["1110"].computed_balance == 1_500
        assert current["1110"].is_consistent
        assert current["2100"].computed_balance == 0

        early = {
            b.account_code: b for b in account_service.get_account_balances(date(2024, 6, 10))
        }
        assert early["1110"].computed_balance == 1_000
        assert early["1110"].cached_balance == 1_500


class TestRecalculateCachedBalances:

    def test_consistent_cache_needs_no_correction(self, account_service, post_entry):
        post_entry("1110", "3100", 1_000)
        assert account_service.recalculate_cached_balances() == []

    def test_drift_is_corrected(
        self, account_service, post_entry, session, balance_of, captured_logs
    ):
        post_entry("1110", "3100", 1_000)
        session.execute(update(GLAccount).where(GLAccount.code == "1110").values(balance=42))
        session.execute(update(GLAccount).where(GLAccount.code == "2100").values(balance=-7))

        corrections = account_service.recalculate_cached_balances()

        by_code = {c.account_code: c for c in corrections}
        assert set(by_code) == {"1110", "2100"}
        assert by_code["1110"].previous_balance == 42
        assert by_code["1110"].corrected_balance == 1_000
        assert by_code["1110"].difference == -958
        assert balance_of("1110") == 1_000
        assert balance_of("2100") == 0
        assert balance_of("3100") == 1_000

        warnings = [r for r in captured_logs() if r["message"] == "cached_balance_corrected"]
        assert {r["account_code"] for r in warnings} == {"1110", "2100"}
