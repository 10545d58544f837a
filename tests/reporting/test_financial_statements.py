"""
Tests for the reporting module: trial balance, balance sheet, profit & loss
and the general ledger.

Validates:
- Assets = Liabilities + Equity (including current earnings) after a month
  of mixed sub-ledger activity
- Current / non-current classification by code prefix
- Multi-step P&L arithmetic with contra-revenue
- Reversal pairs drop out of the default view without changing totals
- Imbalance is reported, not raised
"""

import json
from datetime import date

import pytest

from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_modules.reporting import ReportType, render_to_dict

JUNE_START = date(2024, 6, 1)
JUNE_END = date(2024, 6, 30)


@pytest.fixture
def june_activity(post_entry, ap_service, ar_service, asset_service):
    """
    One month of activity:

    - 10,000.00 contributed capital
    - a 5,000.00 raw-material bill
    - an invoice with discount, sales tax and cost of goods
    - a 60,000.00 press financed by a long-term loan, depreciated for June
    """
    post_entry("1110", "3100", 1_000_000, entry_date=JUNE_START, description="Capital")
    ap_service.record_bill("Acme Metals", date(2024, 6, 3), 500_000)
    ar_service.create_invoice(
        "Northwind Traders",
        date(2024, 6, 5),
        subtotal=100_000,
        discount_amount=5_000,
        tax_amount=9_500,
        cost_amount=60_000,
    )
    asset_service.register_asset(
        "Hydraulic press",
        6_000_000,
        60,
        JUNE_START,
        acquisition_credit_account_code="2500",
    )
    result = asset_service.run_monthly_depreciation(2024, 6)
    assert result.is_success


def _codes(section):
    return [line.account_code for line in section.lines]


def _insert_one_sided_entry(session, amount):
    broken = JournalEntry(entry_date=date(2024, 6, 2), description="Corrupt")
    broken.lines.append(JournalLine(line_no=1, account_code="1310", debit=amount, credit=0))
    session.add(broken)
    session.flush()
    return broken


class TestTrialBalanceReport:

    def test_totals_agree(self, reporting_service, june_activity):
        report = reporting_service.get_trial_balance()

        assert report.is_balanced
        assert report.total_debits == report.total_credits
        assert [line.account_code for line in report.lines] == sorted(
            line.account_code for line in report.lines
        )
        assert report.metadata.report_type == ReportType.TRIAL_BALANCE

    def test_as_of_excludes_later_entries(self, reporting_service, june_activity):
        report = reporting_service.get_trial_balance(as_of=date(2024, 6, 2))

        # Depreciation for June is dated the first of the month
        assert [line.account_code for line in report.lines] == [
            "1110", "1510", "1610", "2500", "3100", "5500",
        ]
        assert report.total_debits == 7_100_000

    def test_empty_ledger(self, reporting_service):
        report = reporting_service.get_trial_balance()
        assert report.lines == ()
        assert report.is_balanced


class TestBalanceSheet:

    def test_equation_holds(self, reporting_service, june_activity):
        report = reporting_service.get_balance_sheet(JUNE_END)

        assert report.total_assets == 7_444_500
        assert report.total_liabilities == 6_509_500
        assert report.current_earnings == -65_000
        assert report.total_equity == 935_000
        assert report.total_liabilities_and_equity == 7_444_500
        assert report.difference == 0
        assert report.is_balanced

    def test_classification_by_prefix(self, reporting_service, june_activity):
        report = reporting_service.get_balance_sheet(JUNE_END)

        assert _codes(report.current_assets) == ["1110", "1200", "1310", "1340"]
        assert report.current_assets.total == 1_544_500
        assert _codes(report.non_current_assets) == ["1510", "1610"]
        assert report.non_current_assets.total == 5_900_000
        assert _codes(report.current_liabilities) == ["2100", "2310"]
        assert _codes(report.non_current_liabilities) == ["2500"]
        assert _codes(report.equity) == ["3100"]

    def test_before_any_activity(self, reporting_service, june_activity):
        report = reporting_service.get_balance_sheet(date(2024, 5, 31))

        assert report.total_assets == 0
        assert report.total_liabilities_and_equity == 0
        assert report.is_balanced

    def test_metadata(self, reporting_service, june_activity):
        metadata = reporting_service.get_balance_sheet(JUNE_END).metadata

        assert metadata.report_type == ReportType.BALANCE_SHEET
        assert metadata.entity_name == "Default Manufacturing Co."
        assert metadata.currency == "USD"
        assert metadata.as_of_date == JUNE_END
        assert metadata.generated_at == "2024-06-30T12:00:00+00:00"

    def test_imbalance_is_reported(self, reporting_service, seeded_chart, session, captured_logs):
        _insert_one_sided_entry(session, 300)

        report = reporting_service.get_balance_sheet(JUNE_END)

        assert not report.is_balanced
        assert report.difference == 300
        warnings = [r for r in captured_logs() if r["message"] == "balance_sheet_imbalanced"]
        assert len(warnings) == 1
        assert warnings[0]["level"] == "WARNING"
        assert warnings[0]["difference"] == 300

    def test_difference_within_tolerance(self, reporting_service, seeded_chart, session):
        _insert_one_sided_entry(session, 1)

        report = reporting_service.get_balance_sheet(JUNE_END)

        assert report.difference == 1
        assert report.tolerance == 1
        assert report.is_balanced


class TestProfitAndLoss:

    def test_multi_step_sections(self, reporting_service, june_activity):
        report = reporting_service.get_profit_and_loss(JUNE_START, JUNE_END)

        assert _codes(report.revenue) == ["4000", "4200"]
        assert report.total_revenue == 95_000
        assert _codes(report.cogs) == ["5100"]
        assert report.gross_profit == 35_000
        assert _codes(report.operating_expenses) == ["5500"]
        assert report.operating_income == -65_000
        assert report.other_expenses.lines == ()
        assert report.net_income == -65_000
        assert report.total_expenses == 160_000

    def test_net_income_matches_current_earnings(self, reporting_service, june_activity):
        pnl = reporting_service.get_profit_and_loss(date(2024, 1, 1), JUNE_END)
        sheet = reporting_service.get_balance_sheet(JUNE_END)
        assert pnl.net_income == sheet.current_earnings

    def test_window_excludes_other_months(self, reporting_service, june_activity, post_entry):
        post_entry("5300", "1110", 7_000, entry_date=date(2024, 7, 2), description="July rent")

        june = reporting_service.get_profit_and_loss(JUNE_START, JUNE_END)
        july = reporting_service.get_profit_and_loss(date(2024, 7, 1), date(2024, 7, 31))

        assert june.net_income == -65_000
        assert july.net_income == -7_000
        assert july.metadata.period_start == date(2024, 7, 1)

    def test_start_after_end(self, reporting_service):
        with pytest.raises(ValueError, match="must not be after"):
            reporting_service.get_profit_and_loss(JUNE_END, JUNE_START)


class TestReversalView:

    @pytest.fixture
    def reversed_expense(self, post_entry, reversal_service):
        entry = post_entry("5300", "1110", 1_000, entry_date=date(2024, 6, 4))
        reversal_service.reverse_journal_entry(entry.id, reversal_date=date(2024, 6, 6))
        return entry

    def test_pair_hidden_by_default(self, reporting_service, reversed_expense):
        report = reporting_service.get_profit_and_loss(JUNE_START, JUNE_END)
        assert report.operating_expenses.lines == ()

    def test_pair_visible_and_nets_to_zero(self, reporting_service, reversed_expense):
        report = reporting_service.get_profit_and_loss(
            JUNE_START, JUNE_END, exclude_reversals=False
        )

        assert _codes(report.operating_expenses) == ["5300"]
        line = report.operating_expenses.lines[0]
        assert (line.debit_balance, line.credit_balance, line.net_balance) == (1_000, 1_000, 0)
        assert report.net_income == 0

    def test_balance_sheet_same_either_way(self, reporting_service, june_activity, reversed_expense):
        hidden = reporting_service.get_balance_sheet(JUNE_END)
        shown = reporting_service.get_balance_sheet(JUNE_END, exclude_reversals=False)

        assert hidden.total_assets == shown.total_assets
        assert hidden.total_equity == shown.total_equity
        assert hidden.is_balanced and shown.is_balanced


class TestReversalAcrossPeriods:
    """A sale booked in January and reversed in March."""

    @pytest.fixture
    def january_sale(self, post_entry, reversal_service):
        entry = post_entry("1200", "4000", 100_000, entry_date=date(2024, 1, 15))
        reversal_service.reverse_journal_entry(entry.id, reversal_date=date(2024, 3, 10))
        return entry

    @pytest.mark.parametrize("exclude_reversals", [True, False])
    def test_january_pnl_keeps_the_sale(self, reporting_service, january_sale, exclude_reversals):
        report = reporting_service.get_profit_and_loss(
            date(2024, 1, 1), date(2024, 1, 31), exclude_reversals=exclude_reversals
        )
        assert report.revenue.total == 100_000
        assert report.net_income == 100_000

    @pytest.mark.parametrize("exclude_reversals", [True, False])
    def test_march_pnl_shows_the_reversal(
        self, reporting_service, january_sale, exclude_reversals
    ):
        report = reporting_service.get_profit_and_loss(
            date(2024, 3, 1), date(2024, 3, 31), exclude_reversals=exclude_reversals
        )
        assert report.revenue.total == -100_000

    def test_balance_sheet_before_reversal(self, reporting_service, january_sale):
        report = reporting_service.get_balance_sheet(date(2024, 1, 31))

        assert report.total_assets == 100_000
        assert report.current_earnings == 100_000
        assert report.is_balanced

    def test_balance_sheet_after_reversal_hides_pair(self, reporting_service, january_sale):
        report = reporting_service.get_balance_sheet(date(2024, 3, 31))

        assert report.total_assets == 0
        assert report.current_assets.lines == ()

    def test_quarter_pnl_hides_pair(self, reporting_service, january_sale):
        report = reporting_service.get_profit_and_loss(date(2024, 1, 1), date(2024, 3, 31))
        assert report.revenue.lines == ()

    def test_register_opening_balance_keeps_the_sale(self, reporting_service, january_sale):
        register = reporting_service.get_general_ledger("1200", start=date(2024, 2, 1))

        assert register.opening_balance == 100_000
        assert [(line.debit, line.credit) for line in register.lines] == [(0, 100_000)]
        assert register.closing_balance == 0


class TestGeneralLedger:

    def test_register_for_window(self, reporting_service, june_activity, post_entry):
        post_entry("1110", "4000", 2_000, entry_date=date(2024, 7, 3), description="July sale")

        register = reporting_service.get_general_ledger("1110", start=date(2024, 7, 1))

        assert register.opening_balance == 1_000_000
        assert [line.description for line in register.lines] == ["July sale"]
        assert register.closing_balance == 1_002_000
        assert register.account.name == "Bank - Main Operating"

    def test_unknown_account(self, reporting_service, seeded_chart):
        with pytest.raises(AccountNotFoundError):
            reporting_service.get_general_ledger("9999")

    def test_start_after_end(self, reporting_service, seeded_chart):
        with pytest.raises(ValueError):
            reporting_service.get_general_ledger("1110", JUNE_END, JUNE_START)


class TestRenderToDict:

    def test_balance_sheet_is_json_ready(self, reporting_service, june_activity):
        data = render_to_dict(reporting_service.get_balance_sheet(JUNE_END))

        assert data["metadata"]["report_type"] == "balance_sheet"
        assert data["metadata"]["as_of_date"] == "2024-06-30"
        assert data["current_assets"]["lines"][0]["account_code"] == "1110"
        assert data["is_balanced"] is True
        assert json.loads(json.dumps(data)) == data
