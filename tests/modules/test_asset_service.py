"""
Tests for the fixed-asset module: registration, straight-line
depreciation arithmetic and the monthly batch run.
"""

from datetime import date

import pytest

from ledger_kernel.exceptions import InvalidSourceDocumentError
from ledger_kernel.services.module_posting_service import PostingStatus
from ledger_modules.assets.models import AssetStatus, AssetType
from ledger_modules.assets.profiles import (
    in_service,
    monthly_depreciation,
    parse_period_key,
    period_end,
    period_key,
    validate_period,
)


@pytest.fixture
def press(asset_service):
    """A 60,000.00 press with a five-year life, bought mid-January."""
    result = asset_service.register_asset(
        "Hydraulic press", 6_000_000, 60, date(2024, 1, 15), asset_type=AssetType.MACHINERY
    )
    assert result.status == PostingStatus.COMPLETED
    return result


class TestDepreciationArithmetic:

    def test_straight_line(self):
        assert monthly_depreciation(6_000_000, 0, 60, 0) == 100_000

    def test_floor_division(self):
        assert monthly_depreciation(1_000, 0, 3, 0) == 333

    def test_capped_at_remaining(self):
        assert monthly_depreciation(1_000, 0, 3, 999) == 1
        assert monthly_depreciation(1_000, 100, 3, 900) == 0

    def test_salvage_at_or_above_cost(self):
        assert monthly_depreciation(1_000, 1_000, 12, 0) == 0

    def test_invalid_life(self):
        with pytest.raises(ValueError):
            monthly_depreciation(1_000, 0, 0, 0)

    def test_in_service_from_purchase_month(self):
        assert not in_service(date(2024, 3, 31), 2024, 2)
        assert in_service(date(2024, 3, 31), 2024, 3)
        assert in_service(date(2023, 12, 1), 2024, 1)

    @pytest.mark.parametrize("year, month", [(1999, 1), (2101, 1), (2024, 0), (2024, 13)])
    def test_invalid_period(self, year, month):
        with pytest.raises(InvalidSourceDocumentError):
            validate_period(year, month)

    def test_period_keys(self):
        assert period_key(2024, 3) == "2024-03"
        assert parse_period_key("2024-03") == (2024, 3)
        assert parse_period_key("March") is None
        assert period_end(2024, 2) == date(2024, 2, 29)


class TestRegisterAsset:

    def test_register_without_acquisition_posting(self, asset_service, press, journal_selector):
        asset = asset_service.get_asset(press.document_id)

        assert asset.asset_number == "FA-2024-001"
        assert asset.status == AssetStatus.ACTIVE
        assert asset.asset_type == AssetType.MACHINERY
        assert asset.asset_account_code == "1510"
        assert asset.depreciation_expense_account_code == "5500"
        assert asset.accumulated_depreciation_account_code == "1610"
        assert asset.book_value == 6_000_000
        assert journal_selector.list_entries() == []

    def test_register_with_acquisition_posting(self, asset_service, balance_of):
        result = asset_service.register_asset(
            "Forklift",
            2_400_000,
            48,
            date(2024, 2, 1),
            asset_number="FL-1",
            acquisition_credit_account_code="2100",
        )

        assert result.status == PostingStatus.POSTED
        assert result.transaction_id == f"asset-{result.document_id}"
        assert balance_of("1510") == 2_400_000
        assert balance_of("2100") == 2_400_000
        assert asset_service.get_asset(result.document_id).asset_number == "FL-1"

    def test_salvage_above_cost_rejected(self, asset_service):
        result = asset_service.register_asset("Scrap", 100, 12, date(2024, 1, 1), salvage_value=101)
        assert result.status == PostingStatus.VALIDATION_FAILED

    def test_zero_life_rejected(self, asset_service):
        result = asset_service.register_asset("Instant", 100, 0, date(2024, 1, 1))
        assert result.status == PostingStatus.VALIDATION_FAILED

    def test_unknown_account_rejected(self, asset_service):
        result = asset_service.register_asset(
            "Lathe", 100, 12, date(2024, 1, 1), asset_account_code="1999"
        )
        assert result.status == PostingStatus.VALIDATION_FAILED
        assert result.error_code == "ACCOUNT_NOT_FOUND"


class TestMonthlyDepreciation:

    def test_single_run(self, asset_service, press, balance_of, journal_selector, captured_logs):
        result = asset_service.run_monthly_depreciation(2024, 1)

        assert result.status == PostingStatus.POSTED
        assert result.transaction_id == "dep-2024-01"
        entry = journal_selector.find_by_transaction_id("dep-2024-01")
        assert entry.entry_date == date(2024, 1, 1)
        assert [(l.account_code, l.debit, l.credit) for l in entry.lines] == [
            ("5500", 100_000, 0),
            ("1610", 0, 100_000),
        ]
        assert balance_of("5500") == 100_000
        assert balance_of("1610") == -100_000

        records = asset_service.list_depreciation(2024, 1)
        assert len(records) == 1
        assert records[0].journal_entry_id == entry.id
        assert records[0].book_value == 5_900_000

        completed = [r for r in captured_logs() if r["message"] == "depreciation_run_completed"]
        assert completed[0]["processed_count"] == 1
        assert completed[0]["total_amount"] == 100_000

    def test_full_year(self, asset_service, press, balance_of):
        for month in range(1, 13):
            assert asset_service.run_monthly_depreciation(2024, month).status == (
                PostingStatus.POSTED
            )

        asset = asset_service.get_asset(press.document_id)
        assert asset.accumulated_depreciation == 1_200_000
        assert asset.book_value == 4_800_000
        assert balance_of("1610") == -1_200_000
        assert balance_of("5500") == 1_200_000

    def test_rerun_is_already_posted(self, asset_service, press, balance_of):
        first = asset_service.run_monthly_depreciation(2024, 3)
        second = asset_service.run_monthly_depreciation(2024, 3)

        assert second.status == PostingStatus.ALREADY_POSTED
        assert second.journal_entry_id == first.journal_entry_id
        assert balance_of("1610") == -100_000
        assert len(asset_service.list_depreciation(2024, 3)) == 1

    def test_before_purchase_month(self, asset_service, press, journal_selector):
        result = asset_service.run_monthly_depreciation(2023, 12)
        assert result.status == PostingStatus.COMPLETED
        assert journal_selector.list_entries() == []

    def test_asset_becomes_fully_depreciated(self, asset_service, balance_of):
        result = asset_service.register_asset(
            "Laptop", 1_000, 3, date(2024, 1, 1), salvage_value=100
        )
        for month in (1, 2, 3, 4):
            asset_service.run_monthly_depreciation(2024, month)

        asset = asset_service.get_asset(result.document_id)
        assert asset.accumulated_depreciation == 900
        assert asset.book_value == 100
        assert asset.status == AssetStatus.FULLY_DEPRECIATED
        assert balance_of("1610") == -900
        assert asset_service.list_depreciation(2024, 4) == []

    def test_batch_groups_account_pairs(self, asset_service, press, journal_selector):
        asset_service.register_asset("Van", 1_200_000, 24, date(2024, 1, 2))
        result = asset_service.run_monthly_depreciation(2024, 1)

        entry = journal_selector.get_entry(result.journal_entry_id)
        assert len(entry.lines) == 2
        assert entry.total_debits == 150_000

    @pytest.mark.parametrize("year, month", [(2024, 13), (1999, 6)])
    def test_invalid_period(self, asset_service, press, year, month):
        result = asset_service.run_monthly_depreciation(year, month)
        assert result.status == PostingStatus.VALIDATION_FAILED
        assert result.error_code == "INVALID_SOURCE_DOCUMENT"

    def test_closed_period(self, asset_service, press, period_service):
        period_service.close_fiscal_period(date(2024, 3, 31))

        result = asset_service.run_monthly_depreciation(2024, 3)

        assert result.status == PostingStatus.PERIOD_CLOSED
        assert asset_service.list_depreciation(2024, 3) == []
        assert asset_service.get_asset(press.document_id).accumulated_depreciation == 0

    def test_preview_writes_nothing(self, asset_service, press):
        charges = asset_service.preview_depreciation(2024, 2)
        assert [c.amount for c in charges] == [100_000]
        assert asset_service.list_depreciation(2024, 2) == []
