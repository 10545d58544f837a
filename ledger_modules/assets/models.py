"""
Fixed Assets Domain Models (``ledger_modules.assets.models``).

Responsibility
--------------
Frozen value objects for capitalised assets, their per-period
straight-line depreciation records, and the summary of a monthly run.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.

Invariants enforced
-------------------
* ``0 <= salvage_value <= cost``; ``useful_life_months > 0``.
* ``accumulated_depreciation <= cost - salvage_value``, so book value
  never drops below salvage.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class AssetStatus(str, Enum):
    ACTIVE = "ACTIVE"
    FULLY_DEPRECIATED = "FULLY_DEPRECIATED"
    DISPOSED = "DISPOSED"


class AssetType(str, Enum):
    MACHINERY = "MACHINERY"
    VEHICLE = "VEHICLE"
    BUILDING = "BUILDING"
    EQUIPMENT = "EQUIPMENT"
    OTHER = "OTHER"


@dataclass(frozen=True)
class FixedAsset:
    """A capitalised asset depreciated straight-line over its useful life."""

    id: int
    asset_number: str
    name: str
    asset_type: AssetType
    cost: int
    salvage_value: int
    useful_life_months: int
    purchase_date: date
    accumulated_depreciation: int
    status: AssetStatus
    asset_account_code: str
    depreciation_expense_account_code: str
    accumulated_depreciation_account_code: str

    @property
    def book_value(self) -> int:
        return self.cost - self.accumulated_depreciation

    @property
    def depreciable_amount(self) -> int:
        return self.cost - self.salvage_value

    @property
    def remaining_depreciable(self) -> int:
        return max(0, self.depreciable_amount - self.accumulated_depreciation)


@dataclass(frozen=True)
class DepreciationRecord:
    """One asset's depreciation for one (year, month)."""

    asset_id: int
    period_year: int
    period_month: int
    amount: int
    accumulated_before: int
    accumulated_after: int
    book_value: int
    journal_entry_id: int | None = None


@dataclass(frozen=True)
class DepreciationCharge:
    """A computed (not yet recorded) depreciation charge for one asset."""

    asset_id: int
    amount: int
    expense_account_code: str
    accumulated_account_code: str
    accumulated_before: int
    cost: int
    salvage_value: int

    @property
    def accumulated_after(self) -> int:
        return self.accumulated_before + self.amount

    @property
    def book_value_after(self) -> int:
        return self.cost - self.accumulated_after

    @property
    def completes_asset(self) -> bool:
        return self.accumulated_after >= self.cost - self.salvage_value

