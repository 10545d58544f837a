"""
Fixed Assets posting profiles and depreciation arithmetic.

Profiles:
    acquisition_lines   -- Dr fixed-asset account / Cr AP or bank
    depreciation_lines  -- per (expense, accumulated) account pair:
                           Dr Depreciation Expense / Cr Accumulated Depreciation

Depreciation is straight-line on integer minor units:
``floor((cost - salvage) / useful_life_months)`` per month, capped at the
amount still depreciable, so book value never falls below salvage.
"""

from calendar import monthrange
from collections import defaultdict
from datetime import date
from typing import Iterable, Protocol

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.exceptions import InvalidSourceDocumentError

MODULE_NAME = "assets"

ACQUISITION = "asset"
DEPRECIATION = "dep"

MIN_YEAR = 2000
MAX_YEAR = 2100


def validate_period(year: int, month: int) -> None:
    """
    Raises:
        InvalidSourceDocumentError: year outside 2000-2100 or month outside 1-12.
    """
    if not isinstance(year, int) or isinstance(year, bool) or not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidSourceDocumentError(
            DEPRECIATION, f"Invalid year {year!r}: must be between {MIN_YEAR}-{MAX_YEAR}"
        )
    if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= 12:
        raise InvalidSourceDocumentError(
            DEPRECIATION, f"Invalid month {month!r}: must be between 1-12"
        )


def period_key(year: int, month: int) -> str:
    """Source key of a depreciation period (``2024-03``)."""
    return f"{year:04d}-{month:02d}"


def parse_period_key(key: str) -> tuple[int, int] | None:
    year, sep, month = key.partition("-")
    if not sep or not year.isdigit() or not month.isdigit():
        return None
    return int(year), int(month)


def period_start(year: int, month: int) -> date:
    return date(year, month, 1)


def period_end(year: int, month: int) -> date:
    return date(year, month, monthrange(year, month)[1])


def monthly_depreciation(
    cost: int,
    salvage_value: int,
    useful_life_months: int,
    accumulated_depreciation: int,
) -> int:
    """
    Straight-line charge for one month, capped at the remaining depreciable
    amount.  Zero when the asset is fully depreciated or cost <= salvage.

    Raises:
        ValueError: useful_life_months <= 0.
    """
    if useful_life_months <= 0:
        raise ValueError("useful_life_months must be greater than 0")
    depreciable = cost - salvage_value
    if depreciable <= 0:
        return 0
    remaining = max(0, depreciable - accumulated_depreciation)
    return min(depreciable // useful_life_months, remaining)


def in_service(purchase_date: date, year: int, month: int) -> bool:
    """An asset depreciates from its purchase month onwards."""
    return (year, month) >= (purchase_date.year, purchase_date.month)


def acquisition_lines(
    cost: int,
    asset_account_code: str,
    credit_account_code: str,
) -> tuple[LineSpec, ...]:
    return (
        LineSpec.dr(asset_account_code, cost, "Asset acquired"),
        LineSpec.cr(credit_account_code, cost, "Asset acquired"),
    )


class Charge(Protocol):
    """Anything carrying an account pair and an amount (charges, stored records)."""

    amount: int
    expense_account_code: str
    accumulated_account_code: str


def depreciation_lines(charges: Iterable[Charge]) -> tuple[LineSpec, ...]:
    """One debit/credit pair per (expense, accumulated) account pair."""
    totals: dict[tuple[str, str], int] = defaultdict(int)
    for charge in charges:
        totals[(charge.expense_account_code, charge.accumulated_account_code)] += charge.amount

    lines: list[LineSpec] = []
    for (expense_code, accumulated_code), amount in sorted(totals.items()):
        lines.append(LineSpec.dr(expense_code, amount, "Depreciation expense"))
        lines.append(LineSpec.cr(accumulated_code, amount, "Accumulated depreciation"))
    return tuple(lines)
