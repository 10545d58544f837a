"""
Financial Reporting Domain Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for the report outputs: trial balance,
balance sheet and profit & loss.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by
``statements.py`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields are integers in minor units.

Audit relevance
---------------
``ReportMetadata`` records the entity, parameters and generation timestamp
so a report can be reproduced from the journal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class ReportType(str, Enum):
    """Types of financial reports."""

    TRIAL_BALANCE = "trial_balance"
    BALANCE_SHEET = "balance_sheet"
    PROFIT_AND_LOSS = "profit_and_loss"


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every financial report."""

    report_type: ReportType
    entity_name: str
    currency: str
    as_of_date: date | None
    generated_at: str  # ISO timestamp from the injected clock
    period_start: date | None = None
    period_end: date | None = None
    exclude_reversals: bool = True


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLineItem:
    """A single account line."""

    account_code: str
    account_name: str
    account_type: str
    debit_balance: int
    credit_balance: int
    net_balance: int  # natural sign


@dataclass(frozen=True)
class TrialBalanceReport:
    """Per-account debit and credit totals.  Balanced when the totals agree."""

    metadata: ReportMetadata
    lines: tuple[TrialBalanceLineItem, ...]
    total_debits: int
    total_credits: int
    is_balanced: bool


# =========================================================================
# Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class StatementSection:
    """A labelled group of account lines (e.g. Current Assets)."""

    label: str
    lines: tuple[TrialBalanceLineItem, ...]
    total: int


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Classified balance sheet.

    ``total_equity`` includes ``current_earnings`` (revenue less expense to
    date, since nothing is ever closed into retained earnings).
    ``is_balanced`` holds when ``|difference| <= tolerance``.
    """

    metadata: ReportMetadata

    current_assets: StatementSection
    non_current_assets: StatementSection
    total_assets: int

    current_liabilities: StatementSection
    non_current_liabilities: StatementSection
    total_liabilities: int

    equity: StatementSection
    current_earnings: int
    total_equity: int

    total_liabilities_and_equity: int
    difference: int  # total_assets - total_liabilities_and_equity
    tolerance: int
    is_balanced: bool


# =========================================================================
# Profit & Loss
# =========================================================================


@dataclass(frozen=True)
class ProfitAndLossReport:
    """
    Multi-step profit & loss.

    Revenue - COGS = Gross Profit - Operating Expenses = Operating Income
    - Other Expenses = Net Income.
    """

    metadata: ReportMetadata

    revenue: StatementSection
    cogs: StatementSection
    gross_profit: int
    operating_expenses: StatementSection
    operating_income: int
    other_expenses: StatementSection
    net_income: int

    @property
    def total_revenue(self) -> int:
        return self.revenue.total

    @property
    def total_expenses(self) -> int:
        return self.cogs.total + self.operating_expenses.total + self.other_expenses.total
