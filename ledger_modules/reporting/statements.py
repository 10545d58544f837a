"""
Statement builders: trial-balance rows in, report dataclasses out.

No session, no clock.  ``ReportingService`` fetches the rows and stamps
the metadata; everything here is a pure function of its arguments, in
integer minor units.
"""

from __future__ import annotations

import dataclasses
from datetime import date
from enum import Enum
from typing import Iterable

from ledger_config.schema import AccountClassification
from ledger_kernel.models.account import AccountType
from ledger_kernel.selectors.ledger_selector import TrialBalanceRow
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    ProfitAndLossReport,
    ReportMetadata,
    StatementSection,
    TrialBalanceLineItem,
    TrialBalanceReport,
)


# Section keys and their printed labels, in statement order.
BALANCE_SHEET_SECTIONS = {
    "current_assets": "Current Assets",
    "non_current_assets": "Non-Current Assets",
    "current_liabilities": "Current Liabilities",
    "non_current_liabilities": "Non-Current Liabilities",
    "equity": "Equity",
}
PROFIT_AND_LOSS_SECTIONS = {
    "revenue": "Revenue",
    "cogs": "Cost of Goods Sold",
    "operating_expenses": "Operating Expenses",
    "other_expenses": "Other Expenses",
}


def to_line_item(row: TrialBalanceRow) -> TrialBalanceLineItem:
    return TrialBalanceLineItem(
        account_code=row.account_code,
        account_name=row.account_name,
        account_type=row.account_type,
        debit_balance=row.debit_total,
        credit_balance=row.credit_total,
        net_balance=row.natural_balance,
    )


def compute_net_income(rows: Iterable[TrialBalanceRow]) -> int:
    """Revenue natural balances less expense natural balances."""
    sign = {AccountType.REVENUE: 1, AccountType.EXPENSE: -1}
    return sum(sign.get(AccountType(row.account_type), 0) * row.natural_balance for row in rows)


def section_key(row: TrialBalanceRow, clf: AccountClassification) -> str:
    """
    Name the statement section an account's row belongs to.

    Account type picks the statement.  Assets and liabilities are current
    when the code matches a configured current prefix; expenses go to cogs
    or other_expenses by prefix and to operating_expenses otherwise.
    """
    code = row.account_code
    account_type = AccountType(row.account_type)
    if account_type == AccountType.ASSET:
        current = clf.matches_prefix(code, clf.current_asset_prefixes)
        return "current_assets" if current else "non_current_assets"
    if account_type == AccountType.LIABILITY:
        current = clf.matches_prefix(code, clf.current_liability_prefixes)
        return "current_liabilities" if current else "non_current_liabilities"
    if account_type == AccountType.EQUITY:
        return "equity"
    if account_type == AccountType.REVENUE:
        return "revenue"
    if clf.matches_prefix(code, clf.cogs_prefixes):
        return "cogs"
    if clf.matches_prefix(code, clf.other_expense_prefixes):
        return "other_expenses"
    return "operating_expenses"


def group_sections(
    rows: Iterable[TrialBalanceRow],
    clf: AccountClassification,
    labels: dict[str, str],
) -> dict[str, StatementSection]:
    """Build one sorted, totalled section per key in ``labels``; other rows are dropped."""
    grouped: dict[str, list[TrialBalanceLineItem]] = {key: [] for key in labels}
    for row in rows:
        key = section_key(row, clf)
        if key in grouped:
            grouped[key].append(to_line_item(row))

    sections = {}
    for key, items in grouped.items():
        lines = tuple(sorted(items, key=lambda item: item.account_code))
        sections[key] = StatementSection(
            label=labels[key], lines=lines, total=sum(line.net_balance for line in lines)
        )
    return sections


# =========================================================================
# Trial balance
# =========================================================================


def build_trial_balance(
    rows: list[TrialBalanceRow],
    metadata: ReportMetadata,
) -> TrialBalanceReport:
    """Trial balance report; balanced when sum(debits) == sum(credits)."""
    lines = tuple(to_line_item(row) for row in sorted(rows, key=lambda r: r.account_code))
    debits = sum(line.debit_balance for line in lines)
    credits = sum(line.credit_balance for line in lines)
    return TrialBalanceReport(
        metadata=metadata,
        lines=lines,
        total_debits=debits,
        total_credits=credits,
        is_balanced=debits == credits,
    )


# =========================================================================
# Balance sheet
# =========================================================================


def build_balance_sheet(
    rows: list[TrialBalanceRow],
    clf: AccountClassification,
    metadata: ReportMetadata,
    tolerance: int = 1,
) -> BalanceSheetReport:
    """
    Classified balance sheet from cumulative rows up to ``as_of``.

    Equity includes current earnings (revenue - expense to date), and
    ``difference = assets - (liabilities + equity)`` must stay within
    ``tolerance`` for the sheet to count as balanced.
    """
    s = group_sections(rows, clf, BALANCE_SHEET_SECTIONS)

    assets = s["current_assets"].total + s["non_current_assets"].total
    liabilities = s["current_liabilities"].total + s["non_current_liabilities"].total
    current_earnings = compute_net_income(rows)
    equity = s["equity"].total + current_earnings
    difference = assets - (liabilities + equity)

    return BalanceSheetReport(
        metadata=metadata,
        current_assets=s["current_assets"],
        non_current_assets=s["non_current_assets"],
        total_assets=assets,
        current_liabilities=s["current_liabilities"],
        non_current_liabilities=s["non_current_liabilities"],
        total_liabilities=liabilities,
        equity=s["equity"],
        current_earnings=current_earnings,
        total_equity=equity,
        total_liabilities_and_equity=liabilities + equity,
        difference=difference,
        tolerance=tolerance,
        is_balanced=abs(difference) <= tolerance,
    )


# =========================================================================
# Profit and loss
# =========================================================================


def build_profit_and_loss(
    rows: list[TrialBalanceRow],
    clf: AccountClassification,
    metadata: ReportMetadata,
) -> ProfitAndLossReport:
    """
    Multi-step P&L over the rows of one period.

    Contra-revenue accounts (sales discounts) carry a negative natural
    balance and reduce revenue.  Balance-sheet rows are ignored.
    """
    s = group_sections(rows, clf, PROFIT_AND_LOSS_SECTIONS)
    gross = s["revenue"].total - s["cogs"].total
    operating = gross - s["operating_expenses"].total

    return ProfitAndLossReport(
        metadata=metadata,
        revenue=s["revenue"],
        cogs=s["cogs"],
        gross_profit=gross,
        operating_expenses=s["operating_expenses"],
        operating_income=operating,
        other_expenses=s["other_expenses"],
        net_income=operating - s["other_expenses"].total,
    )


# =========================================================================
# Rendering
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Plain JSON-ready data from a report: dates become ISO strings, enums
    their values, dataclasses dicts and tuples lists.
    """
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        obj = {field.name: getattr(obj, field.name) for field in dataclasses.fields(obj)}
    if isinstance(obj, dict):
        return {str(key): render_to_dict(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(value) for value in obj]
    return obj
