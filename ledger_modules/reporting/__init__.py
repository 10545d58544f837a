"""
Financial Reporting Module (``ledger_modules.reporting``).

Read-only statements derived from posted journal lines: trial balance,
classified balance sheet, multi-step profit & loss and the general ledger
account register.
"""

from ledger_modules.reporting.models import (
    BalanceSheetReport,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    StatementSection,
    TrialBalanceLineItem,
    TrialBalanceReport,
)
from ledger_modules.reporting.service import ReportingService
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_profit_and_loss,
    build_trial_balance,
    render_to_dict,
)

__all__ = [
    "BalanceSheetReport",
    "ProfitAndLossReport",
    "ReportMetadata",
    "ReportType",
    "StatementSection",
    "TrialBalanceLineItem",
    "TrialBalanceReport",
    "ReportingService",
    "build_balance_sheet",
    "build_profit_and_loss",
    "build_trial_balance",
    "render_to_dict",
]
