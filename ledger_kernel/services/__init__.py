"""Kernel services (command side). Services flush; callers commit."""

from ledger_kernel.services.account_service import AccountService, BalanceCorrection
from ledger_kernel.services.journal_service import JournalService, SourcePosting
from ledger_kernel.services.module_posting_service import (
    ModulePostingService,
    PostingResult,
    PostingStatus,
)
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.reversal_service import ReversalResult, ReversalService

__all__ = [
    "AccountService",
    "BalanceCorrection",
    "JournalService",
    "SourcePosting",
    "ModulePostingService",
    "PostingResult",
    "PostingStatus",
    "PeriodService",
    "ReversalResult",
    "ReversalService",
]
