"""Domain models for the ledger kernel."""

from ledger_kernel.models.account import AccountType, GLAccount, NormalBalance
from ledger_kernel.models.journal import EntryType, JournalEntry, JournalLine
from ledger_kernel.models.settings import FINANCIALS_KEY, LedgerSettings

__all__ = [
    "AccountType",
    "NormalBalance",
    "GLAccount",
    "EntryType",
    "JournalEntry",
    "JournalLine",
    "FINANCIALS_KEY",
    "LedgerSettings",
]
