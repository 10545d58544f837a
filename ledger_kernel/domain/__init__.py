"""Pure domain layer: clock, DTOs and validation."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountInfo,
    JournalEntryRecord,
    JournalLineRecord,
    LineSpec,
    SourceRef,
)
from ledger_kernel.domain.validation import drop_zero_lines, validate_lines

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "LineSpec",
    "SourceRef",
    "JournalEntryRecord",
    "JournalLineRecord",
    "AccountInfo",
    "validate_lines",
    "drop_zero_lines",
]
