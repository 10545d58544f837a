"""
Journal line validation helpers.

Pure checks with no I/O.  JournalService calls ``validate_lines`` before it
touches the database, so a rejected entry never leaves partial rows.
"""

from __future__ import annotations

from typing import Sequence

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.exceptions import (
    EmptyEntryError,
    InvalidLineError,
    UnbalancedEntryError,
)

MIN_LINES = 2


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_line(line_no: int, line: LineSpec) -> None:
    """Check one line's amounts; raise InvalidLineError on the first problem."""
    if not line.account_code:
        raise InvalidLineError(line_no, "account code is required")
    if not _is_int(line.debit) or not _is_int(line.credit):
        raise InvalidLineError(line_no, "amounts must be integer minor units")
    if line.debit < 0 or line.credit < 0:
        raise InvalidLineError(line_no, "amounts must be non-negative")
    if line.debit > 0 and line.credit > 0:
        raise InvalidLineError(line_no, "a line cannot carry both a debit and a credit")
    if line.debit == 0 and line.credit == 0:
        raise InvalidLineError(line_no, "a line must carry a debit or a credit")


def validate_lines(lines: Sequence[LineSpec]) -> tuple[int, int]:
    """
    Validate a full set of entry lines.

    Postconditions: Returns (total_debits, total_credits), which are equal.

    Raises:
        EmptyEntryError: Fewer than two lines.
        InvalidLineError: A line is malformed (1-based line number).
        UnbalancedEntryError: Debits and credits differ.
    """
    if len(lines) < MIN_LINES:
        raise EmptyEntryError(len(lines))

    for idx, line in enumerate(lines, start=1):
        validate_line(idx, line)

    debits = sum(line.debit for line in lines)
    credits = sum(line.credit for line in lines)
    if debits != credits:
        raise UnbalancedEntryError(debits, credits)
    return debits, credits


def drop_zero_lines(lines: Sequence[LineSpec]) -> list[LineSpec]:
    """Remove lines with no amount; sub-ledger profiles omit zero components."""
    return [line for line in lines if line.debit or line.credit]
