"""
Typed exception hierarchy for the ledger kernel.

Every error raised by the kernel, the sub-ledger modules and the integrity
tools is a ``LedgerError``.  Callers catch by type, never by message text.

Rules:
  1. Every exception class has a ``code`` class attribute (machine-readable,
     stable, API-safe).
  2. Every exception stores its context as attributes so it survives
     logging and serialization (see ``StructuredFormatter``, which emits
     them as ``exc_*`` fields).
  3. Validation errors are raised before the first write; a caller that
     catches one can assume nothing was persisted.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- ValidationError
    |   +-- EmptyEntryError
    |   +-- InvalidLineError
    |   +-- UnbalancedEntryError
    |   +-- AccountNotFoundError
    |   +-- AccountInactiveError
    |   +-- DuplicateAccountError
    |   +-- InvalidSourceDocumentError
    |
    +-- PostingError
    |   +-- AlreadyPostedError
    |   +-- EntryNotEditableError
    |
    +-- PeriodError
    |   +-- ClosedPeriodError
    |   +-- TrialBalanceMismatchError
    |   +-- InvalidPeriodError
    |
    +-- ReversalError
    |   +-- EntryNotFoundError
    |   +-- EntryNotPostedError
    |   +-- EntryAlreadyReversedError
    |
    +-- SourceDocumentError
        +-- SourceDocumentNotFoundError
        +-- SourceDocumentStateError
        +-- InsufficientFundsError

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        journal.create_journal_entry(...)
    except ClosedPeriodError as e:
        notify_user(f"Books are locked through {e.lock_date}")
    except ValidationError as e:
        return {"error": e.code, "message": str(e)}

Idempotent posting never raises ``AlreadyPostedError`` from
``JournalService.post_for_source``; the existing entry is returned instead.
The error exists for callers that require a fresh posting.
"""

from datetime import date


class LedgerError(Exception):
    """
    Base exception for all ledger errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "LEDGER_ERROR"


# Validation


class ValidationError(LedgerError):
    """Input was rejected before anything was written."""

    code: str = "VALIDATION_ERROR"


class EmptyEntryError(ValidationError):
    """A journal entry needs at least two lines."""

    code: str = "EMPTY_ENTRY"

    def __init__(self, line_count: int):
        self.line_count = line_count
        super().__init__(
            f"Journal entry requires at least 2 lines, got {line_count}"
        )


class InvalidLineError(ValidationError):
    """A journal line has a negative, non-integer or two-sided amount."""

    code: str = "INVALID_LINE"

    def __init__(self, line_no: int, reason: str):
        self.line_no = line_no
        self.reason = reason
        super().__init__(f"Invalid journal line {line_no}: {reason}")


class UnbalancedEntryError(ValidationError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: int, credits: int):
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Unbalanced entry: debits={debits}, credits={credits}"
        )


class AccountNotFoundError(ValidationError):
    """Account code does not exist in the chart of accounts."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account not found: {account_code}")


class AccountInactiveError(ValidationError):
    """Account is deactivated and cannot receive postings."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account is inactive: {account_code}")


class DuplicateAccountError(ValidationError):
    """Account code already exists in the chart of accounts."""

    code: str = "DUPLICATE_ACCOUNT"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account already exists: {account_code}")


class InvalidSourceDocumentError(ValidationError):
    """A sub-ledger document failed validation (amounts, dates, fields)."""

    code: str = "INVALID_SOURCE_DOCUMENT"

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(f"Invalid {kind}: {reason}")


# Posting


class PostingError(LedgerError):
    """Base exception for posting-related errors."""

    code: str = "POSTING_ERROR"


class AlreadyPostedError(PostingError):
    """A journal entry already exists for this transaction id."""

    code: str = "ALREADY_POSTED"

    def __init__(self, transaction_id: str, journal_entry_id: int):
        self.transaction_id = transaction_id
        self.journal_entry_id = journal_entry_id
        super().__init__(
            f"Transaction {transaction_id} already posted as journal entry "
            f"{journal_entry_id}"
        )


class EntryNotEditableError(PostingError):
    """Only manual, unreversed, non-reversal entries may be edited."""

    code: str = "ENTRY_NOT_EDITABLE"

    def __init__(self, journal_entry_id: int, reason: str):
        self.journal_entry_id = journal_entry_id
        self.reason = reason
        super().__init__(
            f"Journal entry {journal_entry_id} cannot be edited: {reason}"
        )


# Periods


class PeriodError(LedgerError):
    """Base exception for period-lock errors."""

    code: str = "PERIOD_ERROR"


class ClosedPeriodError(PeriodError):
    """Entry date falls on or before the period lock date."""

    code: str = "CLOSED_PERIOD"

    def __init__(self, entry_date: date, lock_date: date):
        self.entry_date = entry_date
        self.lock_date = lock_date
        super().__init__(
            f"Period is closed: {entry_date.isoformat()} is on or before the "
            f"lock date {lock_date.isoformat()}"
        )


class TrialBalanceMismatchError(PeriodError):
    """Total debits and credits disagree; the period cannot be closed."""

    code: str = "TRIAL_BALANCE_MISMATCH"

    def __init__(self, debits: int, credits: int):
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Trial balance does not balance: debits={debits}, "
            f"credits={credits}"
        )


class InvalidPeriodError(PeriodError):
    """Requested period (year/month or lock date) is out of range."""

    code: str = "INVALID_PERIOD"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid period: {reason}")


# Reversals


class ReversalError(LedgerError):
    """Base exception for reversal errors."""

    code: str = "REVERSAL_ERROR"


class EntryNotFoundError(ReversalError):
    """Journal entry does not exist."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, journal_entry_id: int):
        self.journal_entry_id = journal_entry_id
        super().__init__(f"Journal entry not found: {journal_entry_id}")


class EntryNotPostedError(ReversalError):
    """Only posted, non-reversal entries can be reversed."""

    code: str = "ENTRY_NOT_POSTED"

    def __init__(self, journal_entry_id: int, reason: str):
        self.journal_entry_id = journal_entry_id
        self.reason = reason
        super().__init__(
            f"Journal entry {journal_entry_id} cannot be reversed: {reason}"
        )


class EntryAlreadyReversedError(ReversalError):
    """Journal entry already has a reversal."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, journal_entry_id: int, reversal_entry_id: int):
        self.journal_entry_id = journal_entry_id
        self.reversal_entry_id = reversal_entry_id
        super().__init__(
            f"Journal entry {journal_entry_id} already reversed by "
            f"{reversal_entry_id}"
        )


# Sub-ledger source documents


class SourceDocumentError(LedgerError):
    """Base exception for sub-ledger document errors."""

    code: str = "SOURCE_DOCUMENT_ERROR"


class SourceDocumentNotFoundError(SourceDocumentError):
    """Source document (bill, invoice, asset, ...) does not exist."""

    code: str = "SOURCE_DOCUMENT_NOT_FOUND"

    def __init__(self, kind: str, key: str | int):
        self.kind = kind
        self.key = str(key)
        super().__init__(f"{kind} not found: {key}")


class SourceDocumentStateError(SourceDocumentError):
    """Document is in the wrong state for the requested operation."""

    code: str = "SOURCE_DOCUMENT_STATE"

    def __init__(self, kind: str, key: str | int, status: str, expected: str):
        self.kind = kind
        self.key = str(key)
        self.status = status
        self.expected = expected
        super().__init__(
            f"{kind} {key} is {status}, expected {expected}"
        )


class InsufficientFundsError(SourceDocumentError):
    """Paying account (petty cash, bank) does not hold enough funds."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, account_code: str, available: int, required: int):
        self.account_code = account_code
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient funds in {account_code}: available={available}, "
            f"required={required}"
        )
