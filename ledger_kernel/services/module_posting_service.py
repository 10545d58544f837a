"""
ModulePostingService -- posting entry point for the sub-ledger modules.

Responsibility:
    Runs a sub-ledger operation (persist a document, post its entry, update
    its status) as one atomic unit inside a SAVEPOINT and turns kernel
    errors into a ``PostingResult``.  Every sub-ledger module (AP, AR,
    expenses, assets, payroll) enters the kernel through this service.

Architecture position:
    Kernel > Services -- imperative shell.  Delegates posting to
    JournalService and ReversalService.

Posting flow:
    run(operation, work)
      1. Open a SAVEPOINT.
      2. work() persists the document and calls post()/reverse_source().
      3. LedgerError -> savepoint rolled back, failure PostingResult.
      4. Success -> PostingResult from work(); commit when auto_commit.

Invariants enforced:
    - Atomicity: a document and its journal entry are written together
      or not at all.
    - Idempotency: post() goes through JournalService.post_for_source, so
      a second post of the same source yields ALREADY_POSTED.
    - Zero-amount lines are dropped before validation.

Failure modes (as PostingStatus):
    - PERIOD_CLOSED / INVALID_PERIOD
    - VALIDATION_FAILED
    - NOT_FOUND
    - INVALID_STATE
    - INSUFFICIENT_FUNDS
    - POSTING_FAILED (any other LedgerError)
    Non-ledger exceptions (database errors) propagate.

Audit relevance:
    Every operation is logged with its name, status and transaction id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Sequence

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import LineSpec, SourceRef
from ledger_kernel.domain.validation import drop_zero_lines
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    EntryAlreadyReversedError,
    EntryNotEditableError,
    EntryNotFoundError,
    EntryNotPostedError,
    InsufficientFundsError,
    InvalidPeriodError,
    LedgerError,
    SourceDocumentNotFoundError,
    SourceDocumentStateError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.reversal_service import ReversalService

logger = get_logger("services.module_posting")


class PostingStatus(str, Enum):
    """Status of a module posting operation."""

    POSTED = "posted"
    ALREADY_POSTED = "already_posted"
    REVERSED = "reversed"
    COMPLETED = "completed"
    PERIOD_CLOSED = "period_closed"
    INVALID_PERIOD = "invalid_period"
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    POSTING_FAILED = "posting_failed"


_SUCCESS = frozenset(
    {
        PostingStatus.POSTED,
        PostingStatus.ALREADY_POSTED,
        PostingStatus.REVERSED,
        PostingStatus.COMPLETED,
    }
)

# Most specific first
_ERROR_STATUS: tuple[tuple[type[LedgerError], PostingStatus], ...] = (
    (ClosedPeriodError, PostingStatus.PERIOD_CLOSED),
    (InvalidPeriodError, PostingStatus.INVALID_PERIOD),
    (InsufficientFundsError, PostingStatus.INSUFFICIENT_FUNDS),
    (SourceDocumentNotFoundError, PostingStatus.NOT_FOUND),
    (EntryNotFoundError, PostingStatus.NOT_FOUND),
    (SourceDocumentStateError, PostingStatus.INVALID_STATE),
    (EntryAlreadyReversedError, PostingStatus.INVALID_STATE),
    (EntryNotPostedError, PostingStatus.INVALID_STATE),
    (EntryNotEditableError, PostingStatus.INVALID_STATE),
    (ValidationError, PostingStatus.VALIDATION_FAILED),
)


@dataclass(frozen=True)
class PostingResult:
    """
    Result of a sub-ledger operation.

    ``document_id`` is the sub-ledger row the operation created or touched;
    ``journal_entry_ids`` lists the entries posted or reversed.
    """

    status: PostingStatus
    transaction_id: str | None = None
    document_id: int | None = None
    journal_entry_ids: tuple[int, ...] = ()
    error_code: str | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status in _SUCCESS

    @property
    def journal_entry_id(self) -> int | None:
        return self.journal_entry_ids[0] if self.journal_entry_ids else None

    @classmethod
    def from_error(cls, exc: LedgerError, transaction_id: str | None = None) -> PostingResult:
        status = PostingStatus.POSTING_FAILED
        for exc_type, mapped in _ERROR_STATUS:
            if isinstance(exc, exc_type):
                status = mapped
                break
        return cls(
            status=status,
            transaction_id=transaction_id,
            error_code=exc.code,
            message=str(exc),
        )

    def with_document(self, document_id: int) -> PostingResult:
        return PostingResult(
            status=self.status,
            transaction_id=self.transaction_id,
            document_id=document_id,
            journal_entry_ids=self.journal_entry_ids,
            error_code=self.error_code,
            message=self.message,
        )


class ModulePostingService:
    """
    Atomic runner and posting facade for sub-ledger modules.

    Contract:
        ``run`` executes a unit of work and never raises LedgerError; the
        error is returned as a failed PostingResult with nothing written.

    Guarantees:
        - auto_commit=False (default): flush only; caller commits.
        - auto_commit=True: commit on success, rollback on unexpected error.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = False,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._periods = PeriodService(session, self._clock)
        self._journal = JournalService(session, self._clock, self._periods)
        self._reversals = ReversalService(session, self._clock, self._journal)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def periods(self) -> PeriodService:
        return self._periods

    @property
    def journal(self) -> JournalService:
        return self._journal

    def run(
        self,
        operation: str,
        work: Callable[[], PostingResult],
        transaction_id: str | None = None,
    ) -> PostingResult:
        """
        Execute ``work`` atomically.

        Returns:
            work()'s result, or a failure result if it raised LedgerError.
        """
        with LogContext.bind(transaction_id=transaction_id):
            try:
                with self._session.begin_nested():
                    result = work()
            except LedgerError as exc:
                logger.warning(
                    "module_operation_rejected",
                    extra={"operation": operation, "error_code": exc.code},
                    exc_info=True,
                )
                return PostingResult.from_error(exc, transaction_id)
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                raise

            if self._auto_commit:
                self._session.commit()

            logger.info(
                "module_operation_completed",
                extra={
                    "operation": operation,
                    "status": result.status.value,
                    "result_transaction_id": result.transaction_id,
                    "journal_entry_ids": list(result.journal_entry_ids),
                },
            )
            return result

    def post(
        self,
        source: SourceRef,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        reference: str | None = None,
    ) -> PostingResult:
        """
        Post a source document's entry (zero lines dropped), at most once.

        Raises:
            LedgerError subclasses; call inside ``run``.
        """
        with LogContext.bind(source_kind=source.kind):
            posting = self._journal.post_for_source(
                source,
                entry_date,
                description,
                drop_zero_lines(lines),
                reference=reference,
            )
        return PostingResult(
            status=(
                PostingStatus.ALREADY_POSTED if posting.already_posted else PostingStatus.POSTED
            ),
            transaction_id=source.transaction_id,
            journal_entry_ids=(posting.entry.id,),
        )

    def reverse_source(
        self,
        source: SourceRef,
        reason: str,
        reversal_date: date | None = None,
    ) -> PostingResult:
        """
        Reverse a source document's entry if one exists and is not reversed.

        Returns:
            REVERSED with the reversal id, or COMPLETED when there was
            nothing to reverse.
        """
        reversal = self._reversals.reverse_by_transaction_id(
            source.transaction_id, reason, reversal_date
        )
        if reversal is None:
            return PostingResult(PostingStatus.COMPLETED, transaction_id=source.transaction_id)
        return PostingResult(
            status=PostingStatus.REVERSED,
            transaction_id=source.transaction_id,
            journal_entry_ids=(reversal.reversal_entry_id,),
        )
