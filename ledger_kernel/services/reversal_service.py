"""
ReversalService -- journal entry reversals.

Responsibility:
    Validates reversal preconditions and posts the mirror entry (every line
    with debit and credit swapped) through JournalService, linked to the
    original by reversal_of_id.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes JournalService and
    PeriodService.

Invariants enforced:
    - The original entry is never mutated; reversal state is derived from
      the reversal_of_id linkage.
    - At most one reversal per entry (UNIQUE reversal_of_id).  A concurrent
      second reversal loses the race and raises EntryAlreadyReversedError.
    - The reversal date is in an open period.
    - Original + reversal net every account to zero.

Failure modes:
    - EntryNotFoundError: No entry with that id.
    - EntryNotPostedError: Entry is unposted or is itself a reversal.
    - EntryAlreadyReversedError: A reversal entry already exists.
    - ClosedPeriodError: Reversal date is in a closed period.

Audit relevance:
    Every reversal logs ``journal_entry_reversed`` with both entry ids and
    the reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import JournalEntryRecord, LineSpec
from ledger_kernel.exceptions import (
    EntryAlreadyReversedError,
    EntryNotFoundError,
    EntryNotPostedError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import EntryType, JournalEntry
from ledger_kernel.services.journal_service import JournalService

logger = get_logger("services.reversal")


@dataclass(frozen=True)
class ReversalResult:
    """Immutable result of a successful reversal."""

    original_entry_id: int
    reversal_entry_id: int
    reversal_date: date
    reversal: JournalEntryRecord


class ReversalService:
    """
    Posts reversal entries.

    Contract:
        ``reverse_journal_entry(id)`` creates a REVERSAL entry dated at the
        clock's current date (or the supplied date) with the original's lines
        mirrored.

    Non-goals:
        - Does NOT call session.commit() -- caller controls boundaries.
        - Does NOT handle partial (line-level) reversals.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        journal_service: JournalService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._journal = journal_service or JournalService(session, self._clock)

    def reverse_journal_entry(
        self,
        entry_id: int,
        reason: str | None = None,
        reversal_date: date | None = None,
    ) -> ReversalResult:
        """
        Reverse a posted entry.

        Preconditions:
            - entry_id references a posted, non-reversal entry that has not
              been reversed.
            - reversal_date (default: today per the clock) is open.

        Postconditions:
            - A new posted REVERSAL entry exists with reversal_of_id set and
              reference ``REV-JE{id}``.
            - Cached balances of every touched account are back to their
              values before the original was posted (plus any other
              activity).

        Raises:
            EntryNotFoundError, EntryNotPostedError,
            EntryAlreadyReversedError, ClosedPeriodError.
        """
        original = self._load_and_validate(entry_id)
        effective_date = reversal_date or self._clock.today()

        lines = [
            LineSpec(
                account_code=line.account_code,
                debit=line.credit,
                credit=line.debit,
                description=line.description,
            )
            for line in original.lines
        ]
        description = f"Reversal of JE #{original.id}: {reason or original.description}"

        try:
            reversal = self._journal.write_entry(
                entry_date=effective_date,
                description=description,
                lines=lines,
                reference=f"REV-JE{original.id}",
                transaction_id=None,
                source=None,
                entry_type=EntryType.REVERSAL,
                reversal_of=original,
            )
        except IntegrityError:
            winner = self._existing_reversal(original.id)
            if winner is None:
                raise
            raise EntryAlreadyReversedError(original.id, winner.id) from None

        logger.info(
            "journal_entry_reversed",
            extra={
                "entry_id": original.id,
                "reversal_entry_id": reversal.id,
                "reversal_date": effective_date.isoformat(),
                "reason": reason,
                "original_transaction_id": original.transaction_id,
            },
        )
        return ReversalResult(
            original_entry_id=original.id,
            reversal_entry_id=reversal.id,
            reversal_date=effective_date,
            reversal=JournalEntryRecord.from_model(reversal),
        )

    def reverse_by_transaction_id(
        self,
        transaction_id: str,
        reason: str | None = None,
        reversal_date: date | None = None,
    ) -> ReversalResult | None:
        """
        Reverse the entry of a source document, if it has one.

        Returns:
            The reversal, or None when no entry carries transaction_id or
            it has already been reversed.
        """
        entry = self._session.execute(
            select(JournalEntry).where(JournalEntry.transaction_id == transaction_id)
        ).scalar_one_or_none()
        if entry is None or self._existing_reversal(entry.id) is not None:
            return None
        return self.reverse_journal_entry(entry.id, reason, reversal_date)

    # =========================================================================
    # Internal Implementation
    # =========================================================================

    def _load_and_validate(self, entry_id: int) -> JournalEntry:
        # Row lock serializes concurrent reversals on PostgreSQL
        original = self._session.execute(
            select(JournalEntry).where(JournalEntry.id == entry_id).with_for_update()
        ).scalar_one_or_none()

        if original is None:
            raise EntryNotFoundError(entry_id)
        if original.is_reversal:
            raise EntryNotPostedError(entry_id, "reversal entries cannot be reversed")
        if not original.is_posted:
            raise EntryNotPostedError(entry_id, "entry is not posted")

        existing = self._existing_reversal(entry_id)
        if existing is not None:
            raise EntryAlreadyReversedError(entry_id, existing.id)
        return original

    def _existing_reversal(self, entry_id: int) -> JournalEntry | None:
        return self._session.execute(
            select(JournalEntry).where(JournalEntry.reversal_of_id == entry_id)
        ).scalar_one_or_none()
