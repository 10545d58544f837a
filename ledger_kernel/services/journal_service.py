"""
JournalService -- the single write path for journal entries.

Responsibility:
    Validates, persists and (for manual entries) edits journal entries, and
    keeps every affected account's cached balance in step with the posted
    lines.  Sub-ledger modules post through ``post_for_source`` so that each
    source document is posted at most once.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes PeriodService.
    Used by ReversalService, ModulePostingService and the integrity tools.

Invariants enforced:
    - Balanced entries: sum(debit) == sum(credit), at least two lines, each
      line one-sided with integer amounts.  Checked before any write.
    - Posting targets exist and are active.
    - Period lock: entry dates (old and new, on update) must be open.
    - Cached balance == natural-sign sum of posted lines.  Every insert,
      edit and purge adjusts ``gl_accounts.balance`` by the exact delta with
      an atomic ``balance = balance + delta`` UPDATE.
    - At-most-once per source document: UNIQUE(transaction_id).  The insert
      runs inside a SAVEPOINT; losing a race rolls back only the savepoint
      and the winner's entry is returned.
    - Flush-only: never commits or rolls back the caller's transaction.

Failure modes:
    - EmptyEntryError / InvalidLineError / UnbalancedEntryError.
    - AccountNotFoundError / AccountInactiveError.
    - ClosedPeriodError.
    - EntryNotFoundError / EntryNotEditableError on update or purge.

Audit relevance:
    Every posting logs ``journal_entry_posted`` with the entry id, the
    transaction id and the totals.  Duplicate source postings log
    ``posting_skipped_already_posted``.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import JournalEntryRecord, LineSpec, SourceRef
from ledger_kernel.domain.validation import validate_lines
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    EntryNotEditableError,
    EntryNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import AccountType, GLAccount
from ledger_kernel.models.journal import EntryType, JournalEntry, JournalLine
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.period_service import PeriodService

logger = get_logger("services.journal")


@dataclass(frozen=True)
class SourcePosting:
    """Result of ``post_for_source``: the entry and whether it already existed."""

    entry: JournalEntryRecord
    already_posted: bool


def balance_deltas(
    lines: Iterable[LineSpec | JournalLine],
    account_types: dict[str, str],
) -> dict[str, int]:
    """
    Net natural-sign change per account for a set of lines.

    Zero deltas are dropped.
    """
    debits: dict[str, int] = defaultdict(int)
    credits: dict[str, int] = defaultdict(int)
    for line in lines:
        debits[line.account_code] += line.debit
        credits[line.account_code] += line.credit
    deltas: dict[str, int] = {}
    for code in debits.keys() | credits.keys():
        delta = AccountType(account_types[code]).natural_amount(debits[code], credits[code])
        if delta:
            deltas[code] = delta
    return deltas


class JournalService(BaseService[JournalEntry]):
    """
    Writes journal entries and maintains cached account balances.

    Contract:
        ``create_journal_entry`` posts a new entry.  ``post_for_source``
        posts a sub-ledger document's entry at most once.
        ``update_journal_entry`` replaces the lines of a manual entry.
        ``delete_orphaned_entry`` removes an entry during integrity repair.

    Guarantees:
        - A rejected call writes nothing.
        - Cached balances move by exactly the natural-sign delta of the
          lines added or removed.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        period_service: PeriodService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._periods = period_service or PeriodService(session, self._clock)

    @property
    def period_service(self) -> PeriodService:
        return self._periods

    # =========================================================================
    # Public API
    # =========================================================================

    def create_journal_entry(
        self,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        *,
        reference: str | None = None,
        transaction_id: str | None = None,
        source: SourceRef | None = None,
        entry_type: EntryType = EntryType.TRANSACTION,
    ) -> JournalEntryRecord:
        """
        Validate and post a journal entry.

        Preconditions:
            - lines balance and reference active accounts.
            - entry_date is in an open period.
            - If both transaction_id and source are given they agree.

        Postconditions:
            - A posted JournalEntry with the given lines exists.
            - Each referenced account's cached balance moved by its delta.

        Raises:
            ValidationError subclasses, ClosedPeriodError.
            IntegrityError if transaction_id is already used (callers that
            need idempotency use ``post_for_source``).
        """
        if source is not None:
            if transaction_id is not None and transaction_id != source.transaction_id:
                raise ValueError(
                    f"transaction_id {transaction_id!r} does not match source "
                    f"{source.transaction_id!r}"
                )
            transaction_id = source.transaction_id

        entry = self.write_entry(
            entry_date=entry_date,
            description=description,
            lines=list(lines),
            reference=reference,
            transaction_id=transaction_id,
            source=source,
            entry_type=entry_type,
        )
        return JournalEntryRecord.from_model(entry)

    def post_for_source(
        self,
        source: SourceRef,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        *,
        reference: str | None = None,
    ) -> SourcePosting:
        """
        Post the entry for a source document, at most once.

        Postconditions:
            - Exactly one entry carries ``source.transaction_id``.
            - A second call (sequential or concurrent) returns the first
              entry with ``already_posted=True`` and changes nothing.
        """
        tid = source.transaction_id
        existing = self._find_by_transaction_id(tid)
        if existing is not None:
            logger.info(
                "posting_skipped_already_posted",
                extra={"transaction_id": tid, "entry_id": existing.id},
            )
            return SourcePosting(JournalEntryRecord.from_model(existing), already_posted=True)

        try:
            entry = self.write_entry(
                entry_date=entry_date,
                description=description,
                lines=list(lines),
                reference=reference,
                transaction_id=tid,
                source=source,
                entry_type=EntryType.TRANSACTION,
            )
        except IntegrityError:
            # Concurrent writer won the UNIQUE(transaction_id) race
            winner = self._find_by_transaction_id(tid)
            if winner is None:
                raise
            logger.info(
                "posting_race_resolved_existing",
                extra={"transaction_id": tid, "entry_id": winner.id},
            )
            return SourcePosting(JournalEntryRecord.from_model(winner), already_posted=True)

        return SourcePosting(JournalEntryRecord.from_model(entry), already_posted=False)

    def update_journal_entry(
        self,
        entry_id: int,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        *,
        reference: str | None = None,
    ) -> JournalEntryRecord:
        """
        Replace the header and lines of a manual entry.

        Preconditions:
            - The entry is manual (no transaction id), is not a reversal and
              has not been reversed.
            - Both the current and the new entry date are open.

        Postconditions:
            - Old lines' contributions are removed from cached balances and
              the new lines' contributions added.

        Raises:
            EntryNotFoundError, EntryNotEditableError, ValidationError
            subclasses, ClosedPeriodError.
        """
        entry = self._load_for_update(entry_id)
        if not entry.is_manual:
            raise EntryNotEditableError(entry_id, "entry belongs to a source document")
        if entry.is_reversal:
            raise EntryNotEditableError(entry_id, "reversal entries are immutable")
        if self._has_reversal(entry_id):
            raise EntryNotEditableError(entry_id, "entry has been reversed")

        new_lines = list(lines)
        validate_lines(new_lines)
        types = self._account_types(line.account_code for line in new_lines)
        self._periods.assert_open(entry.entry_date)
        self._periods.assert_open(entry_date)

        old_types = self._account_types(
            (line.account_code for line in entry.lines), require_active=False
        )
        with self.session.begin_nested():
            self._apply_deltas(balance_deltas(entry.lines, old_types), sign=-1)
            entry.lines.clear()
            self.session.flush()

            entry.entry_date = entry_date
            entry.description = description
            entry.reference = reference
            entry.lines.extend(self._build_lines(new_lines))
            self.session.flush()
            self._apply_deltas(balance_deltas(new_lines, types), sign=1)

        logger.info(
            "journal_entry_updated",
            extra={
                "entry_id": entry.id,
                "entry_date": entry_date.isoformat(),
                "line_count": len(new_lines),
                "total": sum(line.debit for line in new_lines),
            },
        )
        return JournalEntryRecord.from_model(entry)

    def delete_orphaned_entry(self, entry_id: int) -> JournalEntryRecord:
        """
        Remove an entry and take its lines out of the cached balances.

        Only for integrity repair of entries whose source document no longer
        exists.  Reversed entries and reversals are kept.

        Raises:
            EntryNotFoundError, EntryNotEditableError.
        """
        entry = self._load_for_update(entry_id)
        if entry.is_reversal or self._has_reversal(entry_id):
            raise EntryNotEditableError(entry_id, "entry is part of a reversal pair")

        record = JournalEntryRecord.from_model(entry)
        types = self._account_types(
            (line.account_code for line in entry.lines), require_active=False
        )
        with self.session.begin_nested():
            self._apply_deltas(balance_deltas(entry.lines, types), sign=-1)
            self.session.delete(entry)
            self.session.flush()

        logger.warning(
            "journal_entry_purged",
            extra={"entry_id": entry_id, "transaction_id": record.transaction_id},
        )
        return record

    # =========================================================================
    # Internal Implementation
    # =========================================================================

    def write_entry(
        self,
        *,
        entry_date: date,
        description: str,
        lines: list[LineSpec],
        reference: str | None,
        transaction_id: str | None,
        source: SourceRef | None,
        entry_type: EntryType,
        reversal_of: JournalEntry | None = None,
    ) -> JournalEntry:
        """
        Validate everything, then insert entry, lines and balance deltas in
        one SAVEPOINT.

        Low-level write used by the public operations and ReversalService.
        Setting ``reversal_of`` links the new entry as that entry's reversal.
        """
        debits, _ = validate_lines(lines)
        types = self._account_types(line.account_code for line in lines)
        self._periods.assert_open(entry_date)

        with LogContext.bind(transaction_id=transaction_id):
            with self.session.begin_nested():
                entry = JournalEntry(
                    entry_date=entry_date,
                    description=description,
                    reference=reference,
                    transaction_id=transaction_id,
                    source_kind=source.kind if source else None,
                    source_key=source.key if source else None,
                    is_posted=True,
                    entry_type=EntryType(entry_type).value,
                )
                if reversal_of is not None:
                    entry.reversal_of = reversal_of
                entry.lines.extend(self._build_lines(lines))
                self.session.add(entry)
                self.session.flush()
                self._apply_deltas(balance_deltas(lines, types), sign=1)

            logger.info(
                "journal_entry_posted",
                extra={
                    "entry_id": entry.id,
                    "entry_type": entry.entry_type,
                    "entry_date": entry_date.isoformat(),
                    "line_count": len(lines),
                    "total": debits,
                    "reversal_of_id": reversal_of.id if reversal_of is not None else None,
                },
            )
        return entry

    @staticmethod
    def _build_lines(lines: Sequence[LineSpec]) -> list[JournalLine]:
        return [
            JournalLine(
                line_no=idx,
                account_code=line.account_code,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
            )
            for idx, line in enumerate(lines, start=1)
        ]

    def _account_types(
        self,
        codes: Iterable[str],
        require_active: bool = True,
    ) -> dict[str, str]:
        """Resolve account codes to types, rejecting unknown (and inactive) accounts."""
        wanted = set(codes)
        rows = self.session.execute(
            select(GLAccount.code, GLAccount.type, GLAccount.is_active).where(
                GLAccount.code.in_(wanted)
            )
        ).all()
        found = {row.code: row for row in rows}
        for code in sorted(wanted):
            row = found.get(code)
            if row is None:
                raise AccountNotFoundError(code)
            if require_active and not row.is_active:
                raise AccountInactiveError(code)
        return {code: row.type for code, row in found.items()}

    def _apply_deltas(self, deltas: dict[str, int], sign: int) -> None:
        # In-memory GLAccount.balance is not synced; readers re-load the row.
        for code, delta in sorted(deltas.items()):
            self.session.execute(
                update(GLAccount)
                .where(GLAccount.code == code)
                .values(balance=GLAccount.balance + sign * delta)
                .execution_options(synchronize_session=False)
            )

    def _find_by_transaction_id(self, transaction_id: str) -> JournalEntry | None:
        return self.session.execute(
            select(JournalEntry).where(JournalEntry.transaction_id == transaction_id)
        ).scalar_one_or_none()

    def _load_for_update(self, entry_id: int) -> JournalEntry:
        entry = self.session.execute(
            select(JournalEntry).where(JournalEntry.id == entry_id).with_for_update()
        ).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    def _has_reversal(self, entry_id: int) -> bool:
        return (
            self.session.execute(
                select(JournalEntry.id).where(JournalEntry.reversal_of_id == entry_id)
            ).first()
            is not None
        )
