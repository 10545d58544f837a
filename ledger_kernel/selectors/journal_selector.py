"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read access to journal entries: lookup by id or transaction
    id, date-range listings, the GL impact of a source document and
    structural checks used by the integrity tools.
Architecture position: Kernel > Selectors.  Read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, or_, select

from ledger_kernel.domain.dtos import JournalEntryRecord
from ledger_kernel.models.journal import EntryType, JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class UnbalancedEntry:
    """A stored entry whose lines do not balance."""

    journal_entry_id: int
    transaction_id: str | None
    debit_total: int
    credit_total: int


@dataclass(frozen=True)
class SourceEntryRef:
    """Minimal view of an entry that belongs to a source document."""

    journal_entry_id: int
    transaction_id: str
    source_kind: str | None
    source_key: str | None
    is_reversed: bool


class JournalSelector(BaseSelector[JournalEntry]):
    """Selector for journal entries."""

    def get_entry(self, entry_id: int) -> JournalEntryRecord | None:
        entry = self.session.get(JournalEntry, entry_id)
        return JournalEntryRecord.from_model(entry) if entry is not None else None

    def find_by_transaction_id(self, transaction_id: str) -> JournalEntryRecord | None:
        entry = self.session.execute(
            select(JournalEntry).where(JournalEntry.transaction_id == transaction_id)
        ).scalar_one_or_none()
        return JournalEntryRecord.from_model(entry) if entry is not None else None

    def list_entries(
        self,
        start: date | None = None,
        end: date | None = None,
        entry_type: EntryType | None = None,
    ) -> list[JournalEntryRecord]:
        """Entries in a date range (inclusive), oldest first."""
        stmt = select(JournalEntry)
        if start is not None:
            stmt = stmt.where(JournalEntry.entry_date >= start)
        if end is not None:
            stmt = stmt.where(JournalEntry.entry_date <= end)
        if entry_type is not None:
            stmt = stmt.where(JournalEntry.entry_type == EntryType(entry_type).value)
        stmt = stmt.order_by(JournalEntry.entry_date, JournalEntry.id)
        return [JournalEntryRecord.from_model(e) for e in self.session.scalars(stmt)]

    def get_gl_impact(self, transaction_id: str) -> list[JournalEntryRecord]:
        """
        Every entry a source document produced, with its reversals.

        Matches entries carrying the transaction id or using it as their
        reference, then adds any reversal of those entries.  Ordered by id.
        """
        primary = self.session.scalars(
            select(JournalEntry).where(
                or_(
                    JournalEntry.transaction_id == transaction_id,
                    JournalEntry.reference == transaction_id,
                )
            )
        ).all()
        ids = [e.id for e in primary]
        reversals = (
            self.session.scalars(
                select(JournalEntry).where(JournalEntry.reversal_of_id.in_(ids))
            ).all()
            if ids
            else []
        )
        entries = {e.id: e for e in (*primary, *reversals)}
        return [JournalEntryRecord.from_model(entries[i]) for i in sorted(entries)]

    def source_entries(self, kind: str | None = None) -> list[SourceEntryRef]:
        """Entries that belong to a source document, optionally of one kind."""
        stmt = select(JournalEntry).where(JournalEntry.transaction_id.is_not(None))
        if kind is not None:
            stmt = stmt.where(JournalEntry.source_kind == kind)
        stmt = stmt.order_by(JournalEntry.id)
        reversed_ids = set(
            self.session.scalars(
                select(JournalEntry.reversal_of_id).where(
                    JournalEntry.reversal_of_id.is_not(None)
                )
            )
        )
        return [
            SourceEntryRef(
                journal_entry_id=e.id,
                transaction_id=e.transaction_id,
                source_kind=e.source_kind,
                source_key=e.source_key,
                is_reversed=e.id in reversed_ids,
            )
            for e in self.session.scalars(stmt)
        ]

    def posted_transaction_ids(self, kind: str | None = None) -> set[str]:
        stmt = select(JournalEntry.transaction_id).where(
            JournalEntry.transaction_id.is_not(None)
        )
        if kind is not None:
            stmt = stmt.where(JournalEntry.source_kind == kind)
        return set(self.session.scalars(stmt))

    def unbalanced_entries(self) -> list[UnbalancedEntry]:
        """Entries whose stored lines do not balance (or have no lines)."""
        stmt = (
            select(
                JournalEntry.id,
                JournalEntry.transaction_id,
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
                func.count(JournalLine.id),
            )
            .outerjoin(JournalLine, JournalLine.journal_entry_id == JournalEntry.id)
            .group_by(JournalEntry.id, JournalEntry.transaction_id)
            .order_by(JournalEntry.id)
        )
        return [
            UnbalancedEntry(
                journal_entry_id=entry_id,
                transaction_id=tid,
                debit_total=int(debits),
                credit_total=int(credits),
            )
            for entry_id, tid, debits, credits, line_count in self.session.execute(stmt)
            if debits != credits or line_count < 2
        ]
