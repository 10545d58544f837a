"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines -- the
    single source of financial truth in this system.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Idempotency: transaction_id is UNIQUE.  A source document can own at
      most one journal entry; concurrent posters collide on the constraint.
    - Single reversal: reversal_of_id is UNIQUE.  An entry is reversed at
      most once.
    - Line amounts: debit >= 0, credit >= 0 and exactly one side positive
      (CHECK constraints; JournalService validates before writing).
    - Balance: sum(debit) == sum(credit) per entry, checked by JournalService
      before flush and exposed here via is_balanced for read-side assertions.

Failure modes:
    - IntegrityError on duplicate transaction_id or reversal_of_id.
    - IntegrityError on a line referencing an unknown account code.

Audit relevance:
    JournalEntry and JournalLine rows are the authoritative financial record.
    Reports, cached balances and integrity checks all derive from them.
    Posted entries are corrected by reversal, never by silent mutation
    (manual entries excepted, see JournalService.update_journal_entry).
"""

from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import EpochDate, TrackedBase
from ledger_kernel.db.types import Amount, IntPK

if TYPE_CHECKING:
    from ledger_kernel.models.account import GLAccount


class EntryType(str, Enum):
    """Classification of a journal entry."""

    TRANSACTION = "TRANSACTION"
    REVERSAL = "REVERSAL"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER = "TRANSFER"


class JournalEntry(TrackedBase):
    """
    A balanced set of journal lines posted on one date.

    Contract:
        Entries that belong to a sub-ledger document carry its transaction_id
        (``"{source_kind}-{source_key}"``).  Manual entries have none.
        A REVERSAL entry points at the entry it cancels via reversal_of_id.

    Guarantees:
        - transaction_id is unique when present.
        - lines are loaded eagerly in line_no order.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_journal_transaction_id"),
        UniqueConstraint("reversal_of_id", name="uq_journal_reversal_of"),
        Index("idx_journal_entry_date", "entry_date"),
        Index("idx_journal_source", "source_kind", "source_key"),
        Index("idx_journal_entry_type", "entry_type"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)

    entry_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    transaction_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Typed parts of transaction_id, for integrity sweeps
    source_kind: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_key: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_posted: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    entry_type: Mapped[str] = mapped_column(
        String(20),
        default=EntryType.TRANSACTION.value,
        nullable=False,
    )

    reversal_of_id: Mapped[int | None] = mapped_column(
        IntPK,
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_no",
    )

    reversal_of: Mapped["JournalEntry | None"] = relationship(
        remote_side="JournalEntry.id",
        foreign_keys=[reversal_of_id],
        back_populates="reversed_by",
    )

    reversed_by: Mapped["JournalEntry | None"] = relationship(
        foreign_keys=[reversal_of_id],
        back_populates="reversal_of",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} {self.entry_type} tid={self.transaction_id}>"

    @property
    def is_reversal(self) -> bool:
        return self.entry_type == EntryType.REVERSAL

    @property
    def is_manual(self) -> bool:
        """True for entries not owned by a sub-ledger document."""
        return self.transaction_id is None and self.source_kind is None

    @property
    def total_debits(self) -> int:
        return sum(line.debit for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


class JournalLine(TrackedBase):
    """
    One debit or credit against one account.

    Contract:
        Exactly one of debit/credit is positive; the other is zero.
    """

    __tablename__ = "journal_entry_lines"

    __table_args__ = (
        CheckConstraint("debit >= 0 AND credit >= 0", name="ck_line_non_negative"),
        CheckConstraint(
            "(debit > 0 AND credit = 0) OR (credit > 0 AND debit = 0)",
            name="ck_line_one_side",
        ),
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_code"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)

    journal_entry_id: Mapped[int] = mapped_column(
        IntPK,
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    line_no: Mapped[int] = mapped_column(nullable=False)

    account_code: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("gl_accounts.code"),
        nullable=False,
    )

    debit: Mapped[Amount] = mapped_column(default=0, nullable=False)

    credit: Mapped[Amount] = mapped_column(default=0, nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["GLAccount"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return f"<JournalLine {self.account_code} Dr={self.debit} Cr={self.credit}>"

    @property
    def is_debit(self) -> bool:
        return self.debit > 0
