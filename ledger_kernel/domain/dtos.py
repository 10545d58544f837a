"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the service boundary:
    LineSpec (input line), SourceRef (typed source-document reference),
    JournalEntryRecord / JournalLineRecord (read-side snapshot of a posted
    entry) and AccountInfo (chart entry plus cached balance).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service and selector layers.

Invariants enforced:
    - Services accept and return DTOs, never ORM entities, across the
      module boundary.
    - A SourceRef renders to exactly one transaction id; the journal's
      UNIQUE constraint on that id makes posting at-most-once.

Failure modes:
    - ValueError on a SourceRef with an empty or malformed kind/key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalEntry as JournalEntryModel
    from ledger_kernel.models.journal import JournalLine as JournalLineModel


_KIND_RE = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")


@dataclass(frozen=True)
class LineSpec:
    """
    One debit or credit line of a journal entry, before it is persisted.

    Contract:
        An account code plus a debit OR a credit amount in minor units.
        Structural validation (integers, non-negative, exactly one side
        positive) is done by ``validate_lines`` so that every failure is
        reported with its line number before anything is written.
    """

    account_code: str
    debit: int = 0
    credit: int = 0
    description: str | None = None

    @classmethod
    def dr(cls, account_code: str, amount: int, description: str | None = None) -> LineSpec:
        """Debit line."""
        return cls(account_code=account_code, debit=amount, credit=0, description=description)

    @classmethod
    def cr(cls, account_code: str, amount: int, description: str | None = None) -> LineSpec:
        """Credit line."""
        return cls(account_code=account_code, debit=0, credit=amount, description=description)

    @property
    def amount(self) -> int:
        return self.debit or self.credit

    def swapped(self) -> LineSpec:
        """The mirror line used by reversals."""
        return LineSpec(
            account_code=self.account_code,
            debit=self.credit,
            credit=self.debit,
            description=self.description,
        )


@dataclass(frozen=True)
class SourceRef:
    """
    Typed reference from a journal entry to the sub-ledger document it posts.

    Contract:
        ``kind`` names the document type (``bill``, ``pay``, ``dep``, ...);
        ``key`` identifies the document within that type.  The rendered
        ``transaction_id`` is ``"{kind}-{key}"``.

    Guarantees:
        - kind is lowercase alphanumeric words joined by hyphens.
        - key is a non-empty string without whitespace.
    """

    kind: str
    key: str

    def __post_init__(self) -> None:
        if not _KIND_RE.match(self.kind or ""):
            raise ValueError(f"Invalid source kind: {self.kind!r}")
        key = str(self.key)
        if not key or any(ch.isspace() for ch in key):
            raise ValueError(f"Invalid source key: {self.key!r}")
        object.__setattr__(self, "key", key)

    @classmethod
    def of(cls, kind: str, key: object) -> SourceRef:
        return cls(kind=kind, key=str(key))

    @property
    def transaction_id(self) -> str:
        return f"{self.kind}-{self.key}"

    @classmethod
    def parse(cls, transaction_id: str, known_kinds: Iterable[str]) -> SourceRef | None:
        """
        Split a transaction id into kind and key.

        The longest matching known kind wins, so ``exp-reimb-7`` resolves to
        ``("exp-reimb", "7")`` when both ``exp`` and ``exp-reimb`` are known.

        Returns:
            The SourceRef, or None when no known kind matches.
        """
        for kind in sorted(known_kinds, key=len, reverse=True):
            prefix = f"{kind}-"
            if transaction_id.startswith(prefix) and len(transaction_id) > len(prefix):
                return cls(kind=kind, key=transaction_id[len(prefix):])
        return None

    def __str__(self) -> str:
        return self.transaction_id


@dataclass(frozen=True)
class JournalLineRecord:
    """Read-side snapshot of one journal line."""

    line_no: int
    account_code: str
    debit: int
    credit: int
    description: str | None = None
    account_name: str | None = None

    @classmethod
    def from_model(cls, line: JournalLineModel) -> JournalLineRecord:
        return cls(
            line_no=line.line_no,
            account_code=line.account_code,
            debit=line.debit,
            credit=line.credit,
            description=line.description,
            account_name=line.account.name if line.account is not None else None,
        )

    def to_spec(self) -> LineSpec:
        return LineSpec(
            account_code=self.account_code,
            debit=self.debit,
            credit=self.credit,
            description=self.description,
        )


@dataclass(frozen=True)
class JournalEntryRecord:
    """
    Read-side snapshot of a journal entry and its lines.

    Guarantees:
        - Detached from the session; safe to hold after commit.
    """

    id: int
    entry_date: date
    description: str
    reference: str | None
    transaction_id: str | None
    entry_type: str
    is_posted: bool
    reversal_of_id: int | None
    reversed_by_id: int | None
    lines: tuple[JournalLineRecord, ...]

    @classmethod
    def from_model(cls, entry: JournalEntryModel) -> JournalEntryRecord:
        return cls(
            id=entry.id,
            entry_date=entry.entry_date,
            description=entry.description,
            reference=entry.reference,
            transaction_id=entry.transaction_id,
            entry_type=entry.entry_type,
            is_posted=entry.is_posted,
            reversal_of_id=entry.reversal_of_id,
            reversed_by_id=entry.reversed_by.id if entry.reversed_by is not None else None,
            lines=tuple(JournalLineRecord.from_model(line) for line in entry.lines),
        )

    @property
    def total_debits(self) -> int:
        return sum(line.debit for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    @property
    def is_reversed(self) -> bool:
        return self.reversed_by_id is not None


@dataclass(frozen=True)
class AccountInfo:
    """Read-side snapshot of a chart-of-accounts entry with its cached balance."""

    code: str
    name: str
    type: str
    description: str | None
    parent_code: str | None
    balance: int
    is_active: bool

    @classmethod
    def from_model(cls, account) -> AccountInfo:
        return cls(
            code=account.code,
            name=account.name,
            type=account.type,
            description=account.description,
            parent_code=account.parent_code,
            balance=account.balance,
            is_active=account.is_active,
        )
