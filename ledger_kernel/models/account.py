"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts -- the target of
    every journal line -- including each account's cached running balance.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - code is the primary key; lines reference accounts by code.
    - balance is a CACHE of the natural-sign sum of posted lines.  It is only
      written through JournalService (atomic increments) and repaired by
      AccountService.recalculate_cached_balances().  The posted lines are the
      source of truth.

Failure modes:
    - AccountNotFoundError when a posting references a non-existent account.
    - AccountInactiveError when a posting targets an inactive account.

Audit relevance:
    Account rows define the structure of the general ledger.  The cached
    balance is never authoritative; reports can be produced from the lines
    alone and compared against it.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import Amount

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalLine


class NormalBalance(str, Enum):
    """Side on which an account's balance increases."""

    DEBIT = "debit"
    CREDIT = "credit"


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"

    @property
    def normal_balance(self) -> NormalBalance:
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT

    @property
    def is_balance_sheet(self) -> bool:
        return self in (AccountType.ASSET, AccountType.LIABILITY, AccountType.EQUITY)

    def natural_amount(self, debit: int, credit: int) -> int:
        """Signed contribution of a debit/credit pair in this type's natural sign.

        Postconditions: debit - credit for debit-normal types, credit - debit
            otherwise.
        """
        if self.normal_balance == NormalBalance.DEBIT:
            return debit - credit
        return credit - debit


class GLAccount(TrackedBase):
    """
    Chart-of-accounts entry.

    Contract:
        The account's type fixes its normal balance (Asset/Expense debit,
        Liability/Equity/Revenue credit) and therefore the sign of ``balance``.

    Guarantees:
        - code is unique and non-null.
        - type is one of the AccountType values.
        - parent_code, when set, references another account.

    Non-goals:
        - Deleting accounts.  Accounts are deactivated instead.
    """

    __tablename__ = "gl_accounts"

    __table_args__ = (
        Index("idx_gl_account_type", "type"),
        Index("idx_gl_account_parent", "parent_code"),
    )

    code: Mapped[str] = mapped_column(String(50), primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Stored as the AccountType value; compares equal to AccountType members
    type: Mapped[str] = mapped_column(String(20), nullable=False)

    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    parent_code: Mapped[str | None] = mapped_column(
        String(50),
        ForeignKey("gl_accounts.code"),
        nullable=True,
    )

    # Cached natural-sign balance in minor units
    balance: Mapped[Amount] = mapped_column(default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<GLAccount {self.code}: {self.name}>"

    @property
    def account_type(self) -> AccountType:
        return AccountType(self.type)

    @property
    def normal_balance(self) -> NormalBalance:
        return self.account_type.normal_balance

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    def natural_amount(self, debit: int, credit: int) -> int:
        """Contribution of a line to this account's cached balance."""
        return self.account_type.natural_amount(debit, credit)
