"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Balance computation over posted journal lines: trial
    balance, per-account balances (derived vs cached), the chart of accounts
    and the account register with running balances.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Derived balances come from posted JournalLines only; the cached
      ``gl_accounts.balance`` is reported alongside, never trusted.
    - Effective view: ``exclude_reversals=True`` drops reversal pairs whose
      two halves both fall inside the query's date window.  Such a pair
      nets to zero on every account, so totals are identical in both
      views; only line listings differ.
    - All amounts are integers in minor units.

Audit relevance:
    ``account_balances`` is the cross-check between the cache and the
    ledger used by the integrity sweep and the recalculation tool.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import exists, func, or_, select
from sqlalchemy.orm import aliased

from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import AccountType, GLAccount
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class TrialBalanceRow:
    """Debit and credit totals for one account."""

    account_code: str
    account_name: str
    account_type: str
    parent_code: str | None
    debit_total: int
    credit_total: int

    @property
    def natural_balance(self) -> int:
        """Balance in the account type's natural sign."""
        return AccountType(self.account_type).natural_amount(self.debit_total, self.credit_total)

    @property
    def net_debit(self) -> int:
        return self.debit_total - self.credit_total


@dataclass(frozen=True)
class AccountBalance:
    """Derived balance of one account compared with its cached balance."""

    account_code: str
    account_name: str
    account_type: str
    is_active: bool
    debit_total: int
    credit_total: int
    computed_balance: int
    cached_balance: int

    @property
    def difference(self) -> int:
        return self.cached_balance - self.computed_balance

    @property
    def is_consistent(self) -> bool:
        return self.cached_balance == self.computed_balance


@dataclass(frozen=True)
class RegisterLine:
    """One line of an account register with the running balance after it."""

    journal_entry_id: int
    entry_date: date
    description: str
    reference: str | None
    transaction_id: str | None
    entry_type: str
    line_description: str | None
    debit: int
    credit: int
    running_balance: int


@dataclass(frozen=True)
class AccountRegister:
    """Chronological activity of one account over a date range."""

    account: AccountInfo
    start_date: date | None
    end_date: date | None
    opening_balance: int
    lines: tuple[RegisterLine, ...]
    total_debits: int
    total_credits: int
    closing_balance: int


@dataclass(frozen=True)
class AccountDetails:
    """An account with its parent and direct children."""

    account: AccountInfo
    parent: AccountInfo | None
    children: tuple[AccountInfo, ...]


def effective_entry_filter(start: date | None = None, end: date | None = None):
    """
    WHERE clause dropping reversal pairs that fall wholly inside a window.

    An entry is hidden when it is a reversal whose original is dated in
    ``[start, end]``, or when it has a reversal dated in ``[start, end]``.
    A pair straddling a window boundary stays visible, so totals match
    the full view for any window.  ``None`` leaves that side open.
    """
    counterpart = aliased(JournalEntry)
    in_window = []
    if start is not None:
        in_window.append(counterpart.entry_date >= start)
    if end is not None:
        in_window.append(counterpart.entry_date <= end)
    return ~or_(
        exists().where(counterpart.id == JournalEntry.reversal_of_id, *in_window),
        exists().where(counterpart.reversal_of_id == JournalEntry.id, *in_window),
    )


class LedgerSelector(BaseSelector[JournalLine]):
    """
    Selector for ledger queries -- the authoritative balance computation.

    Contract:
        All queries consider posted entries only and optionally cut off by
        entry_date.  Date bounds are inclusive.
    """

    def _line_filters(
        self,
        as_of: date | None = None,
        start: date | None = None,
        exclude_reversals: bool = False,
    ) -> list:
        filters = [JournalEntry.is_posted.is_(True)]
        if as_of is not None:
            filters.append(JournalEntry.entry_date <= as_of)
        if start is not None:
            filters.append(JournalEntry.entry_date >= start)
        if exclude_reversals:
            filters.append(effective_entry_filter(start, as_of))
        return filters

    def trial_balance(
        self,
        as_of: date | None = None,
        start: date | None = None,
        exclude_reversals: bool = False,
    ) -> list[TrialBalanceRow]:
        """
        Per-account debit and credit totals over posted lines.

        Accounts without activity in the window are omitted.  Rows are
        ordered by account code.
        """
        stmt = (
            select(
                GLAccount.code,
                GLAccount.name,
                GLAccount.type,
                GLAccount.parent_code,
                func.coalesce(func.sum(JournalLine.debit), 0).label("debit_total"),
                func.coalesce(func.sum(JournalLine.credit), 0).label("credit_total"),
            )
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(GLAccount, JournalLine.account_code == GLAccount.code)
            .where(*self._line_filters(as_of, start, exclude_reversals))
            .group_by(GLAccount.code, GLAccount.name, GLAccount.type, GLAccount.parent_code)
            .order_by(GLAccount.code)
        )
        return [
            TrialBalanceRow(
                account_code=row.code,
                account_name=row.name,
                account_type=row.type,
                parent_code=row.parent_code,
                debit_total=int(row.debit_total),
                credit_total=int(row.credit_total),
            )
            for row in self.session.execute(stmt)
        ]

    def account_balances(
        self,
        as_of: date | None = None,
        exclude_reversals: bool = False,
    ) -> list[AccountBalance]:
        """
        Every account's derived balance next to its cached balance.

        Includes accounts with no activity (derived balance 0).  The effective
        view yields the same balances; it exists for callers that list it.
        """
        totals = (
            select(
                JournalLine.account_code.label("account_code"),
                func.sum(JournalLine.debit).label("debit_total"),
                func.sum(JournalLine.credit).label("credit_total"),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(*self._line_filters(as_of, exclude_reversals=exclude_reversals))
            .group_by(JournalLine.account_code)
            .subquery()
        )
        stmt = (
            select(
                GLAccount,
                func.coalesce(totals.c.debit_total, 0),
                func.coalesce(totals.c.credit_total, 0),
            )
            .outerjoin(totals, totals.c.account_code == GLAccount.code)
            .order_by(GLAccount.code)
            .execution_options(populate_existing=True)
        )
        result = []
        for account, debit_total, credit_total in self.session.execute(stmt):
            debit_total, credit_total = int(debit_total), int(credit_total)
            result.append(
                AccountBalance(
                    account_code=account.code,
                    account_name=account.name,
                    account_type=account.type,
                    is_active=account.is_active,
                    debit_total=debit_total,
                    credit_total=credit_total,
                    computed_balance=account.natural_amount(debit_total, credit_total),
                    cached_balance=account.balance,
                )
            )
        return result

    def balance_discrepancies(self) -> list[AccountBalance]:
        """Accounts whose cached balance differs from the posted lines."""
        return [b for b in self.account_balances() if not b.is_consistent]

    def computed_balance(self, account_code: str, as_of: date | None = None) -> int:
        """Natural-sign balance of one account derived from posted lines."""
        account = self._get_account(account_code)
        debit_total, credit_total = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalLine.account_code == account_code, *self._line_filters(as_of))
        ).one()
        return account.natural_amount(int(debit_total), int(credit_total))

    def chart_of_accounts(self, include_inactive: bool = True) -> list[AccountInfo]:
        """All accounts ordered by code, with cached balances."""
        stmt = (
            select(GLAccount)
            .order_by(GLAccount.code)
            .execution_options(populate_existing=True)
        )
        if not include_inactive:
            stmt = stmt.where(GLAccount.is_active.is_(True))
        return [AccountInfo.from_model(a) for a in self.session.scalars(stmt)]

    def account_details(self, account_code: str) -> AccountDetails:
        """
        An account with its parent and direct children.

        Raises:
            AccountNotFoundError: Unknown code.
        """
        account = self._get_account(account_code)
        parent = (
            self.session.get(GLAccount, account.parent_code, populate_existing=True)
            if account.parent_code is not None
            else None
        )
        children = self.session.scalars(
            select(GLAccount)
            .where(GLAccount.parent_code == account_code)
            .order_by(GLAccount.code)
            .execution_options(populate_existing=True)
        ).all()
        return AccountDetails(
            account=AccountInfo.from_model(account),
            parent=AccountInfo.from_model(parent) if parent is not None else None,
            children=tuple(AccountInfo.from_model(c) for c in children),
        )

    def account_register(
        self,
        account_code: str,
        start: date | None = None,
        end: date | None = None,
        include_reversals: bool = False,
    ) -> AccountRegister:
        """
        Chronological lines of one account with a natural-sign running balance.

        The opening balance covers everything before ``start`` under the same
        reversal view.  Lines are ordered by entry date, then entry id, then
        line number.

        Raises:
            AccountNotFoundError: Unknown code.
        """
        account = self._get_account(account_code)
        exclude = not include_reversals

        opening = 0
        if start is not None:
            debit_total, credit_total = self.session.execute(
                select(
                    func.coalesce(func.sum(JournalLine.debit), 0),
                    func.coalesce(func.sum(JournalLine.credit), 0),
                )
                .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
                .where(
                    JournalLine.account_code == account_code,
                    *self._line_filters(
                        as_of=start - timedelta(days=1), exclude_reversals=exclude
                    ),
                )
            ).one()
            opening = account.natural_amount(int(debit_total), int(credit_total))

        stmt = (
            select(JournalLine, JournalEntry)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.account_code == account_code,
                *self._line_filters(as_of=end, start=start, exclude_reversals=exclude),
            )
            .order_by(JournalEntry.entry_date, JournalEntry.id, JournalLine.line_no)
        )

        running = opening
        total_debits = total_credits = 0
        lines: list[RegisterLine] = []
        for line, entry in self.session.execute(stmt):
            running += account.natural_amount(line.debit, line.credit)
            total_debits += line.debit
            total_credits += line.credit
            lines.append(
                RegisterLine(
                    journal_entry_id=entry.id,
                    entry_date=entry.entry_date,
                    description=entry.description,
                    reference=entry.reference,
                    transaction_id=entry.transaction_id,
                    entry_type=entry.entry_type,
                    line_description=line.description,
                    debit=line.debit,
                    credit=line.credit,
                    running_balance=running,
                )
            )

        return AccountRegister(
            account=AccountInfo.from_model(account),
            start_date=start,
            end_date=end,
            opening_balance=opening,
            lines=tuple(lines),
            total_debits=total_debits,
            total_credits=total_credits,
            closing_balance=running,
        )

    def _get_account(self, account_code: str) -> GLAccount:
        account = self.session.get(GLAccount, account_code, populate_existing=True)
        if account is None:
            raise AccountNotFoundError(account_code)
        return account

