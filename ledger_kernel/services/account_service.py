"""
AccountService -- chart-of-accounts maintenance and cached-balance repair.

Responsibility:
    Seeds the chart from configuration, creates and edits accounts, and
    rebuilds cached balances from the posted lines when they drift.

Architecture position:
    Kernel > Services -- imperative shell.  Reads through LedgerSelector.

Invariants enforced:
    - Account type (and therefore the balance sign) never changes once set.
    - ``recalculate_cached_balances`` makes every cached balance equal to
      the natural-sign sum of its posted lines.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - DuplicateAccountError, AccountNotFoundError (parent or target).
    - ValueError on an unknown account type.

Audit relevance:
    Each repaired balance is logged with its old and new value.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Protocol

from sqlalchemy import select

from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.exceptions import AccountNotFoundError, DuplicateAccountError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import AccountType, GLAccount
from ledger_kernel.selectors.ledger_selector import (
    AccountBalance,
    AccountDetails,
    LedgerSelector,
)
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account")

_UNSET = object()


class AccountDefinition(Protocol):
    """Shape of a configured account (``ledger_config.AccountDef``)."""

    code: str
    name: str
    type: str
    description: str | None
    parent_code: str | None


@dataclass(frozen=True)
class BalanceCorrection:
    """One cached balance reset by recalculation."""

    account_code: str
    previous_balance: int
    corrected_balance: int

    @property
    def difference(self) -> int:
        return self.previous_balance - self.corrected_balance


class AccountService(BaseService[GLAccount]):
    """Maintains the chart of accounts."""

    def seed_chart(self, accounts: Iterable[AccountDefinition]) -> int:
        """
        Insert configured accounts that do not exist yet.

        Parents are inserted before their children.  Existing accounts are
        left untouched, so seeding is idempotent.

        Returns:
            Number of accounts inserted.
        """
        pending = list(accounts)
        known = set(self.session.scalars(select(GLAccount.code)))
        inserted = 0

        while pending:
            progressed = False
            remaining = []
            for acct in pending:
                if acct.code in known:
                    continue
                if acct.parent_code is not None and acct.parent_code not in known:
                    remaining.append(acct)
                    continue
                self.session.add(
                    GLAccount(
                        code=acct.code,
                        name=acct.name,
                        type=AccountType(acct.type).value,
                        description=acct.description,
                        parent_code=acct.parent_code,
                        balance=0,
                        is_active=True,
                    )
                )
                known.add(acct.code)
                inserted += 1
                progressed = True
            if remaining and not progressed:
                raise AccountNotFoundError(remaining[0].parent_code)
            pending = remaining
            self.session.flush()

        logger.info("chart_of_accounts_seeded", extra={"inserted": inserted})
        return inserted

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        description: str | None = None,
        parent_code: str | None = None,
    ) -> AccountInfo:
        """
        Add one account to the chart.

        Raises:
            DuplicateAccountError: code already exists.
            AccountNotFoundError: parent_code does not exist.
        """
        if self.session.get(GLAccount, code) is not None:
            raise DuplicateAccountError(code)
        if parent_code is not None and self.session.get(GLAccount, parent_code) is None:
            raise AccountNotFoundError(parent_code)
        account = GLAccount(
            code=code,
            name=name,
            type=AccountType(account_type).value,
            description=description,
            parent_code=parent_code,
            balance=0,
            is_active=True,
        )
        self.session.add(account)
        self.session.flush()
        logger.info("account_created", extra={"account_code": code, "account_type": account.type})
        return AccountInfo.from_model(account)

    def update_account_details(
        self,
        code: str,
        *,
        name: str | None = None,
        description: str | None | object = _UNSET,
        is_active: bool | None = None,
        parent_code: str | None | object = _UNSET,
    ) -> AccountInfo:
        """
        Edit an account's descriptive fields.

        Only supplied fields change.  ``description=None`` and
        ``parent_code=None`` clear those fields.  Type and balance are not
        editable.

        Raises:
            AccountNotFoundError: Unknown code or parent.
            ValueError: An account cannot be its own parent.
        """
        account = self.session.get(GLAccount, code, populate_existing=True)
        if account is None:
            raise AccountNotFoundError(code)

        if name is not None:
            account.name = name
        if description is not _UNSET:
            account.description = description
        if is_active is not None:
            account.is_active = is_active
        if parent_code is not _UNSET:
            if parent_code == code:
                raise ValueError(f"Account {code} cannot be its own parent")
            if parent_code is not None and self.session.get(GLAccount, parent_code) is None:
                raise AccountNotFoundError(parent_code)
            account.parent_code = parent_code

        self.session.flush()
        logger.info(
            "account_updated",
            extra={"account_code": code, "is_active": account.is_active},
        )
        return AccountInfo.from_model(account)

    def recalculate_cached_balances(self) -> list[BalanceCorrection]:
        """
        Reset every drifted cached balance to the value derived from posted lines.

        Returns:
            The corrections applied (empty when the cache was consistent).
        """
        corrections: list[BalanceCorrection] = []
        for row in LedgerSelector(self.session).balance_discrepancies():
            account = self.session.get(GLAccount, row.account_code)
            corrections.append(
                BalanceCorrection(
                    account_code=row.account_code,
                    previous_balance=row.cached_balance,
                    corrected_balance=row.computed_balance,
                )
            )
            account.balance = row.computed_balance
            logger.warning(
                "cached_balance_corrected",
                extra={
                    "account_code": row.account_code,
                    "previous_balance": row.cached_balance,
                    "corrected_balance": row.computed_balance,
                },
            )
        self.session.flush()
        logger.info(
            "cached_balances_recalculated",
            extra={"corrections": len(corrections)},
        )
        return corrections

    def get_account_details(self, code: str) -> AccountDetails:
        """
        An account with its parent and direct children.

        Raises:
            AccountNotFoundError: Unknown code.
        """
        return LedgerSelector(self.session).account_details(code)

    def get_account_balances(
        self,
        as_of: date | None = None,
        exclude_reversals: bool = False,
    ) -> list[AccountBalance]:
        """Derived balance of every account, optionally as of a date."""
        return LedgerSelector(self.session).account_balances(
            as_of, exclude_reversals=exclude_reversals
        )
