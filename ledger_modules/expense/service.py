"""
Expense Module Service (``ledger_modules.expense.service``).

Responsibility
--------------
Manages expense categories and expense claims through submit, approve,
reject and reimburse, posting the approval (``exp-{id}``) and the
reimbursement (``exp-reimb-{id}``) through ``ModulePostingService``.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.

Invariants enforced
-------------------
* Category accounts are active Expense accounts.
* An expense amount is > 0 and within the category's ``max_amount``.
* A PETTY_CASH approval needs the petty-cash account's cached balance to
  cover the amount; it credits petty cash and moves straight to PAID.
* A REIMBURSABLE approval credits Employee Payables (APPROVED); the later
  reimbursement clears it against a bank account (PAID).

Failure modes
-------------
* ``InsufficientFundsError`` -> ``PostingStatus.INSUFFICIENT_FUNDS``.
* Wrong workflow state -> ``PostingStatus.INVALID_STATE``.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import SourceRef
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidSourceDocumentError,
    SourceDocumentNotFoundError,
    SourceDocumentStateError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import AccountType, GLAccount
from ledger_kernel.services.module_posting_service import (
    ModulePostingService,
    PostingResult,
    PostingStatus,
)
from ledger_modules._posting_helpers import (
    SourceHandler,
    document_exists,
    document_id,
    document_keys,
    require_amount,
    require_posting_account,
)
from ledger_modules.expense.models import (
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    ExpenseType,
)
from ledger_modules.expense.orm import ExpenseCategoryModel, ExpenseModel
from ledger_modules.expense.profiles import (
    EXPENSE,
    REIMBURSEMENT,
    petty_cash_lines,
    reimbursable_lines,
    reimbursement_lines,
)

logger = get_logger("modules.expense.service")

_POSTED_STATES = (ExpenseStatus.APPROVED.value, ExpenseStatus.PAID.value)


class ExpenseService:
    """
    Orchestrates expense claims through the kernel.

    Contract
    --------
    * ``create_category``, ``submit_expense`` and ``reject_expense`` write
      no journal entries; they return DTOs and raise ``LedgerError`` on
      invalid input.
    * ``approve_expense`` and ``reimburse_expense`` return
      ``PostingResult``.
    """

    def __init__(
        self,
        session: Session,
        config: LedgerConfig,
        clock: Clock | None = None,
        auto_commit: bool = False,
    ):
        self._session = session
        self._roles = config.roles
        self._clock = clock or SystemClock()
        self._poster = ModulePostingService(session, self._clock, auto_commit=auto_commit)

    # =========================================================================
    # Categories
    # =========================================================================

    def create_category(
        self,
        code: str,
        name: str,
        expense_account_code: str,
        max_amount: int | None = None,
    ) -> ExpenseCategory:
        """
        Add an expense category.

        Raises:
            AccountNotFoundError / AccountInactiveError: bad account.
            InvalidSourceDocumentError: account is not an Expense account,
                duplicate code, or non-positive max_amount.
        """
        account = self._session.get(GLAccount, expense_account_code)
        if account is None:
            raise AccountNotFoundError(expense_account_code)
        if not account.is_active:
            raise AccountInactiveError(expense_account_code)
        if account.account_type is not AccountType.EXPENSE:
            raise InvalidSourceDocumentError(
                "expense-category",
                f"account {expense_account_code} is {account.type}, not Expense",
            )
        if max_amount is not None:
            require_amount("expense-category", "max_amount", max_amount)
        existing = self._session.execute(
            select(ExpenseCategoryModel).where(ExpenseCategoryModel.code == code)
        ).scalar_one_or_none()
        if existing is not None:
            raise InvalidSourceDocumentError("expense-category", f"code {code} already exists")

        category = ExpenseCategoryModel(
            code=code,
            name=name,
            expense_account_code=expense_account_code,
            max_amount=max_amount,
            is_active=True,
        )
        self._session.add(category)
        self._session.flush()
        logger.info("expense_category_created", extra={
            "category_code": code,
            "expense_account_code": expense_account_code,
        })
        return category.to_dto()

    # =========================================================================
    # Claims
    # =========================================================================

    def submit_expense(
        self,
        category_id: int,
        description: str,
        amount: int,
        expense_date: date,
        expense_type: ExpenseType | str,
        payee: str,
        paid_from_account_code: str | None = None,
    ) -> Expense:
        """
        Record a submitted expense claim (no posting yet).

        PETTY_CASH claims default ``paid_from_account_code`` to the
        configured petty-cash role.

        Raises:
            SourceDocumentNotFoundError: unknown category.
            InvalidSourceDocumentError: bad amount, over the category
                limit, or inactive category.
            AccountNotFoundError / AccountInactiveError: bad petty-cash
                account.
        """
        kind = ExpenseType(expense_type)
        value = require_amount(EXPENSE, "amount", amount)
        category = self._session.get(ExpenseCategoryModel, category_id)
        if category is None:
            raise SourceDocumentNotFoundError("expense-category", category_id)
        if not category.is_active:
            raise InvalidSourceDocumentError(EXPENSE, f"category {category.code} is inactive")
        if category.max_amount is not None and value > category.max_amount:
            raise InvalidSourceDocumentError(
                EXPENSE,
                f"amount {value} exceeds category limit {category.max_amount}",
            )
        if not payee:
            raise InvalidSourceDocumentError(EXPENSE, "payee is required")

        expense = ExpenseModel(
            description=description,
            amount=value,
            expense_date=expense_date,
            expense_type=kind.value,
            status=ExpenseStatus.SUBMITTED.value,
            category_id=category.id,
            payee=payee,
            paid_from_account_code=(
                require_posting_account(
                    self._session, paid_from_account_code or self._roles.petty_cash
                )
                if kind is ExpenseType.PETTY_CASH
                else None
            ),
        )
        self._session.add(expense)
        self._session.flush()
        expense.expense_number = f"EXP-{expense_date.year}-{expense.id:04d}"
        self._session.flush()

        logger.info("expense_submitted", extra={
            "expense_id": expense.id,
            "expense_type": kind.value,
            "amount": value,
        })
        return expense.to_dto()

    def approve_expense(self, expense_id: int) -> PostingResult:
        """
        Approve a submitted expense and post it on its expense date.

        PETTY_CASH: Dr expense / Cr petty cash, status PAID.
        REIMBURSABLE: Dr expense / Cr Employee Payables, status APPROVED.
        """

        def work() -> PostingResult:
            expense = self._load_expense(expense_id)
            self._require_status(expense, ExpenseStatus.SUBMITTED)

            if expense.expense_type == ExpenseType.PETTY_CASH.value:
                self._require_funds(expense.paid_from_account_code, expense.amount)

            now = self._clock.now()
            expense.approved_at = now
            if expense.expense_type == ExpenseType.PETTY_CASH.value:
                expense.status = ExpenseStatus.PAID.value
                expense.paid_at = now
            else:
                expense.status = ExpenseStatus.APPROVED.value
            self._session.flush()

            logger.info("expense_approved", extra={
                "expense_id": expense.id,
                "expense_type": expense.expense_type,
                "status": expense.status,
            })
            return self._post_expense(expense).with_document(expense.id)

        return self._poster.run("expense.approve", work)

    def reject_expense(self, expense_id: int, reason: str) -> Expense:
        expense = self._load_expense(expense_id)
        self._require_status(expense, ExpenseStatus.SUBMITTED)
        expense.status = ExpenseStatus.REJECTED.value
        expense.rejection_reason = reason
        self._session.flush()
        logger.info("expense_rejected", extra={"expense_id": expense.id, "reason": reason})
        return expense.to_dto()

    def reimburse_expense(
        self,
        expense_id: int,
        payment_date: date,
        bank_account_code: str | None = None,
        payment_reference: str | None = None,
    ) -> PostingResult:
        """Pay an approved reimbursable expense: Dr Employee Payables / Cr bank."""

        def work() -> PostingResult:
            expense = self._load_expense(expense_id)
            if expense.expense_type != ExpenseType.REIMBURSABLE.value:
                raise SourceDocumentStateError(
                    EXPENSE, expense_id, expense.expense_type, ExpenseType.REIMBURSABLE.value
                )
            self._require_status(expense, ExpenseStatus.APPROVED)

            expense.status = ExpenseStatus.PAID.value
            expense.paid_at = self._clock.now()
            expense.payment_reference = payment_reference
            expense.reimbursement_date = payment_date
            expense.reimbursement_account_code = bank_account_code or self._roles.bank
            self._session.flush()

            logger.info("expense_reimbursed", extra={
                "expense_id": expense.id,
                "amount": expense.amount,
                "bank_account_code": expense.reimbursement_account_code,
            })
            return self._post_reimbursement(
                expense, payment_date, expense.reimbursement_account_code
            ).with_document(expense.id)

        return self._poster.run("expense.reimburse", work)

    def get_expense(self, expense_id: int) -> Expense | None:
        expense = self._session.get(ExpenseModel, expense_id)
        return expense.to_dto() if expense is not None else None

    # =========================================================================
    # Integrity hooks
    # =========================================================================

    def source_handlers(self) -> list[SourceHandler]:
        return [
            SourceHandler(
                kind=EXPENSE,
                document_keys=lambda: document_keys(
                    self._session, ExpenseModel, ExpenseModel.status.in_(_POSTED_STATES)
                ),
                document_exists=lambda key: document_exists(self._session, ExpenseModel, key),
                repost=self.repost_expense,
            ),
            SourceHandler(
                kind=REIMBURSEMENT,
                document_keys=lambda: document_keys(
                    self._session,
                    ExpenseModel,
                    ExpenseModel.expense_type == ExpenseType.REIMBURSABLE.value,
                    ExpenseModel.status == ExpenseStatus.PAID.value,
                ),
                document_exists=lambda key: document_exists(self._session, ExpenseModel, key),
                repost=self.repost_reimbursement,
            ),
        ]

    def repost_expense(self, key: str) -> PostingResult:
        return self._poster.run(
            "expense.repost",
            lambda: self._post_expense(self._load_expense(document_id(EXPENSE, key))),
            transaction_id=SourceRef.of(EXPENSE, key).transaction_id,
        )

    def repost_reimbursement(self, key: str) -> PostingResult:
        """Repost a reimbursement from the bank account and date it was paid with."""

        def work() -> PostingResult:
            expense = self._load_expense(document_id(REIMBURSEMENT, key))
            return self._post_reimbursement(
                expense, expense.reimbursement_date, expense.reimbursement_account_code
            )

        return self._poster.run(
            "expense.repost_reimbursement",
            work,
            transaction_id=SourceRef.of(REIMBURSEMENT, key).transaction_id,
        )

    # =========================================================================
    # Internal
    # =========================================================================

    def _post_expense(self, expense: ExpenseModel) -> PostingResult:
        account = expense.category.expense_account_code
        if expense.expense_type == ExpenseType.PETTY_CASH.value:
            lines = petty_cash_lines(expense.amount, account, expense.paid_from_account_code)
        else:
            lines = reimbursable_lines(expense.amount, account, self._roles)
        return self._poster.post(
            SourceRef.of(EXPENSE, expense.id),
            expense.expense_date,
            f"Expense {expense.expense_number}: {expense.description}",
            lines,
            reference=expense.expense_number,
        )

    def _post_reimbursement(
        self,
        expense: ExpenseModel,
        payment_date: date,
        bank_account_code: str,
    ) -> PostingResult:
        return self._poster.post(
            SourceRef.of(REIMBURSEMENT, expense.id),
            payment_date,
            f"Reimbursement of {expense.expense_number} to {expense.payee}",
            reimbursement_lines(expense.amount, bank_account_code, self._roles),
            reference=expense.payment_reference,
        )

    def _require_funds(self, account_code: str | None, amount: int) -> None:
        account = self._session.get(GLAccount, account_code) if account_code else None
        if account is None:
            raise AccountNotFoundError(account_code or "")
        self._session.refresh(account, ["balance"])
        if account.balance < amount:
            raise InsufficientFundsError(account_code, account.balance, amount)

    def _load_expense(self, expense_id: int) -> ExpenseModel:
        expense = self._session.get(ExpenseModel, expense_id)
        if expense is None:
            raise SourceDocumentNotFoundError(EXPENSE, expense_id)
        return expense

    @staticmethod
    def _require_status(expense: ExpenseModel, expected: ExpenseStatus) -> None:
        if expense.status != expected.value:
            raise SourceDocumentStateError(EXPENSE, expense.id, expense.status, expected.value)
