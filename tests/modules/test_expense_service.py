"""
Tests for the expense module: categories, petty-cash and reimbursable
claims.
"""

from datetime import date

import pytest

from ledger_kernel.exceptions import (
    AccountNotFoundError,
    InvalidSourceDocumentError,
    SourceDocumentNotFoundError,
    SourceDocumentStateError,
)
from ledger_kernel.services.module_posting_service import PostingStatus
from ledger_modules.expense.models import ExpenseStatus, ExpenseType

EXPENSE_DATE = date(2024, 6, 12)


@pytest.fixture
def travel(expense_service):
    return expense_service.create_category("TRAVEL", "Travel", "5300", max_amount=50_000)


@pytest.fixture
def funded_petty_cash(post_entry):
    post_entry("1020", "1110", 10_000, description="Petty cash float")


def _submit(expense_service, category, amount, expense_type, **kwargs):
    return expense_service.submit_expense(
        category.id,
        "Taxi to supplier",
        amount,
        EXPENSE_DATE,
        expense_type,
        payee="J. Rivera",
        **kwargs,
    )


class TestCategories:

    def test_create_category(self, travel):
        assert travel.code == "TRAVEL"
        assert travel.expense_account_code == "5300"
        assert travel.max_amount == 50_000
        assert travel.is_active

    def test_account_must_be_expense(self, expense_service):
        with pytest.raises(InvalidSourceDocumentError, match="not Expense"):
            expense_service.create_category("BANK", "Bank", "1110")

    def test_unknown_account(self, expense_service):
        with pytest.raises(AccountNotFoundError):
            expense_service.create_category("X", "X", "5999")

    def test_duplicate_code(self, expense_service, travel):
        with pytest.raises(InvalidSourceDocumentError, match="already exists"):
            expense_service.create_category("TRAVEL", "Travel again", "5200")


class TestSubmitExpense:

    def test_petty_cash_defaults_to_petty_cash_account(self, expense_service, travel):
        expense = _submit(expense_service, travel, 2_500, ExpenseType.PETTY_CASH)

        assert expense.expense_number == "EXP-2024-0001"
        assert expense.status == ExpenseStatus.SUBMITTED
        assert expense.expense_type == ExpenseType.PETTY_CASH
        assert expense.paid_from_account_code == "1020"

    def test_reimbursable_has_no_paying_account(self, expense_service, travel):
        expense = _submit(expense_service, travel, 2_500, "REIMBURSABLE")
        assert expense.paid_from_account_code is None

    def test_submission_posts_nothing(self, expense_service, travel, journal_selector):
        _submit(expense_service, travel, 2_500, ExpenseType.REIMBURSABLE)
        assert journal_selector.list_entries() == []

    def test_category_limit(self, expense_service, travel):
        with pytest.raises(InvalidSourceDocumentError, match="category limit"):
            _submit(expense_service, travel, 50_001, ExpenseType.REIMBURSABLE)

    def test_unknown_category(self, expense_service, seeded_chart):
        with pytest.raises(SourceDocumentNotFoundError):
            expense_service.submit_expense(
                42, "Lunch", 100, EXPENSE_DATE, ExpenseType.REIMBURSABLE, payee="A"
            )

    def test_unknown_type(self, expense_service, travel):
        with pytest.raises(ValueError):
            _submit(expense_service, travel, 100, "CORPORATE_CARD")


class TestPettyCash:

    def test_approval_pays_from_petty_cash(
        self, expense_service, travel, funded_petty_cash, balance_of
    ):
        expense = _submit(expense_service, travel, 2_500, ExpenseType.PETTY_CASH)

        result = expense_service.approve_expense(expense.id)

        assert result.status == PostingStatus.POSTED
        assert result.transaction_id == f"exp-{expense.id}"
        assert balance_of("1020") == 7_500
        assert balance_of("5300") == 2_500
        stored = expense_service.get_expense(expense.id)
        assert stored.status == ExpenseStatus.PAID
        assert stored.approved_at is not None
        assert stored.paid_at is not None

    def test_insufficient_funds(self, expense_service, travel, funded_petty_cash, balance_of):
        expense = _submit(expense_service, travel, 10_001, ExpenseType.PETTY_CASH)

        result = expense_service.approve_expense(expense.id)

        assert result.status == PostingStatus.INSUFFICIENT_FUNDS
        assert result.error_code == "INSUFFICIENT_FUNDS"
        assert expense_service.get_expense(expense.id).status == ExpenseStatus.SUBMITTED
        assert balance_of("1020") == 10_000

    def test_cannot_reimburse_petty_cash(self, expense_service, travel, funded_petty_cash):
        expense = _submit(expense_service, travel, 100, ExpenseType.PETTY_CASH)
        expense_service.approve_expense(expense.id)

        result = expense_service.reimburse_expense(expense.id, date(2024, 6, 20))
        assert result.status == PostingStatus.INVALID_STATE


class TestReimbursable:

    def test_approve_then_reimburse(self, expense_service, travel, balance_of, journal_selector):
        expense = _submit(expense_service, travel, 4_000, ExpenseType.REIMBURSABLE)

        approved = expense_service.approve_expense(expense.id)
        assert approved.is_success
        assert expense_service.get_expense(expense.id).status == ExpenseStatus.APPROVED
        assert balance_of("2150") == 4_000
        assert balance_of("5300") == 4_000

        paid = expense_service.reimburse_expense(
            expense.id, date(2024, 6, 25), payment_reference="EFT-55"
        )

        assert paid.transaction_id == f"exp-reimb-{expense.id}"
        assert balance_of("2150") == 0
        assert balance_of("1110") == -4_000
        stored = expense_service.get_expense(expense.id)
        assert stored.status == ExpenseStatus.PAID
        assert stored.payment_reference == "EFT-55"
        assert stored.reimbursement_date == date(2024, 6, 25)
        assert stored.reimbursement_account_code == "1110"
        entry = journal_selector.find_by_transaction_id(paid.transaction_id)
        assert entry.entry_date == date(2024, 6, 25)
        assert entry.reference == "EFT-55"

    def test_reimburse_before_approval(self, expense_service, travel):
        expense = _submit(expense_service, travel, 4_000, ExpenseType.REIMBURSABLE)
        result = expense_service.reimburse_expense(expense.id, date(2024, 6, 25))
        assert result.status == PostingStatus.INVALID_STATE

    def test_double_approval(self, expense_service, travel):
        expense = _submit(expense_service, travel, 4_000, ExpenseType.REIMBURSABLE)
        expense_service.approve_expense(expense.id)
        assert expense_service.approve_expense(expense.id).status == PostingStatus.INVALID_STATE


class TestRejectExpense:

    def test_reject(self, expense_service, travel, journal_selector):
        expense = _submit(expense_service, travel, 4_000, ExpenseType.REIMBURSABLE)

        rejected = expense_service.reject_expense(expense.id, "No receipt")

        assert rejected.status == ExpenseStatus.REJECTED
        assert rejected.rejection_reason == "No receipt"
        assert expense_service.approve_expense(expense.id).status == PostingStatus.INVALID_STATE
        assert journal_selector.list_entries() == []

    def test_reject_approved_expense(self, expense_service, travel):
        expense = _submit(expense_service, travel, 4_000, ExpenseType.REIMBURSABLE)
        expense_service.approve_expense(expense.id)
        with pytest.raises(SourceDocumentStateError):
            expense_service.reject_expense(expense.id, "Too late")


class TestSourceHandlers:

    def test_only_posted_expenses_need_entries(self, expense_service, travel):
        submitted = _submit(expense_service, travel, 100, ExpenseType.REIMBURSABLE)
        approved = _submit(expense_service, travel, 200, ExpenseType.REIMBURSABLE)
        expense_service.approve_expense(approved.id)

        handlers = {h.kind: h for h in expense_service.source_handlers()}

        assert handlers["exp"].document_keys() == [str(approved.id)]
        assert handlers["exp-reimb"].document_keys() == []
        assert handlers["exp"].document_exists(str(submitted.id))
