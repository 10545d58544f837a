"""
Expense ORM Models (``ledger_modules.expense.orm``).

Responsibility
--------------
SQLAlchemy persistence models for expense categories and expense claims.

Architecture position
---------------------
**Modules layer** -- persistence.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date, datetime

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import EpochDate, EpochDateTime, TrackedBase
from ledger_kernel.db.types import Amount, IntPK


class ExpenseCategoryModel(TrackedBase):
    """
    ORM model for expense categories.

    Guarantees:
        - code is unique (uq_expense_categories_code).
        - expense_account_code FK to gl_accounts.code.
    """

    __tablename__ = "expense_categories"

    __table_args__ = (
        UniqueConstraint("code", name="uq_expense_categories_code"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    expense_account_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=False
    )
    max_amount: Mapped[int | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.expense.models import ExpenseCategory

        return ExpenseCategory(
            id=self.id,
            code=self.code,
            name=self.name,
            expense_account_code=self.expense_account_code,
            max_amount=self.max_amount,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<ExpenseCategoryModel {self.code} -> {self.expense_account_code}>"


class ExpenseModel(TrackedBase):
    """
    ORM model for expense claims.

    Posted under ``exp-{id}`` on approval and, for reimbursable expenses,
    ``exp-reimb-{id}`` on reimbursement.

    Guarantees:
        - expense_number is unique.
        - amount > 0.
    """

    __tablename__ = "expenses"

    __table_args__ = (
        UniqueConstraint("expense_number", name="uq_expenses_number"),
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        Index("idx_expenses_status", "status"),
        Index("idx_expenses_type", "expense_type"),
        Index("idx_expenses_category", "category_id"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    expense_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Amount] = mapped_column(nullable=False)
    expense_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)
    expense_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="SUBMITTED", nullable=False)
    category_id: Mapped[int] = mapped_column(
        IntPK, ForeignKey("expense_categories.id"), nullable=False
    )
    payee: Mapped[str] = mapped_column(String(255), nullable=False)
    paid_from_account_code: Mapped[str | None] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(EpochDateTime(), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(EpochDateTime(), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reimbursement_date: Mapped[date | None] = mapped_column(EpochDate(), nullable=True)
    reimbursement_account_code: Mapped[str | None] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=True
    )

    category: Mapped[ExpenseCategoryModel] = relationship(lazy="joined")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.expense.models import Expense, ExpenseStatus, ExpenseType

        return Expense(
            id=self.id,
            expense_number=self.expense_number or "",
            description=self.description,
            amount=self.amount,
            expense_date=self.expense_date,
            expense_type=ExpenseType(self.expense_type),
            status=ExpenseStatus(self.status),
            category_id=self.category_id,
            payee=self.payee,
            paid_from_account_code=self.paid_from_account_code,
            approved_at=self.approved_at,
            paid_at=self.paid_at,
            rejection_reason=self.rejection_reason,
            payment_reference=self.payment_reference,
            reimbursement_date=self.reimbursement_date,
            reimbursement_account_code=self.reimbursement_account_code,
        )

    def __repr__(self) -> str:
        return f"<ExpenseModel {self.expense_number}: {self.amount} {self.status}>"
