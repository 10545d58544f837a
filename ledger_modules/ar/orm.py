"""
Accounts Receivable ORM Models (``ledger_modules.ar.orm``).

Responsibility
--------------
SQLAlchemy persistence models for the AR module.

Architecture position
---------------------
**Modules layer** -- persistence.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import EpochDate, TrackedBase
from ledger_kernel.db.types import Amount, IntPK


class CustomerInvoiceModel(TrackedBase):
    """
    ORM model for customer invoices.

    Maps to the ``Invoice`` frozen dataclass.  Posted under transaction id
    ``invoice-{id}``.

    Guarantees:
        - invoice_number is unique when set (uq_ar_invoices_number).
        - total_amount = subtotal - discount_amount + tax_amount.
        - 0 <= amount_paid <= total_amount.
    """

    __tablename__ = "ar_customer_invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_ar_invoices_number"),
        CheckConstraint(
            "total_amount = subtotal - discount_amount + tax_amount",
            name="ck_ar_invoices_total",
        ),
        CheckConstraint(
            "amount_paid >= 0 AND amount_paid <= total_amount",
            name="ck_ar_invoices_paid_range",
        ),
        Index("idx_ar_invoices_status", "status"),
        Index("idx_ar_invoices_date", "invoice_date"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    invoice_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)
    due_date: Mapped[date | None] = mapped_column(EpochDate(), nullable=True)
    subtotal: Mapped[Amount] = mapped_column(nullable=False)
    discount_amount: Mapped[Amount] = mapped_column(default=0, nullable=False)
    tax_amount: Mapped[Amount] = mapped_column(default=0, nullable=False)
    total_amount: Mapped[Amount] = mapped_column(nullable=False)
    cost_amount: Mapped[Amount] = mapped_column(default=0, nullable=False)
    amount_paid: Mapped[Amount] = mapped_column(default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="OPEN", nullable=False)

    receipts: Mapped[list["CustomerReceiptModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="CustomerReceiptModel.id",
    )

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.ar.models import Invoice, InvoiceStatus

        return Invoice(
            id=self.id,
            invoice_number=self.invoice_number or "",
            customer_name=self.customer_name,
            invoice_date=self.invoice_date,
            due_date=self.due_date,
            subtotal=self.subtotal,
            discount_amount=self.discount_amount,
            tax_amount=self.tax_amount,
            total_amount=self.total_amount,
            cost_amount=self.cost_amount,
            amount_paid=self.amount_paid,
            status=InvoiceStatus(self.status),
        )

    def __repr__(self) -> str:
        return f"<CustomerInvoiceModel {self.invoice_number}: {self.total_amount} {self.status}>"


class CustomerReceiptModel(TrackedBase):
    """
    ORM model for customer receipts.

    Maps to the ``Receipt`` frozen dataclass.  Posted under transaction id
    ``rcpt-{id}``.
    """

    __tablename__ = "ar_customer_receipts"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ar_receipts_amount_positive"),
        Index("idx_ar_receipts_invoice_id", "invoice_id"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        IntPK,
        ForeignKey("ar_customer_invoices.id", ondelete="CASCADE"),
        nullable=False,
    )
    receipt_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)
    amount: Mapped[Amount] = mapped_column(nullable=False)
    bank_account_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=False
    )
    payment_method: Mapped[str] = mapped_column(String(30), default="CASH", nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    invoice: Mapped[CustomerInvoiceModel] = relationship(back_populates="receipts")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.ar.models import Receipt

        return Receipt(
            id=self.id,
            invoice_id=self.invoice_id,
            receipt_date=self.receipt_date,
            amount=self.amount,
            bank_account_code=self.bank_account_code,
            payment_method=self.payment_method,
            reference=self.reference,
        )

    def __repr__(self) -> str:
        return f"<CustomerReceiptModel {self.id}: invoice {self.invoice_id} {self.amount}>"
