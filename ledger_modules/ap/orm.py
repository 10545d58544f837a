"""
Accounts Payable ORM Models (``ledger_modules.ap.orm``).

Responsibility
--------------
SQLAlchemy persistence models for the AP module.  Maps frozen domain
dataclasses from ``models.py`` to database tables.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import EpochDate, TrackedBase
from ledger_kernel.db.types import Amount, IntPK


# ---------------------------------------------------------------------------
# 1. VendorBillModel
# ---------------------------------------------------------------------------


class VendorBillModel(TrackedBase):
    """
    ORM model for vendor bills.

    Maps to the ``Bill`` frozen dataclass.  Journal correlation is by
    transaction id ``bill-{id}``, not by foreign key, so an entry survives
    the deletion of its bill (and the integrity sweep can find it).

    Guarantees:
        - 0 <= amount_paid <= total_amount (ck_ap_bills_paid_range).
        - status stored as string enum value.
    """

    __tablename__ = "ap_vendor_bills"

    __table_args__ = (
        CheckConstraint(
            "amount_paid >= 0 AND amount_paid <= total_amount",
            name="ck_ap_bills_paid_range",
        ),
        Index("idx_ap_bills_status", "status"),
        Index("idx_ap_bills_bill_date", "bill_date"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    bill_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bill_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)
    due_date: Mapped[date | None] = mapped_column(EpochDate(), nullable=True)
    total_amount: Mapped[Amount] = mapped_column(nullable=False)
    amount_paid: Mapped[Amount] = mapped_column(default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="OPEN", nullable=False)

    payments: Mapped[list["BillPaymentModel"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillPaymentModel.id",
    )

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.ap.models import Bill, BillStatus

        return Bill(
            id=self.id,
            vendor_name=self.vendor_name,
            bill_number=self.bill_number,
            bill_date=self.bill_date,
            due_date=self.due_date,
            total_amount=self.total_amount,
            amount_paid=self.amount_paid,
            status=BillStatus(self.status),
        )

    def __repr__(self) -> str:
        return f"<VendorBillModel {self.id}: {self.vendor_name} {self.total_amount} {self.status}>"


# ---------------------------------------------------------------------------
# 2. BillPaymentModel
# ---------------------------------------------------------------------------


class BillPaymentModel(TrackedBase):
    """
    ORM model for payments against vendor bills.

    Maps to the ``BillPayment`` frozen dataclass.  Posted under
    transaction id ``pay-{id}``.

    Guarantees:
        - amount > 0 (ck_ap_payments_amount_positive).
        - bill_id FK to ap_vendor_bills.id; rows go with their bill.
    """

    __tablename__ = "ap_bill_payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ap_payments_amount_positive"),
        Index("idx_ap_payments_bill_id", "bill_id"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    bill_id: Mapped[int] = mapped_column(
        IntPK,
        ForeignKey("ap_vendor_bills.id", ondelete="CASCADE"),
        nullable=False,
    )
    payment_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)
    amount: Mapped[Amount] = mapped_column(nullable=False)
    bank_account_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=False
    )
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    bill: Mapped[VendorBillModel] = relationship(back_populates="payments")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.ap.models import BillPayment

        return BillPayment(
            id=self.id,
            bill_id=self.bill_id,
            payment_date=self.payment_date,
            amount=self.amount,
            bank_account_code=self.bank_account_code,
            reference=self.reference,
        )

    def __repr__(self) -> str:
        return f"<BillPaymentModel {self.id}: bill {self.bill_id} {self.amount}>"
