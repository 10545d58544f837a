"""
Payroll ORM Models (``ledger_modules.payroll.orm``).

Responsibility
--------------
SQLAlchemy persistence models for payroll runs and payslips.

Architecture position
---------------------
**Modules layer** -- persistence.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import EpochDate, TrackedBase
from ledger_kernel.db.types import Amount, IntPK


class PayrollRunModel(TrackedBase):
    """
    ORM model for payroll runs.

    Posted under ``payroll-{id}`` on approval and ``payroll-pay-{id}`` on
    payment.

    Guarantees:
        - end_date >= start_date.
        - total_net = total_gross - total_income_tax - total_pension.
    """

    __tablename__ = "payroll_runs"

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_payroll_runs_dates"),
        CheckConstraint(
            "total_net = total_gross - total_income_tax - total_pension",
            name="ck_payroll_runs_net",
        ),
        Index("idx_payroll_runs_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    period_name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)
    end_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)
    pay_date: Mapped[date] = mapped_column(EpochDate(), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="DRAFT", nullable=False)
    total_gross: Mapped[Amount] = mapped_column(default=0, nullable=False)
    total_income_tax: Mapped[Amount] = mapped_column(default=0, nullable=False)
    total_pension: Mapped[Amount] = mapped_column(default=0, nullable=False)
    total_net: Mapped[Amount] = mapped_column(default=0, nullable=False)
    paid_date: Mapped[date | None] = mapped_column(EpochDate(), nullable=True)
    payment_bank_account_code: Mapped[str | None] = mapped_column(
        String(50), ForeignKey("gl_accounts.code"), nullable=True
    )

    payslips: Mapped[list["PayslipModel"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PayslipModel.id",
    )

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.payroll.models import PayrollRun, PayrollStatus

        return PayrollRun(
            id=self.id,
            period_name=self.period_name,
            start_date=self.start_date,
            end_date=self.end_date,
            pay_date=self.pay_date,
            status=PayrollStatus(self.status),
            total_gross=self.total_gross,
            total_income_tax=self.total_income_tax,
            total_pension=self.total_pension,
            total_net=self.total_net,
            paid_date=self.paid_date,
            payment_bank_account_code=self.payment_bank_account_code,
            payslips=tuple(slip.to_dto() for slip in self.payslips),
        )

    def __repr__(self) -> str:
        return f"<PayrollRunModel {self.id}: {self.period_name} {self.status}>"


class PayslipModel(TrackedBase):
    """
    ORM model for payslips.

    Guarantees:
        - one payslip per employee per run (uq_payslips_run_employee).
        - net_pay = gross_pay - income_tax - pension.
    """

    __tablename__ = "payslips"

    __table_args__ = (
        UniqueConstraint("run_id", "employee_name", name="uq_payslips_run_employee"),
        CheckConstraint(
            "net_pay = gross_pay - income_tax - pension",
            name="ck_payslips_net",
        ),
        Index("idx_payslips_run_id", "run_id"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(IntPK, primary_key=True, autoincrement=True)
    run_id: Mapped[int] = mapped_column(
        IntPK, ForeignKey("payroll_runs.id", ondelete="CASCADE"), nullable=False
    )
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    gross_pay: Mapped[Amount] = mapped_column(nullable=False)
    income_tax: Mapped[Amount] = mapped_column(default=0, nullable=False)
    pension: Mapped[Amount] = mapped_column(default=0, nullable=False)
    net_pay: Mapped[Amount] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="DRAFT", nullable=False)

    run: Mapped[PayrollRunModel] = relationship(back_populates="payslips")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.payroll.models import Payslip, PayrollStatus

        return Payslip(
            id=self.id,
            run_id=self.run_id,
            employee_name=self.employee_name,
            gross_pay=self.gross_pay,
            income_tax=self.income_tax,
            pension=self.pension,
            net_pay=self.net_pay,
            status=PayrollStatus(self.status),
        )

    def __repr__(self) -> str:
        return f"<PayslipModel {self.id}: {self.employee_name} {self.net_pay}>"
