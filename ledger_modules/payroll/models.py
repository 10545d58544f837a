"""
Payroll Domain Models (``ledger_modules.payroll.models``).

Responsibility
--------------
Frozen value objects for payroll runs and their per-employee payslips.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.

Invariants enforced
-------------------
* ``net_pay == gross_pay - income_tax - pension`` on every payslip.
* Run totals are the sums over its payslips.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class PayrollStatus(str, Enum):
    """Run workflow: DRAFT -> APPROVED -> PAID."""

    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    PAID = "PAID"


@dataclass(frozen=True)
class PayslipInput:
    """One employee's gross pay for a run being created."""

    employee_name: str
    gross_pay: int


@dataclass(frozen=True)
class Withholding:
    """Amounts withheld from one gross pay."""

    gross_pay: int
    income_tax: int
    pension: int

    @property
    def net_pay(self) -> int:
        return self.gross_pay - self.income_tax - self.pension


@dataclass(frozen=True)
class Payslip:
    id: int
    run_id: int
    employee_name: str
    gross_pay: int
    income_tax: int
    pension: int
    net_pay: int
    status: PayrollStatus


@dataclass(frozen=True)
class PayrollRun:
    """A pay period's payroll.

    Contract: ``total_net == total_gross - total_income_tax - total_pension``.
    """

    id: int
    period_name: str
    start_date: date
    end_date: date
    pay_date: date
    status: PayrollStatus
    total_gross: int
    total_income_tax: int
    total_pension: int
    total_net: int
    paid_date: date | None = None
    payment_bank_account_code: str | None = None
    payslips: tuple[Payslip, ...] = ()
