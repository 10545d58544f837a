"""
Payroll Module (``ledger_modules.payroll``).

Payroll runs with basis-point withholdings; accrual on approval
(``payroll-{id}``) and disbursement on payment (``payroll-pay-{id}``).
"""

from ledger_modules.payroll.models import (
    PayrollRun,
    PayrollStatus,
    Payslip,
    PayslipInput,
    Withholding,
)
from ledger_modules.payroll.profiles import PAYROLL, PAYROLL_PAYMENT, withhold
from ledger_modules.payroll.service import PayrollService

__all__ = [
    "PayrollRun",
    "PayrollStatus",
    "Payslip",
    "PayslipInput",
    "Withholding",
    "PAYROLL",
    "PAYROLL_PAYMENT",
    "withhold",
    "PayrollService",
]
