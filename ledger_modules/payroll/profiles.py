"""
Payroll posting profiles and withholding arithmetic.

Profiles:
    approval_lines  -- Dr Salary Expense (gross) / Cr Salaries Payable (net)
                       / Cr Income Tax Payable / Cr Pension Payable
    payment_lines   -- Dr the three payables / Cr bank
"""

from ledger_config.schema import AccountRoles, PayrollRates
from ledger_kernel.db.types import apply_basis_points
from ledger_kernel.domain.dtos import LineSpec
from ledger_modules.payroll.models import Withholding

MODULE_NAME = "payroll"

PAYROLL = "payroll"
PAYROLL_PAYMENT = "payroll-pay"


def withhold(gross_pay: int, rates: PayrollRates) -> Withholding:
    """Income tax and pension at the configured basis points, half-up."""
    return Withholding(
        gross_pay=gross_pay,
        income_tax=apply_basis_points(gross_pay, rates.income_tax_bps),
        pension=apply_basis_points(gross_pay, rates.pension_bps),
    )


def approval_lines(
    total_gross: int,
    total_net: int,
    total_income_tax: int,
    total_pension: int,
    roles: AccountRoles,
) -> tuple[LineSpec, ...]:
    return (
        LineSpec.dr(roles.salary_expense, total_gross, "Gross salaries"),
        LineSpec.cr(roles.salaries_payable, total_net, "Net pay"),
        LineSpec.cr(roles.income_tax_payable, total_income_tax, "Income tax withheld"),
        LineSpec.cr(roles.pension_payable, total_pension, "Pension withheld"),
    )


def payment_lines(
    total_net: int,
    total_income_tax: int,
    total_pension: int,
    bank_account_code: str,
    roles: AccountRoles,
) -> tuple[LineSpec, ...]:
    return (
        LineSpec.dr(roles.salaries_payable, total_net, "Net pay disbursed"),
        LineSpec.dr(roles.income_tax_payable, total_income_tax, "Income tax remitted"),
        LineSpec.dr(roles.pension_payable, total_pension, "Pension remitted"),
        LineSpec.cr(
            bank_account_code,
            total_net + total_income_tax + total_pension,
            "Payroll disbursement",
        ),
    )
