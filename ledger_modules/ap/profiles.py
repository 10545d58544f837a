"""
Accounts Payable posting profiles.

Pure mappings from AP documents to balanced journal lines.  Accounts come
from the configured roles; no account codes are hard-coded here.

Profiles:
    bill_lines          -- Dr Inventory / Cr Accounts Payable
    bill_payment_lines  -- Dr Accounts Payable / Cr bank (or cash)
"""

from ledger_config.schema import AccountRoles
from ledger_kernel.domain.dtos import LineSpec

MODULE_NAME = "ap"

# Source kinds (transaction ids "bill-{id}" and "pay-{id}")
BILL = "bill"
BILL_PAYMENT = "pay"


def bill_lines(total_amount: int, roles: AccountRoles) -> tuple[LineSpec, ...]:
    """Goods received on credit."""
    return (
        LineSpec.dr(roles.inventory, total_amount, "Inventory received"),
        LineSpec.cr(roles.accounts_payable, total_amount, "Vendor bill"),
    )


def bill_payment_lines(
    amount: int,
    bank_account_code: str,
    roles: AccountRoles,
) -> tuple[LineSpec, ...]:
    """Settlement of a vendor bill."""
    return (
        LineSpec.dr(roles.accounts_payable, amount, "Bill payment"),
        LineSpec.cr(bank_account_code, amount, "Bill payment"),
    )
