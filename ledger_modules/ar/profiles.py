"""
Accounts Receivable posting profiles.

Profiles:
    invoice_lines  -- Dr AR (total), Dr Sales Discounts (discount),
                      Cr Sales Revenue (gross), Cr Sales Tax Payable (tax);
                      Dr COGS / Cr Finished Goods when goods were shipped.
    receipt_lines  -- Dr bank / Cr AR

Zero-amount lines are dropped by the poster, so an invoice without
discount, tax or cost yields a plain two-line entry.
"""

from ledger_config.schema import AccountRoles
from ledger_kernel.domain.dtos import LineSpec

MODULE_NAME = "ar"

INVOICE = "invoice"
RECEIPT = "rcpt"


def invoice_total(subtotal: int, discount_amount: int, tax_amount: int) -> int:
    """Amount receivable: gross less discount plus tax."""
    return subtotal - discount_amount + tax_amount


def invoice_lines(
    subtotal: int,
    discount_amount: int,
    tax_amount: int,
    cost_amount: int,
    roles: AccountRoles,
) -> tuple[LineSpec, ...]:
    total = invoice_total(subtotal, discount_amount, tax_amount)
    return (
        LineSpec.dr(roles.accounts_receivable, total, "Customer invoice"),
        LineSpec.dr(roles.sales_discounts, discount_amount, "Sales discount"),
        LineSpec.cr(roles.sales_revenue, subtotal, "Sales revenue"),
        LineSpec.cr(roles.sales_tax_payable, tax_amount, "Sales tax"),
        LineSpec.dr(roles.cogs, cost_amount, "Cost of goods sold"),
        LineSpec.cr(roles.finished_goods, cost_amount, "Finished goods shipped"),
    )


def receipt_lines(
    amount: int,
    bank_account_code: str,
    roles: AccountRoles,
) -> tuple[LineSpec, ...]:
    return (
        LineSpec.dr(bank_account_code, amount, "Customer receipt"),
        LineSpec.cr(roles.accounts_receivable, amount, "Customer receipt"),
    )
