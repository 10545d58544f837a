"""
Configuration schema (``ledger_config.schema``).

Frozen dataclasses describing one ledger's static configuration: the chart
of accounts, the account roles sub-ledger postings resolve to, statement
classification prefixes and payroll withholding rates.  Instances are built
by ``ledger_config.loader`` and passed explicitly to services.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields

ACCOUNT_TYPES = ("Asset", "Liability", "Equity", "Revenue", "Expense")


class ConfigError(ValueError):
    """Configuration file is malformed or internally inconsistent."""

    code: str = "CONFIG_ERROR"


@dataclass(frozen=True)
class AccountDef:
    """One chart-of-accounts entry as declared in configuration."""

    code: str
    name: str
    type: str
    description: str | None = None
    parent_code: str | None = None


@dataclass(frozen=True)
class AccountRoles:
    """
    Posting roles used by the sub-ledger modules, mapped to account codes.

    Sub-ledger profiles never hard-code account numbers; they ask for a role
    (``roles.accounts_payable``) and the configuration answers with a code.
    """

    cash: str = "1010"
    petty_cash: str = "1020"
    bank: str = "1110"
    accounts_receivable: str = "1200"
    inventory: str = "1310"
    finished_goods: str = "1340"
    fixed_assets: str = "1510"
    accumulated_depreciation: str = "1610"
    accounts_payable: str = "2100"
    employee_payables: str = "2150"
    sales_tax_payable: str = "2310"
    salaries_payable: str = "2410"
    income_tax_payable: str = "2420"
    pension_payable: str = "2430"
    retained_earnings: str = "3200"
    sales_revenue: str = "4000"
    sales_discounts: str = "4200"
    cogs: str = "5100"
    salary_expense: str = "5400"
    depreciation_expense: str = "5500"

    @classmethod
    def role_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def code_for(self, role: str) -> str:
        if role not in self.role_names():
            raise KeyError(f"Unknown account role: {role}")
        return getattr(self, role)

    def as_dict(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in self.role_names()}


@dataclass(frozen=True)
class AccountClassification:
    """
    Rules for classifying accounts into financial statement sections.

    Balance-sheet sections use code prefixes (current vs non-current).
    The income statement uses the account type, with COGS picked out by
    prefix from the expense accounts.
    """

    current_asset_prefixes: tuple[str, ...] = ("10", "11", "12", "13", "14")
    non_current_asset_prefixes: tuple[str, ...] = ("15", "16", "17", "18", "19")
    current_liability_prefixes: tuple[str, ...] = ("20", "21", "22", "23", "24")
    non_current_liability_prefixes: tuple[str, ...] = ("25", "26", "27", "28", "29")
    cogs_prefixes: tuple[str, ...] = ("5100",)
    other_expense_prefixes: tuple[str, ...] = ("60", "61", "62")

    @staticmethod
    def matches_prefix(code: str, prefixes: tuple[str, ...]) -> bool:
        """Check if an account code matches any of the given prefixes."""
        return any(code.startswith(p) for p in prefixes)


@dataclass(frozen=True)
class PayrollRates:
    """Withholding rates in basis points (1200 = 12%)."""

    income_tax_bps: int = 1200
    pension_bps: int = 800


@dataclass(frozen=True)
class LedgerConfig:
    """
    Complete static configuration for one ledger.

    Guarantees (after ``loader.validate_config``):
        - account codes are unique and types are valid.
        - every role and parent code refers to a declared account.
        - balance_tolerance >= 0.
    """

    entity_name: str
    currency: str = "USD"
    decimal_places: int = 2
    balance_tolerance: int = 1
    accounts: tuple[AccountDef, ...] = ()
    roles: AccountRoles = field(default_factory=AccountRoles)
    classification: AccountClassification = field(default_factory=AccountClassification)
    payroll: PayrollRates = field(default_factory=PayrollRates)

    def account(self, code: str) -> AccountDef:
        for acct in self.accounts:
            if acct.code == code:
                return acct
        raise KeyError(f"Account {code} is not in the configured chart")

    @property
    def account_codes(self) -> frozenset[str]:
        return frozenset(acct.code for acct in self.accounts)
