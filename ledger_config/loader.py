"""
Configuration loader (``ledger_config.loader``).

Responsibility
--------------
Loads the ledger YAML file and parses it into the frozen
``ledger_config.schema`` dataclasses, then validates the result for
internal consistency.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Parse and consistency errors raise ``ConfigError`` with a descriptive
  message; required keys have no silent defaults.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys, unknown types, dangling role or parent codes
  -> ``ConfigError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    ACCOUNT_TYPES,
    AccountClassification,
    AccountDef,
    AccountRoles,
    ConfigError,
    LedgerConfig,
    PayrollRates,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Postconditions:
        - Returns a ``dict`` (possibly empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def parse_account(data: dict[str, Any]) -> AccountDef:
    """Parse one chart-of-accounts entry."""
    try:
        code = str(data["code"])
        name = data["name"]
        acct_type = data["type"]
    except KeyError as exc:
        raise ConfigError(f"Account entry missing key {exc.args[0]!r}: {data}") from None
    parent = data.get("parent_code")
    return AccountDef(
        code=code,
        name=name,
        type=acct_type,
        description=data.get("description"),
        parent_code=str(parent) if parent is not None else None,
    )


def parse_roles(data: dict[str, Any] | None) -> AccountRoles:
    """Parse the role -> account code mapping; unknown role names are rejected."""
    data = data or {}
    known = set(AccountRoles.role_names())
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown account roles: {', '.join(unknown)}")
    return AccountRoles(**{k: str(v) for k, v in data.items()})


def _prefixes(value: Any) -> tuple[str, ...]:
    if isinstance(value, (str, int)):
        return (str(value),)
    return tuple(str(v) for v in value)


def parse_classification(data: dict[str, Any] | None) -> AccountClassification:
    data = data or {}
    defaults = AccountClassification()
    return AccountClassification(
        current_asset_prefixes=_prefixes(
            data.get("current_asset_prefixes", defaults.current_asset_prefixes)
        ),
        non_current_asset_prefixes=_prefixes(
            data.get("non_current_asset_prefixes", defaults.non_current_asset_prefixes)
        ),
        current_liability_prefixes=_prefixes(
            data.get("current_liability_prefixes", defaults.current_liability_prefixes)
        ),
        non_current_liability_prefixes=_prefixes(
            data.get(
                "non_current_liability_prefixes", defaults.non_current_liability_prefixes
            )
        ),
        cogs_prefixes=_prefixes(data.get("cogs_prefixes", defaults.cogs_prefixes)),
        other_expense_prefixes=_prefixes(
            data.get("other_expense_prefixes", defaults.other_expense_prefixes)
        ),
    )


def parse_payroll(data: dict[str, Any] | None) -> PayrollRates:
    data = data or {}
    defaults = PayrollRates()
    return PayrollRates(
        income_tax_bps=int(data.get("income_tax_bps", defaults.income_tax_bps)),
        pension_bps=int(data.get("pension_bps", defaults.pension_bps)),
    )


def parse_ledger_config(data: dict[str, Any]) -> LedgerConfig:
    """Build a LedgerConfig from the parsed YAML mapping (not yet validated)."""
    ledger = data.get("ledger") or {}
    if "entity_name" not in ledger:
        raise ConfigError("ledger.entity_name is required")
    return LedgerConfig(
        entity_name=ledger["entity_name"],
        currency=ledger.get("currency", "USD"),
        decimal_places=int(ledger.get("decimal_places", 2)),
        balance_tolerance=int(ledger.get("balance_tolerance", 1)),
        accounts=tuple(parse_account(a) for a in data.get("accounts") or ()),
        roles=parse_roles(data.get("roles")),
        classification=parse_classification(data.get("classification")),
        payroll=parse_payroll(data.get("payroll")),
    )


def validate_config(config: LedgerConfig) -> list[str]:
    """
    Return a list of consistency errors (empty when the config is valid).

    Checks: non-empty chart, unique codes, valid types, parents and roles
    resolve, tolerance and rates are non-negative.
    """
    errors: list[str] = []
    if not config.accounts:
        errors.append("chart of accounts is empty")

    seen: set[str] = set()
    for acct in config.accounts:
        if acct.code in seen:
            errors.append(f"duplicate account code {acct.code}")
        seen.add(acct.code)
        if acct.type not in ACCOUNT_TYPES:
            errors.append(f"account {acct.code} has unknown type {acct.type!r}")

    for acct in config.accounts:
        if acct.parent_code is not None and acct.parent_code not in seen:
            errors.append(f"account {acct.code} has unknown parent {acct.parent_code}")
        if acct.parent_code == acct.code:
            errors.append(f"account {acct.code} is its own parent")

    for role, code in config.roles.as_dict().items():
        if code not in seen:
            errors.append(f"role {role} maps to undeclared account {code}")

    if config.balance_tolerance < 0:
        errors.append("balance_tolerance must be >= 0")
    if config.payroll.income_tax_bps < 0 or config.payroll.pension_bps < 0:
        errors.append("payroll rates must be >= 0")
    if config.payroll.income_tax_bps + config.payroll.pension_bps > 10_000:
        errors.append("payroll withholdings exceed 100%")
    currency = config.currency
    if not (isinstance(currency, str) and len(currency) == 3 and currency.isalpha()):
        errors.append(f"invalid currency code {currency!r}")
    return errors


def load_config_file(path: Path) -> LedgerConfig:
    """
    Load, parse and validate a ledger configuration file.

    Raises:
        ConfigError: with every consistency error joined into one message.
    """
    config = parse_ledger_config(load_yaml_file(path))
    errors = validate_config(config)
    if errors:
        raise ConfigError(f"{path}: " + "; ".join(errors))
    return config
