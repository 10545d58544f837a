"""
ledger_config -- public entrypoint for ledger configuration.

Responsibility:
    ``load_ledger_config()`` is the way to obtain configuration at runtime.
    It returns a frozen, validated ``LedgerConfig``.  There is no module
    level cache and no global: callers load once at startup and pass the
    value to the services that need it.

Architecture position:
    Configuration.  Sits above ``ledger_kernel`` and below
    ``ledger_modules`` / ``ledger_services``.  The kernel MUST NEVER import
    from ``ledger_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ConfigError`` -- schema or consistency validation failures.

Audit relevance:
    Every successful load emits a ``ledger_config_loaded`` log entry with the
    source path, entity, currency and chart size.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_config_file
from ledger_config.schema import (
    AccountClassification,
    AccountDef,
    AccountRoles,
    ConfigError,
    LedgerConfig,
    PayrollRates,
)

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"


def load_ledger_config(path: str | Path | None = None) -> LedgerConfig:
    """
    Load and validate the ledger configuration.

    Args:
        path: YAML file to load.  Defaults to the packaged
            ``defaults/ledger.yaml``.

    Returns:
        A frozen LedgerConfig.
    """
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_config_file(source)
    _logger.info(
        "ledger_config_loaded",
        extra={
            "config_path": str(source),
            "entity_name": config.entity_name,
            "currency": config.currency,
            "account_count": len(config.accounts),
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "load_ledger_config",
    "AccountClassification",
    "AccountDef",
    "AccountRoles",
    "ConfigError",
    "LedgerConfig",
    "PayrollRates",
]
