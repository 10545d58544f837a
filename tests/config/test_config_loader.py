"""
Tests for ledger configuration loading and validation.

Variants are built from the packaged defaults so each test changes one
thing and asserts on the resulting error.
"""

from pathlib import Path

import pytest
import yaml

from ledger_config import (
    DEFAULT_CONFIG_PATH,
    AccountClassification,
    ConfigError,
    LedgerConfig,
    load_ledger_config,
)
from ledger_config.loader import load_yaml_file, parse_ledger_config, validate_config


@pytest.fixture
def default_data() -> dict:
    with open(DEFAULT_CONFIG_PATH) as f:
        return yaml.safe_load(f)


@pytest.fixture
def write_config(tmp_path):
    def _write(data) -> Path:
        path = tmp_path / "ledger.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


class TestDefaultConfig:

    def test_loads_packaged_defaults(self):
        config = load_ledger_config()

        assert isinstance(config, LedgerConfig)
        assert config.entity_name == "Default Manufacturing Co."
        assert config.currency == "USD"
        assert config.balance_tolerance == 1
        assert config.roles.accounts_payable == "2100"
        assert config.roles.code_for("bank") == "1110"
        assert config.payroll.income_tax_bps == 1200
        assert config.payroll.pension_bps == 800
        assert validate_config(config) == []

    def test_chart_contents(self):
        config = load_ledger_config()
        assert config.account("1610").type == "Asset"
        assert config.account("1110").parent_code == "1000"
        assert {"1000", "2100", "3200", "4000", "5500"} <= config.account_codes

    def test_config_is_frozen(self):
        config = load_ledger_config()
        with pytest.raises(AttributeError):
            config.entity_name = "Other"

    def test_load_is_logged(self, captured_logs):
        load_ledger_config()
        loaded = [r for r in captured_logs() if r["message"] == "ledger_config_loaded"]
        assert loaded[0]["currency"] == "USD"
        assert loaded[0]["account_count"] > 0


class TestLoadErrors:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_ledger_config(tmp_path / "missing.yaml")

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_yaml_file(path)

    def test_entity_name_required(self, default_data, write_config):
        del default_data["ledger"]["entity_name"]
        with pytest.raises(ConfigError, match="entity_name is required"):
            load_ledger_config(write_config(default_data))

    def test_unknown_role(self, default_data, write_config):
        default_data["roles"]["treasury"] = "1110"
        with pytest.raises(ConfigError, match="Unknown account roles: treasury"):
            load_ledger_config(write_config(default_data))

    def test_account_missing_key(self, default_data, write_config):
        default_data["accounts"].append({"code": "9000", "name": "No type"})
        with pytest.raises(ConfigError, match="missing key 'type'"):
            load_ledger_config(write_config(default_data))

    def test_duplicate_account_code(self, default_data, write_config):
        default_data["accounts"].append({"code": "1110", "name": "Dup", "type": "Asset"})
        with pytest.raises(ConfigError, match="duplicate account code 1110"):
            load_ledger_config(write_config(default_data))

    def test_unknown_account_type(self, default_data, write_config):
        default_data["accounts"].append({"code": "9000", "name": "Odd", "type": "Contra"})
        with pytest.raises(ConfigError, match="unknown type"):
            load_ledger_config(write_config(default_data))

    def test_dangling_parent(self, default_data, write_config):
        default_data["accounts"].append(
            {"code": "9000", "name": "Child", "type": "Asset", "parent_code": "8999"}
        )
        with pytest.raises(ConfigError, match="unknown parent 8999"):
            load_ledger_config(write_config(default_data))

    def test_role_to_undeclared_account(self, default_data, write_config):
        default_data["roles"]["bank"] = "1999"
        with pytest.raises(ConfigError, match="role bank maps to undeclared account 1999"):
            load_ledger_config(write_config(default_data))

    def test_withholdings_over_100_percent(self, default_data, write_config):
        default_data["payroll"] = {"income_tax_bps": 6000, "pension_bps": 5000}
        with pytest.raises(ConfigError, match="exceed 100%"):
            load_ledger_config(write_config(default_data))

    def test_invalid_currency(self, default_data, write_config):
        default_data["ledger"]["currency"] = "DOLLARS"
        with pytest.raises(ConfigError, match="invalid currency code"):
            load_ledger_config(write_config(default_data))

    def test_errors_are_collected(self, default_data):
        default_data["ledger"]["balance_tolerance"] = -1
        default_data["roles"]["cogs"] = "5999"
        errors = validate_config(parse_ledger_config(default_data))
        assert "balance_tolerance must be >= 0" in errors
        assert "role cogs maps to undeclared account 5999" in errors

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)
        assert ConfigError.code == "CONFIG_ERROR"


class TestOverrides:

    def test_omitted_sections_use_defaults(self, default_data, write_config):
        del default_data["classification"]
        del default_data["payroll"]
        config = load_ledger_config(write_config(default_data))
        assert config.classification == AccountClassification()
        assert config.payroll.pension_bps == 800

    def test_scalar_prefix_is_accepted(self, default_data, write_config):
        default_data["classification"]["cogs_prefixes"] = 51
        config = load_ledger_config(write_config(default_data))
        assert config.classification.cogs_prefixes == ("51",)

    def test_tolerance_override(self, default_data, write_config):
        default_data["ledger"]["balance_tolerance"] = 0
        assert load_ledger_config(write_config(default_data)).balance_tolerance == 0


def test_matches_prefix():
    assert AccountClassification.matches_prefix("1610", ("15", "16"))
    assert not AccountClassification.matches_prefix("1410", ("15", "16"))
