"""
Tests for localbiz_config: YAML loading, validation, the active-config
entrypoint and the bridge to kernel settings.
"""

from decimal import Decimal

import pytest
import yaml

from localbiz_config import build_invoice_settings, get_active_config, load_config, parse_config
from localbiz_config.loader import compute_checksum, load_yaml_file
from localbiz_kernel.domain.settings import InvoiceSettings
from localbiz_kernel.exceptions import InvalidConfigError, InvalidInputError


@pytest.fixture
def write_config(tmp_path):
    def _write(data, name="config.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("LOCALBIZ_CONFIG", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


class TestDefaultConfig:
    def test_bundled_defaults(self):
        config = get_active_config()
        assert config.config_id == "localbiz-default"
        assert config.number_prefix == "FAC"
        assert config.default_payment_terms_days == 30
        assert config.default_terms == "Paiement sous 30 jours"
        assert config.default_tax_rate == Decimal("20")
        assert config.allowed_tax_rates == (Decimal("0"), Decimal("5.5"), Decimal("10"), Decimal("20"))
        assert config.currency == "EUR"
        assert len(config.checksum) == 64

    def test_trace_logged(self, captured_logs):
        config = get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "LOCALBIZ_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["config_source"].endswith("default.yaml")

    def test_env_var_selects_file(self, write_config, monkeypatch):
        path = write_config({"config_id": "atelier", "invoicing": {"number_prefix": "ATL"}})
        monkeypatch.setenv("LOCALBIZ_CONFIG", str(path))
        config = get_active_config()
        assert config.config_id == "atelier"
        assert config.number_prefix == "ATL"

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://localbiz@db/localbiz")
        assert get_active_config().database_url == "postgresql://localbiz@db/localbiz"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")


class TestParseConfig:
    def test_empty_document_uses_defaults(self):
        config = parse_config({})
        assert config.number_prefix == "FAC"
        assert config.log_level == "INFO"

    def test_numeric_yaml_rates(self):
        config = parse_config({"invoicing": {"default_tax_rate": 5.5, "allowed_tax_rates": [0, 5.5, 20]}})
        assert config.default_tax_rate == Decimal("5.5")
        assert config.allowed_tax_rates == (Decimal("0"), Decimal("5.5"), Decimal("20"))

    @pytest.mark.parametrize(
        "data,key",
        [
            ({"invoicing": {"number_prefix": "fac"}}, "invoicing.number_prefix"),
            ({"invoicing": {"default_payment_terms_days": -1}}, "invoicing.default_payment_terms_days"),
            ({"invoicing": {"default_payment_terms_days": True}}, "invoicing.default_payment_terms_days"),
            ({"invoicing": {"default_tax_rate": "-1"}}, "invoicing.default_tax_rate"),
            ({"invoicing": {"default_tax_rate": "vingt"}}, "invoicing.default_tax_rate"),
            ({"invoicing": {"allowed_tax_rates": []}}, "invoicing.allowed_tax_rates"),
            ({"invoicing": {"currency": "euro"}}, "invoicing.currency"),
            ({"invoicing": {"enforce_allowed_tax_rates": "yes"}}, "invoicing.enforce_allowed_tax_rates"),
            ({"invoicing": {"prefix": "FAC"}}, "invoicing"),
            ({"invoicng": {}}, "<root>"),
            ({"logging": {"level": "LOUD"}}, "logging.level"),
            ({"database": {"url": ""}}, "database.url"),
            ({"version": "one"}, "version"),
        ],
    )
    def test_invalid(self, data, key):
        with pytest.raises(InvalidConfigError) as exc_info:
            parse_config(data)
        assert exc_info.value.key == key

    def test_enforced_default_must_be_allowed(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            parse_config(
                {
                    "invoicing": {
                        "default_tax_rate": "7",
                        "allowed_tax_rates": ["0", "20"],
                        "enforce_allowed_tax_rates": True,
                    }
                }
            )
        assert exc_info.value.key == "invoicing.default_tax_rate"

    def test_checksum_is_deterministic(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestLoader:
    def test_load_config(self, write_config):
        config = load_config(write_config({"invoicing": {"default_payment_terms_days": 45}}))
        assert config.default_payment_terms_days == 45

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(InvalidConfigError):
            load_yaml_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}


class TestBridge:
    def test_build_invoice_settings(self):
        config = parse_config(
            {
                "invoicing": {
                    "number_prefix": "F",
                    "default_payment_terms_days": 15,
                    "enforce_allowed_tax_rates": True,
                }
            }
        )
        settings = build_invoice_settings(config)
        assert isinstance(settings, InvoiceSettings)
        assert settings.number_prefix == "F"
        assert settings.payment_terms_days == 15
        assert settings.enforce_allowed_tax_rates is True

    def test_settings_enforce_rates(self):
        settings = InvoiceSettings(enforce_allowed_tax_rates=True)
        settings.check_tax_rate(Decimal("5.5"))
        with pytest.raises(InvalidInputError):
            settings.check_tax_rate(Decimal("7"))
