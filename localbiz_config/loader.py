"""
Configuration Loader (``localbiz_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a validated
``InvoicingConfig``.  Runtime callers go through
``localbiz_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Every validation failure raises ``InvalidConfigError`` naming the key.
* Unknown keys are rejected rather than ignored, so a typo never silently
  falls back to a default.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for the config trace.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from localbiz_config.schema import InvoicingConfig
from localbiz_kernel.domain.numbering import format_invoice_number
from localbiz_kernel.exceptions import InvalidConfigError, InvalidInputError

_TOP_LEVEL_KEYS = {"config_id", "version", "invoicing", "database", "logging"}
_INVOICING_KEYS = {
    "number_prefix",
    "default_payment_terms_days",
    "default_terms",
    "default_tax_rate",
    "allowed_tax_rates",
    "enforce_allowed_tax_rates",
    "currency",
}
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        InvalidConfigError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigError(str(path), "top-level document must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a parsed configuration document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise InvalidConfigError(key, "must be a mapping")
    return value


def _check_unknown(section: dict[str, Any], allowed: set[str], where: str) -> None:
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise InvalidConfigError(where, f"unknown keys: {', '.join(unknown)}")


def parse_rate(value: Any, key: str) -> Decimal:
    """Parse a percentage rate; YAML may hand us str, int or float."""
    if isinstance(value, bool):
        raise InvalidConfigError(key, "must be a number")
    try:
        rate = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise InvalidConfigError(key, f"not a number: {value!r}") from e
    if not rate.is_finite() or rate < 0:
        raise InvalidConfigError(key, f"must be a finite rate >= 0, got {value!r}")
    return rate


def _parse_prefix(value: Any) -> str:
    prefix = str(value)
    try:
        format_invoice_number(prefix, 2000, 1)
    except InvalidInputError as e:
        raise InvalidConfigError("invoicing.number_prefix", e.reason) from e
    return prefix


def _parse_terms_days(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidConfigError(
            "invoicing.default_payment_terms_days", f"must be a non-negative integer, got {value!r}"
        )
    return value


def _parse_log_level(value: Any) -> str:
    level = str(value).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise InvalidConfigError("logging.level", f"unknown level {value!r}")
    return level


def parse_config(data: dict[str, Any]) -> InvoicingConfig:
    """
    Build a validated ``InvoicingConfig`` from a parsed YAML document.

    Missing keys take the schema defaults.

    Raises:
        InvalidConfigError: On any invalid or unknown key.
    """
    _check_unknown(data, _TOP_LEVEL_KEYS, "<root>")
    invoicing = _section(data, "invoicing")
    database = _section(data, "database")
    log_section = _section(data, "logging")
    _check_unknown(invoicing, _INVOICING_KEYS, "invoicing")

    defaults = InvoicingConfig()

    allowed_raw = invoicing.get("allowed_tax_rates", None)
    if allowed_raw is None:
        allowed = defaults.allowed_tax_rates
    elif isinstance(allowed_raw, list) and allowed_raw:
        allowed = tuple(
            parse_rate(v, f"invoicing.allowed_tax_rates[{i}]") for i, v in enumerate(allowed_raw)
        )
    else:
        raise InvalidConfigError("invoicing.allowed_tax_rates", "must be a non-empty list")

    default_rate = parse_rate(
        invoicing.get("default_tax_rate", defaults.default_tax_rate), "invoicing.default_tax_rate"
    )
    enforce = invoicing.get("enforce_allowed_tax_rates", defaults.enforce_allowed_tax_rates)
    if not isinstance(enforce, bool):
        raise InvalidConfigError("invoicing.enforce_allowed_tax_rates", "must be true or false")
    if enforce and default_rate not in allowed:
        raise InvalidConfigError(
            "invoicing.default_tax_rate", f"{default_rate} is not an allowed tax rate"
        )

    currency = str(invoicing.get("currency", defaults.currency))
    if not _CURRENCY_RE.match(currency):
        raise InvalidConfigError("invoicing.currency", f"must be an ISO 4217 code, got {currency!r}")

    default_terms = invoicing.get("default_terms", defaults.default_terms)
    if not isinstance(default_terms, str):
        raise InvalidConfigError("invoicing.default_terms", "must be a string")

    database_url = database.get("url", defaults.database_url)
    if not isinstance(database_url, str) or not database_url:
        raise InvalidConfigError("database.url", "must be a non-empty string")

    version = data.get("version", defaults.version)
    if isinstance(version, bool) or not isinstance(version, int):
        raise InvalidConfigError("version", f"must be an integer, got {version!r}")

    return InvoicingConfig(
        config_id=str(data.get("config_id", defaults.config_id)),
        version=version,
        number_prefix=_parse_prefix(invoicing.get("number_prefix", defaults.number_prefix)),
        default_payment_terms_days=_parse_terms_days(
            invoicing.get("default_payment_terms_days", defaults.default_payment_terms_days)
        ),
        default_terms=default_terms,
        default_tax_rate=default_rate,
        allowed_tax_rates=allowed,
        enforce_allowed_tax_rates=enforce,
        currency=currency,
        database_url=database_url,
        log_level=_parse_log_level(log_section.get("level", defaults.log_level)),
        checksum=compute_checksum(data),
    )


def load_config(path: Path | str) -> InvoicingConfig:
    """Load and validate one YAML configuration file."""
    return parse_config(load_yaml_file(Path(path)))
