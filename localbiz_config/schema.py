"""
Configuration schema (``localbiz_config.schema``).

Frozen dataclasses describing a parsed configuration file.  These are
pure data: parsing lives in ``loader.py`` and translation to kernel
inputs in ``bridges.py``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class InvoicingConfig:
    """Invoicing defaults and deployment settings."""

    config_id: str = "localbiz-default"
    version: int = 1
    number_prefix: str = "FAC"
    default_payment_terms_days: int = 30
    default_terms: str = "Paiement sous 30 jours"
    default_tax_rate: Decimal = Decimal("20")
    allowed_tax_rates: tuple[Decimal, ...] = field(
        default_factory=lambda: (Decimal("0"), Decimal("5.5"), Decimal("10"), Decimal("20"))
    )
    enforce_allowed_tax_rates: bool = False
    currency: str = "EUR"
    database_url: str = "sqlite:///localbiz.db"
    log_level: str = "INFO"
    checksum: str = ""
