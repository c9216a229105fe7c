"""
Config-to-kernel bridges (``localbiz_config.bridges``).

The kernel never imports ``localbiz_config``.  These functions translate a
validated ``InvoicingConfig`` into the plain inputs kernel services take.
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from localbiz_config.schema import InvoicingConfig
from localbiz_kernel.db.engine import init_engine_from_url
from localbiz_kernel.domain.settings import InvoiceSettings
from localbiz_kernel.logging_config import configure_logging


def build_invoice_settings(config: InvoicingConfig) -> InvoiceSettings:
    """Kernel ``InvoiceSettings`` for the given configuration."""
    return InvoiceSettings(
        number_prefix=config.number_prefix,
        payment_terms_days=config.default_payment_terms_days,
        default_terms=config.default_terms,
        default_tax_rate=config.default_tax_rate,
        allowed_tax_rates=tuple(config.allowed_tax_rates),
        enforce_allowed_tax_rates=config.enforce_allowed_tax_rates,
    )


def init_engine_from_config(config: InvoicingConfig, **engine_options) -> Engine:
    """
    Configure kernel logging at ``config.log_level`` and initialize the
    engine against ``config.database_url``.
    """
    configure_logging(level=logging.getLevelName(config.log_level))
    return init_engine_from_url(config.database_url, **engine_options)
