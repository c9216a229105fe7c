"""
localbiz_config -- single public entrypoint for invoicing configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``localbiz_kernel``.  The kernel MUST NEVER
    import from ``localbiz_config``; ``bridges`` translates the parsed
    configuration into kernel inputs.

Resolution order:
    1. ``path`` argument, if given.
    2. ``LOCALBIZ_CONFIG`` environment variable.
    3. The bundled ``sets/default.yaml``.
    ``DATABASE_URL``, when set, overrides the file's database URL.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LOCALBIZ_CONFIG_TRACE`` log entry with the config id, version, source
    path and checksum.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from localbiz_config.bridges import build_invoice_settings, init_engine_from_config
from localbiz_config.loader import load_config, parse_config
from localbiz_config.schema import InvoicingConfig

_logger = logging.getLogger("localbiz_kernel.config")

CONFIG_ENV_VAR = "LOCALBIZ_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> InvoicingConfig:
    """The ONLY public configuration entrypoint.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        InvalidConfigError: If the file fails validation.
    """
    source = Path(path or os.environ.get(CONFIG_ENV_VAR) or _DEFAULT_CONFIG_PATH)
    config = load_config(source)

    database_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if database_url:
        config = replace(config, database_url=database_url)

    _logger.info(
        "LOCALBIZ_CONFIG_TRACE",
        extra={
            "trace_type": "LOCALBIZ_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "config_source": str(source),
            "checksum": config.checksum,
            "database_url_overridden": bool(database_url),
        },
    )
    return config


__all__ = [
    "InvoicingConfig",
    "get_active_config",
    "load_config",
    "parse_config",
    "build_invoice_settings",
    "init_engine_from_config",
]
