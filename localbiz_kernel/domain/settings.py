"""
Invoice settings consumed by the kernel services.

The kernel never reads configuration files.  ``localbiz_config.bridges``
builds an ``InvoiceSettings`` from the active configuration and hands it to
the services; tests construct one directly.
"""

from dataclasses import dataclass
from decimal import Decimal

from localbiz_kernel.domain.numbering import DEFAULT_PREFIX
from localbiz_kernel.exceptions import InvalidInputError

FRENCH_VAT_RATES: tuple[Decimal, ...] = (
    Decimal("0"),
    Decimal("5.5"),
    Decimal("10"),
    Decimal("20"),
)


@dataclass(frozen=True)
class InvoiceSettings:
    """Per-deployment invoicing defaults."""

    number_prefix: str = DEFAULT_PREFIX
    payment_terms_days: int = 30
    default_terms: str = "Paiement sous 30 jours"
    default_tax_rate: Decimal = Decimal("20")
    allowed_tax_rates: tuple[Decimal, ...] = FRENCH_VAT_RATES
    enforce_allowed_tax_rates: bool = False

    def check_tax_rate(self, tax_rate: Decimal, field: str = "tax_rate") -> None:
        """Reject rates outside ``allowed_tax_rates`` when enforcement is on."""
        if self.enforce_allowed_tax_rates and tax_rate not in self.allowed_tax_rates:
            allowed = ", ".join(str(r) for r in self.allowed_tax_rates)
            raise InvalidInputError(field, f"{tax_rate} is not one of {allowed}")
