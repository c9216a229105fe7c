"""
Module: localbiz_kernel.db.types
Responsibility: Annotated type aliases and helpers for money columns.
    Centralizes precision and rounding so that every model, domain function
    and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - MONEY_DECIMAL_PLACES is the canonical precision for amounts.
    - round_money() is the only sanctioned rounding function for money.
    - No floats: every conversion goes through Decimal.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import BigInteger, Numeric, String

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

# Monetary amount at cent precision
Money = Annotated[Decimal, Numeric(14, MONEY_DECIMAL_PLACES)]

# Percentage rate such as 5.5 or 20
Rate = Annotated[Decimal, Numeric(7, 4)]

# Monotonic per-owner sequence value
Sequence = Annotated[int, BigInteger]

# Invoice number, e.g. FAC-2025-007
InvoiceNumberStr = Annotated[str, String(32)]

ZERO = Decimal("0.00")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the ONLY sanctioned rounding function for money in the kernel.
    The default is half-up at two places, the convention on French invoices.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=rounding)


def money_from_minor_units(value: int, decimal_places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """
    Create a money value from an integer count of minor units.

    Example:
        money_from_minor_units(1050) -> Decimal("10.50")
    """
    return Decimal(value).scaleb(-decimal_places)


def to_minor_units(value: Decimal, decimal_places: int = MONEY_DECIMAL_PLACES) -> int:
    """
    Convert a money value to an integer count of minor units.

    The value is rounded first, so ``to_minor_units(Decimal("10.505"))``
    is 1051.
    """
    return int(round_money(value, decimal_places).scaleb(decimal_places))
