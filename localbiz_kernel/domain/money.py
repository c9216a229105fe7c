"""
Money -- line amounts, tax and invoice totals.

Responsibility:
    Pure, side-effect-free computation of per-line and aggregate monetary
    values for an invoice.  The same functions serve the form preview and
    the server-side recomputation before persistence; totals submitted by a
    client are never trusted.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - All arithmetic is Decimal.  Floats are rejected at the boundary, so a
      value like 0.1 can never leak binary rounding into an invoice.
    - ``amount == round_half_up(quantity * unit_price, 2)`` for every line.
    - ``total == subtotal + tax_total`` exactly.
    - Tax is computed per line at the line's own rate; there is no blended
      invoice rate.

Failure modes:
    - InvalidInputError for negative, non-numeric, non-finite or float
      inputs, for line inputs past the column bounds or with more than
      four decimal places, and for amounts that do not fit Numeric(14, 2).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from localbiz_kernel.db.types import ZERO, round_money
from localbiz_kernel.exceptions import InvalidInputError

if TYPE_CHECKING:
    from localbiz_kernel.domain.dtos import LineItem

HUNDRED = Decimal("100")

# Bounds match the line and money columns: quantity Numeric(12, 4),
# unit_price Numeric(14, 4), tax_rate Numeric(7, 4), amounts Numeric(14, 2).
LINE_INPUT_PLACES = 4
_LINE_INPUT_QUANTUM = Decimal(1).scaleb(-LINE_INPUT_PLACES)
MAX_QUANTITY = Decimal("1e8")
MAX_UNIT_PRICE = Decimal("1e10")
MAX_TAX_RATE = Decimal("1e3")
MAX_AMOUNT = Decimal("1e12")


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Coerce a user-supplied numeric value to Decimal.

    Accepts Decimal, int and numeric strings ("12", "12.50", " 5,5 " with a
    French decimal comma).  Rejects float, bool, NaN and infinities.

    Raises:
        InvalidInputError: If the value cannot be represented exactly.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidInputError(field, f"expected a decimal value, got {type(value).__name__}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        try:
            result = Decimal(text)
        except InvalidOperation as e:
            raise InvalidInputError(field, f"not a number: {value!r}") from e
    else:
        raise InvalidInputError(field, f"expected a decimal value, got {type(value).__name__}")

    if not result.is_finite():
        raise InvalidInputError(field, f"not a finite number: {value!r}")
    return result


def _non_negative(value: Any, field: str) -> Decimal:
    result = to_decimal(value, field)
    if result < 0:
        raise InvalidInputError(field, f"must be >= 0, got {result}")
    return result


def to_line_value(value: Any, field: str, limit: Decimal) -> Decimal:
    """
    Coerce a quantity, unit price or tax rate of a line item.

    The value must be non-negative, below ``limit`` and carry at most
    LINE_INPUT_PLACES decimal places, so it is stored without loss in the
    line columns and the amount recomputed on reload is the same.

    Raises:
        InvalidInputError: If the value is out of range or too precise.
    """
    result = _non_negative(value, field)
    if result >= limit:
        raise InvalidInputError(field, f"must be below {limit:f}, got {result}")
    if result.quantize(_LINE_INPUT_QUANTUM) != result:
        raise InvalidInputError(
            field, f"at most {LINE_INPUT_PLACES} decimal places, got {result}"
        )
    return result


def _check_amount(value: Decimal, field: str) -> Decimal:
    if value >= MAX_AMOUNT:
        raise InvalidInputError(field, f"must be below {MAX_AMOUNT:f}, got {value}")
    return value


def compute_line_amount(quantity: Any, unit_price: Any) -> Decimal:
    """
    Amount of one line: ``quantity * unit_price`` rounded half-up to cents.

    Raises:
        InvalidInputError: If quantity or unit_price is negative, out of
            range, too precise or not a decimal value, or if the amount
            does not fit a money column.
    """
    q = to_line_value(quantity, "quantity", MAX_QUANTITY)
    p = to_line_value(unit_price, "unit_price", MAX_UNIT_PRICE)
    return _check_amount(round_money(q * p), "amount")


def compute_line_tax(amount: Any, tax_rate: Any) -> Decimal:
    """
    Exact tax of one line at its own rate, ``amount * tax_rate / 100``.

    Left unrounded; ``compute_totals`` rounds the summed tax once.
    """
    a = _check_amount(_non_negative(amount, "amount"), "amount")
    r = to_line_value(tax_rate, "tax_rate", MAX_TAX_RATE)
    return a * r / HUNDRED


@dataclass(frozen=True)
class InvoiceTotals:
    """Aggregate amounts of an invoice.  ``total == subtotal + tax_total``."""

    subtotal: Decimal
    tax_total: Decimal
    total: Decimal

    @classmethod
    def zero(cls) -> InvoiceTotals:
        return cls(subtotal=ZERO, tax_total=ZERO, total=ZERO)


def compute_totals(line_items: Iterable[LineItem]) -> InvoiceTotals:
    """
    Subtotal, tax total and total of a sequence of line items.

    An empty sequence yields all-zero totals; rejecting such an invoice for
    submission is the lifecycle's job, not this function's.
    """
    subtotal = ZERO
    raw_tax = Decimal("0")
    for item in line_items:
        subtotal += item.amount
        raw_tax += compute_line_tax(item.amount, item.tax_rate)

    subtotal = round_money(subtotal)
    tax_total = round_money(raw_tax)
    total = _check_amount(subtotal + tax_total, "total")
    return InvoiceTotals(
        subtotal=subtotal,
        tax_total=tax_total,
        total=total,
    )


def build_line_item(
    description: str,
    quantity: Any,
    unit_price: Any,
    tax_rate: Any,
) -> LineItem:
    """Normalise one raw row into a ``LineItem`` with its derived amount."""
    from localbiz_kernel.domain.dtos import LineItem

    return LineItem(
        description=description or "",
        quantity=quantity,
        unit_price=unit_price,
        tax_rate=tax_rate,
    )


def build_line_items(
    rows: Iterable[Mapping[str, Any]],
    default_tax_rate: Decimal | None = None,
) -> tuple[LineItem, ...]:
    """
    Build line items from raw form rows.

    Each row carries ``description``, ``quantity``, ``unit_price`` and
    ``tax_rate``.  Any ``amount`` key in a row is ignored and recomputed.

    Raises:
        InvalidInputError: If a row is missing a numeric field or holds an
            invalid value.
    """
    items = []
    for index, row in enumerate(rows):
        tax_rate = row.get("tax_rate", default_tax_rate)
        for key, val in (
            ("quantity", row.get("quantity")),
            ("unit_price", row.get("unit_price")),
            ("tax_rate", tax_rate),
        ):
            if val is None:
                raise InvalidInputError(f"line_items[{index}].{key}", "is required")
        items.append(
            build_line_item(
                description=str(row.get("description") or ""),
                quantity=row["quantity"],
                unit_price=row["unit_price"],
                tax_rate=tax_rate,
            )
        )
    return tuple(items)
