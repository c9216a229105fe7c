"""
Data Transfer Objects for the invoicing kernel.

Frozen dataclasses passed between the domain core, the gateway and the
service boundary.  ORM models never leave the gateway; callers only ever see
these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from localbiz_kernel.domain.money import (
    MAX_QUANTITY,
    MAX_TAX_RATE,
    MAX_UNIT_PRICE,
    compute_line_amount,
    to_line_value,
)
from localbiz_kernel.exceptions import InvalidInputError


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states.  PAID and CANCELLED are terminal."""

    DRAFT = "draft"
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)


@dataclass(frozen=True)
class LineItem:
    """
    One billable row on an invoice.

    ``amount`` is derived on construction and cannot be passed in.
    Numeric fields accept Decimal, int or numeric strings, are stored as
    Decimal, and carry at most four decimal places so a reloaded line
    yields the same amount.
    """

    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    amount: Decimal = field(init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.description, str):
            raise InvalidInputError("description", "must be a string")
        object.__setattr__(
            self, "quantity", to_line_value(self.quantity, "quantity", MAX_QUANTITY)
        )
        object.__setattr__(
            self, "unit_price", to_line_value(self.unit_price, "unit_price", MAX_UNIT_PRICE)
        )
        object.__setattr__(
            self, "tax_rate", to_line_value(self.tax_rate, "tax_rate", MAX_TAX_RATE)
        )
        object.__setattr__(
            self, "amount", compute_line_amount(self.quantity, self.unit_price)
        )

    @property
    def has_description(self) -> bool:
        return bool(self.description.strip())

    def to_payload(self) -> dict[str, str]:
        """JSON-safe representation, amounts as strings."""
        return {
            "description": self.description,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "tax_rate": str(self.tax_rate),
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class ClientSnapshot:
    """
    Client details denormalized onto the invoice at creation time.

    Later edits to the client record never reach an existing invoice.
    """

    name: str
    email: str = ""
    address: dict[str, Any] = field(default_factory=dict)

    @property
    def is_selected(self) -> bool:
        return bool(self.name and self.name.strip())


@dataclass(frozen=True)
class InvoiceRequest:
    """
    Form submission for creating or editing an invoice.

    ``status`` is the submit button that was pressed: DRAFT or PENDING.
    ``due_date`` defaults to ``invoice_date`` plus the configured payment
    terms; ``terms`` defaults to the configured wording.
    """

    line_items: tuple[LineItem, ...]
    status: InvoiceStatus = InvoiceStatus.DRAFT
    client_id: UUID | None = None
    client: ClientSnapshot | None = None
    invoice_date: date | None = None
    due_date: date | None = None
    notes: str | None = None
    terms: str | None = None


@dataclass(frozen=True)
class Invoice:
    """A persisted invoice as seen by callers."""

    id: UUID
    owner_id: UUID
    invoice_number: str
    client_id: UUID | None
    client: ClientSnapshot
    invoice_date: date
    due_date: date
    line_items: tuple[LineItem, ...]
    subtotal: Decimal
    tax_total: Decimal
    total: Decimal
    status: InvoiceStatus
    notes: str | None = None
    terms: str | None = None
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class InvoiceSummary:
    """
    Dashboard figures for one owner.

    ``revenue_trend_percent`` compares this month's invoiced total with last
    month's; it is zero when last month had no revenue.
    """

    total_revenue: Decimal
    revenue_this_month: Decimal
    revenue_last_month: Decimal
    revenue_trend_percent: Decimal
    invoice_count: int
    unpaid_count: int
    unpaid_amount: Decimal
    overdue_count: int
