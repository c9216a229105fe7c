"""
Module: localbiz_kernel.models.invoice
Responsibility: ORM persistence for invoices and their line items.
Architecture position: Kernel > Models.  May import from db/ and the domain
    DTOs it converts to.

Invariants enforced:
    - (owner_id, invoice_number) is unique (uq_invoices_owner_number): two
      racing creations can never both persist the same number.
    - Money columns are Numeric, never float.
    - Line amounts are re-derived on load; the stored amount is a copy for
      reporting queries only.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from localbiz_kernel.db.base import Base, TrackedBase, UUIDString
from localbiz_kernel.domain.dtos import ClientSnapshot, Invoice, InvoiceStatus, LineItem


class InvoiceModel(TrackedBase):
    """
    ORM model for invoices.

    Maps to the ``Invoice`` frozen dataclass.  Lines live in a child table
    via the ``lines`` relationship, ordered by ``line_number``.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("owner_id", "invoice_number", name="uq_invoices_owner_number"),
        Index("idx_invoices_owner_created", "owner_id", "created_at"),
        Index("idx_invoices_status", "status"),
        Index("idx_invoices_due_date", "due_date"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(32), nullable=False)

    client_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    client_email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    client_address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax_total: Mapped[Decimal] = mapped_column(nullable=False)
    total: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=InvoiceStatus.DRAFT.value)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    lines: Mapped[list["InvoiceLineModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineModel.line_number",
        lazy="selectin",
    )

    def set_lines(self, line_items: tuple[LineItem, ...]) -> None:
        """
        Replace the content of all lines, numbering them from 1 in order.

        Existing rows are rewritten in place and surplus rows dropped, so a
        flush never inserts a line_number that a pending delete still holds.
        """
        existing = list(self.lines or [])
        for index, item in enumerate(line_items, start=1):
            if index <= len(existing):
                existing[index - 1].apply_dto(item)
            else:
                self.lines.append(InvoiceLineModel.from_dto(item, line_number=index))
        del self.lines[len(line_items):]

    def to_dto(self) -> Invoice:
        """Convert ORM model to frozen dataclass."""
        return Invoice(
            id=self.id,
            owner_id=self.owner_id,
            invoice_number=self.invoice_number,
            client_id=self.client_id,
            client=ClientSnapshot(
                name=self.client_name,
                email=self.client_email,
                address=dict(self.client_address or {}),
            ),
            invoice_date=self.invoice_date,
            due_date=self.due_date,
            line_items=tuple(line.to_dto() for line in self.lines),
            subtotal=self.subtotal,
            tax_total=self.tax_total,
            total=self.total,
            status=InvoiceStatus(self.status),
            notes=self.notes,
            terms=self.terms,
            paid_at=self.paid_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: Invoice) -> "InvoiceModel":
        """Create ORM model from frozen dataclass."""
        model = cls(
            id=dto.id,
            owner_id=dto.owner_id,
            invoice_number=dto.invoice_number,
            client_id=dto.client_id,
            client_name=dto.client.name,
            client_email=dto.client.email,
            client_address=dict(dto.client.address),
            invoice_date=dto.invoice_date,
            due_date=dto.due_date,
            subtotal=dto.subtotal,
            tax_total=dto.tax_total,
            total=dto.total,
            status=dto.status.value,
            notes=dto.notes,
            terms=dto.terms,
            paid_at=dto.paid_at,
            created_at=dto.created_at,
            updated_at=dto.updated_at,
        )
        model.set_lines(dto.line_items)
        return model

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number}: {self.status}>"


class InvoiceLineModel(Base):
    """ORM model for invoice line items."""

    __tablename__ = "invoice_lines"

    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_invoice_lines_number"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    invoice: Mapped[InvoiceModel] = relationship(back_populates="lines")

    def to_dto(self) -> LineItem:
        return LineItem(
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            tax_rate=self.tax_rate,
        )

    def apply_dto(self, dto: LineItem) -> None:
        self.description = dto.description
        self.quantity = dto.quantity
        self.unit_price = dto.unit_price
        self.tax_rate = dto.tax_rate
        self.amount = dto.amount

    @classmethod
    def from_dto(cls, dto: LineItem, line_number: int) -> "InvoiceLineModel":
        return cls(
            line_number=line_number,
            description=dto.description,
            quantity=dto.quantity,
            unit_price=dto.unit_price,
            tax_rate=dto.tax_rate,
            amount=dto.amount,
        )
