"""
Module: localbiz_kernel.models.sequence_counter
Responsibility: One counter row per (owner, year) holding the last invoice
    sequence issued.  The row is the sole source of truth for the next
    number; the aggregate-max-plus-one query is never used.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from uuid import UUID

from sqlalchemy import BigInteger, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from localbiz_kernel.db.base import Base, UUIDString


class InvoiceSequenceCounter(Base):
    """
    Invoice sequence counter table.

    Guarantees:
        - (owner_id, year) is unique (uq_invoice_counters_owner_year), so
          two requests creating the first counter of a year cannot both
          succeed.
        - current_value only moves through a conditional UPDATE matching the
          value the writer observed.
    """

    __tablename__ = "invoice_sequence_counters"

    __table_args__ = (
        UniqueConstraint("owner_id", "year", name="uq_invoice_counters_owner_year"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<InvoiceSequenceCounter {self.owner_id}/{self.year}: {self.current_value}>"
