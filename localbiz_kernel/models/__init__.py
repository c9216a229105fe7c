"""ORM models.  Importing this package registers every table on Base.metadata."""

from localbiz_kernel.models.invoice import InvoiceLineModel, InvoiceModel
from localbiz_kernel.models.sequence_counter import InvoiceSequenceCounter

__all__ = [
    "InvoiceModel",
    "InvoiceLineModel",
    "InvoiceSequenceCounter",
]
