"""Read-only query selectors."""

from localbiz_kernel.selectors.base import BaseSelector
from localbiz_kernel.selectors.invoice_selector import InvoiceSelector

__all__ = [
    "BaseSelector",
    "InvoiceSelector",
]
