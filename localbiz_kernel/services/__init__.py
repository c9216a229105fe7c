"""Kernel services: persistence gateway, numbering and the request boundary."""

from localbiz_kernel.services.base import BaseService
from localbiz_kernel.services.invoice_gateway import InvoiceGateway
from localbiz_kernel.services.invoice_service import (
    InvoiceOutcome,
    InvoiceResult,
    InvoiceService,
)
from localbiz_kernel.services.sequence_service import InvoiceSequenceService

__all__ = [
    "BaseService",
    "InvoiceGateway",
    "InvoiceSequenceService",
    "InvoiceService",
    "InvoiceOutcome",
    "InvoiceResult",
]
