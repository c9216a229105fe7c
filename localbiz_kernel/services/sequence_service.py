"""
InvoiceSequenceService -- atomic invoice number assignment.

Responsibility:
    Issues the next ``{PREFIX}-{YEAR}-{SEQ:03d}`` number for an owner.  The
    number is derived by the pure ``next_invoice_number`` and claimed through
    the gateway's per-owner-per-year counter in the caller's transaction, so
    the claim and the invoice insert commit or roll back together.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by ``InvoiceService.create_invoice``.

Invariants enforced:
    - The locked counter row is the sole source of truth for the next
      value once it exists.  The "read the latest invoice and add one"
      query is only used to seed a missing counter from legacy data.
    - Two transactions that observed the same counter value cannot both
      claim the next one: the loser gets ConflictError.  There is no
      internal retry; the caller decides whether to resubmit.

Failure modes:
    - ConflictError: lost race on the counter (see ``InvoiceGateway``).
    - SequenceExhaustedError: the owner already issued 999 numbers this year.
"""

from uuid import UUID

from localbiz_kernel.domain.numbering import (
    DEFAULT_PREFIX,
    format_invoice_number,
    next_invoice_number,
    parse_invoice_number,
)
from localbiz_kernel.logging_config import get_logger
from localbiz_kernel.services.invoice_gateway import InvoiceGateway

logger = get_logger("services.sequence")


class InvoiceSequenceService:
    """
    Allocates invoice numbers through the gateway's counter rows.

    Non-goals:
        - Does NOT call ``session.commit()``; a number is consumed only
          when the caller's transaction commits.

    Usage:
        number = sequence_service.assign_number(owner_id, 2025)
        gateway.insert_invoice(replace(record, invoice_number=number))
        session.commit()
    """

    def __init__(self, gateway: InvoiceGateway, prefix: str = DEFAULT_PREFIX):
        self._gateway = gateway
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def _last_issued(self, owner_id: UUID, year: int, observed: int | None) -> str | None:
        if observed is not None:
            return format_invoice_number(self._prefix, year, observed) if observed > 0 else None
        last = self._gateway.get_last_invoice_for_owner(owner_id)
        return last.invoice_number if last is not None else None

    def assign_number(self, owner_id: UUID, year: int) -> str:
        """
        Claim the next invoice number of ``owner_id`` for ``year``.

        Preconditions:
            The caller is inside a transaction it will commit together with
            the invoice insert.

        Raises:
            ConflictError: If a concurrent request claimed the number first.
            SequenceExhaustedError: If the yearly sequence is used up.
        """
        observed = self._gateway.read_counter(owner_id, year, for_update=True)
        last_number = self._last_issued(owner_id, year, observed)
        number = next_invoice_number(owner_id, year, last_number, prefix=self._prefix)
        sequence = parse_invoice_number(number).sequence

        self._gateway.claim_sequence(owner_id, year, observed, sequence)
        logger.info(
            "invoice_number_assigned",
            extra={
                "owner_id": str(owner_id),
                "year": year,
                "invoice_number": number,
                "seeded": observed is None,
            },
        )
        return number

    def peek_next_number(self, owner_id: UUID, year: int) -> str:
        """
        Number the next ``assign_number`` would return, without claiming it.

        For form previews only; the value may be taken by the time the form
        is submitted.
        """
        observed = self._gateway.read_counter(owner_id, year, for_update=False)
        last_number = self._last_issued(owner_id, year, observed)
        return next_invoice_number(owner_id, year, last_number, prefix=self._prefix)
