"""
InvoiceGateway -- persistence for invoices and their yearly counters.

Responsibility:
    The only component that touches the ``invoices``, ``invoice_lines`` and
    ``invoice_sequence_counters`` tables.  Converts between ORM models and
    the frozen ``Invoice`` DTO so nothing above this layer sees a model.

Architecture position:
    Kernel > Services -- imperative shell.  Called by
    ``InvoiceSequenceService`` and ``InvoiceService``.

Invariants enforced:
    - (owner_id, invoice_number) uniqueness: a duplicate insert surfaces as
      ConflictError, never as a raw IntegrityError.
    - Counter advancement is a single conditional UPDATE matching the value
      the caller observed.  Zero matched rows means another writer got
      there first.
    - Flush-only: the caller owns commit and rollback.  After a
      ConflictError the session must be rolled back.

Failure modes:
    - ConflictError on unique violations and lost counter races.
    - InvoiceNotFoundError when mutating an id that does not exist.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from localbiz_kernel.domain.clock import Clock, SystemClock
from localbiz_kernel.domain.dtos import Invoice, InvoiceStatus, LineItem
from localbiz_kernel.domain.money import InvoiceTotals
from localbiz_kernel.exceptions import ConflictError, InvoiceNotFoundError
from localbiz_kernel.logging_config import get_logger
from localbiz_kernel.models.invoice import InvoiceModel
from localbiz_kernel.models.sequence_counter import InvoiceSequenceCounter
from localbiz_kernel.services.base import BaseService

logger = get_logger("services.invoice_gateway")

SWEEPABLE_STATES = (InvoiceStatus.DRAFT.value, InvoiceStatus.PENDING.value)


class InvoiceGateway(BaseService[InvoiceModel]):
    """
    Flush-only store for invoices.

    Contract:
        Every method returns DTOs.  Reads with ``for_update=True`` take a
        row lock on backends that support it (PostgreSQL); on SQLite the
        lock clause is dropped and the conditional write alone detects
        races.

    Non-goals:
        - Does NOT check tenant ownership; ``InvoiceService`` does that
          before calling any mutator.
        - Does NOT apply lifecycle rules.
    """

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    def _load(self, invoice_id: UUID, for_update: bool = False) -> InvoiceModel | None:
        stmt = select(InvoiceModel).where(InvoiceModel.id == invoice_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def _require(self, invoice_id: UUID) -> InvoiceModel:
        model = self._load(invoice_id, for_update=True)
        if model is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return model

    def insert_invoice(self, record: Invoice) -> Invoice:
        """
        Persist a new invoice with its lines.

        Raises:
            ConflictError: If the owner already has this invoice number.
        """
        model = InvoiceModel.from_dto(record)
        self.session.add(model)
        try:
            self.session.flush()
        except IntegrityError as e:
            logger.warning(
                "invoice_insert_conflict",
                extra={
                    "owner_id": str(record.owner_id),
                    "invoice_number": record.invoice_number,
                },
            )
            raise ConflictError(
                "invoice", record.invoice_number, "invoice number already used by this owner"
            ) from e
        return model.to_dto()

    def get_invoice(self, invoice_id: UUID, for_update: bool = False) -> Invoice | None:
        model = self._load(invoice_id, for_update=for_update)
        return model.to_dto() if model is not None else None

    def get_last_invoice_for_owner(self, owner_id: UUID) -> Invoice | None:
        """Most recently created invoice of an owner, or None."""
        model = self.session.execute(
            select(InvoiceModel)
            .where(InvoiceModel.owner_id == owner_id)
            .order_by(InvoiceModel.created_at.desc(), InvoiceModel.invoice_number.desc())
            .limit(1)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def update_invoice_status(
        self,
        invoice_id: UUID,
        new_status: InvoiceStatus,
        paid_at: datetime | None = None,
    ) -> Invoice:
        """
        Store a new status.  ``paid_at`` is written only when given.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist.
        """
        model = self._require(invoice_id)
        model.status = new_status.value
        if paid_at is not None:
            model.paid_at = paid_at
        model.updated_at = self._clock.now()
        self.session.flush()
        return model.to_dto()

    def update_invoice_content(
        self,
        invoice_id: UUID,
        *,
        line_items: tuple[LineItem, ...],
        totals: InvoiceTotals,
        invoice_date: date,
        due_date: date,
        notes: str | None,
        terms: str | None,
        status: InvoiceStatus | None = None,
    ) -> Invoice:
        """
        Replace the editable fields of an invoice.

        The number, owner and client snapshot are never touched here.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist.
        """
        model = self._require(invoice_id)
        model.set_lines(line_items)
        model.subtotal = totals.subtotal
        model.tax_total = totals.tax_total
        model.total = totals.total
        model.invoice_date = invoice_date
        model.due_date = due_date
        model.notes = notes
        model.terms = terms
        if status is not None:
            model.status = status.value
        model.updated_at = self._clock.now()
        self.session.flush()
        return model.to_dto()

    def delete_invoice(self, invoice_id: UUID) -> None:
        """
        Remove an invoice and its lines.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist.
        """
        model = self._require(invoice_id)
        self.session.delete(model)
        self.session.flush()

    def list_invoices(
        self, owner_id: UUID, status: InvoiceStatus | None = None
    ) -> list[Invoice]:
        """Invoices of an owner, newest first, optionally by stored status."""
        stmt = select(InvoiceModel).where(InvoiceModel.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(InvoiceModel.status == status.value)
        stmt = stmt.order_by(InvoiceModel.created_at.desc(), InvoiceModel.invoice_number.desc())
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def list_sweepable(self, before: date) -> list[Invoice]:
        """Locked draft and pending invoices whose due date is before ``before``."""
        stmt = (
            select(InvoiceModel)
            .where(InvoiceModel.status.in_(SWEEPABLE_STATES))
            .where(InvoiceModel.due_date < before)
            .order_by(InvoiceModel.due_date, InvoiceModel.invoice_number)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    # -------------------------------------------------------------------------
    # Sequence counters
    # -------------------------------------------------------------------------

    def read_counter(self, owner_id: UUID, year: int, for_update: bool = True) -> int | None:
        """Last sequence claimed by ``owner_id`` in ``year``, or None if no counter."""
        stmt = (
            select(InvoiceSequenceCounter.current_value)
            .where(InvoiceSequenceCounter.owner_id == owner_id)
            .where(InvoiceSequenceCounter.year == year)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def claim_sequence(
        self,
        owner_id: UUID,
        year: int,
        observed: int | None,
        new_value: int,
    ) -> None:
        """
        Move the counter from ``observed`` to ``new_value`` atomically.

        ``observed`` is None when ``read_counter`` found no row; the counter
        is then created at ``new_value``.

        Raises:
            ConflictError: If another writer moved or created the counter
                since it was read.
        """
        key = f"{owner_id}/{year}"
        if observed is None:
            self.session.add(
                InvoiceSequenceCounter(owner_id=owner_id, year=year, current_value=new_value)
            )
            try:
                self.session.flush()
            except IntegrityError as e:
                logger.warning(
                    "invoice_counter_create_conflict",
                    extra={"owner_id": str(owner_id), "year": year},
                )
                raise ConflictError(
                    "invoice_sequence_counter", key, "counter created concurrently"
                ) from e
            return

        result = self.session.execute(
            update(InvoiceSequenceCounter)
            .where(InvoiceSequenceCounter.owner_id == owner_id)
            .where(InvoiceSequenceCounter.year == year)
            .where(InvoiceSequenceCounter.current_value == observed)
            .values(current_value=new_value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "invoice_counter_claim_conflict",
                extra={
                    "owner_id": str(owner_id),
                    "year": year,
                    "observed": observed,
                    "new_value": new_value,
                },
            )
            raise ConflictError(
                "invoice_sequence_counter",
                key,
                f"counter moved past {observed} before {new_value} could be claimed",
            )
