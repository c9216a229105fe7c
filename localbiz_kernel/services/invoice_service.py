"""
InvoiceService -- request-handler boundary for the invoice lifecycle.

Responsibility:
    Composes the calculator, the sequencer, the lifecycle table and the
    gateway into one unit of work per request.  Each mutating method
    commits on success, rolls back on failure, and returns an
    ``InvoiceResult`` instead of raising domain errors.

Architecture position:
    Kernel > Services -- the outermost kernel layer.  Request handlers call
    this service and translate ``InvoiceResult.status`` to their own
    responses.

Invariants enforced:
    - Tenant isolation: no invoice is read or mutated on behalf of an
      owner that does not own it (UNAUTHORIZED).
    - Totals are always recomputed from the line items; callers cannot
      submit them.
    - Every status change goes through ``apply_transition``.
    - The invoice number is claimed in the same transaction as the insert.

Failure modes:
    - Domain errors (``InvoiceError``, ``ConcurrencyError``) become failure
      results after rollback and are logged at WARNING.
    - Anything else (driver failures, bugs) is logged at ERROR after
      rollback and re-raised.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from localbiz_kernel.domain.clock import Clock, SystemClock
from localbiz_kernel.domain.dtos import (
    ClientSnapshot,
    Invoice,
    InvoiceRequest,
    InvoiceStatus,
    InvoiceSummary,
    LineItem,
)
from localbiz_kernel.domain.lifecycle import (
    SUBMITTABLE,
    GuardContext,
    InvoiceAction,
    apply_transition,
    creation_action,
    effective_status,
    ensure_editable,
)
from localbiz_kernel.domain.money import compute_totals
from localbiz_kernel.domain.settings import InvoiceSettings
from localbiz_kernel.exceptions import (
    ConcurrencyError,
    ConflictError,
    InvalidInputError,
    InvalidTransitionError,
    InvoiceError,
    InvoiceNotFoundError,
    SequenceExhaustedError,
    UnauthorizedError,
)
from localbiz_kernel.logging_config import LogContext, get_logger
from localbiz_kernel.selectors.invoice_selector import InvoiceSelector
from localbiz_kernel.services.invoice_gateway import InvoiceGateway
from localbiz_kernel.services.sequence_service import InvoiceSequenceService

logger = get_logger("services.invoice")


class InvoiceOutcome(str, Enum):
    """Outcome of an invoice request."""

    OK = "ok"
    INVALID_INPUT = "invalid_input"
    INVALID_TRANSITION = "invalid_transition"
    SEQUENCE_EXHAUSTED = "sequence_exhausted"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


_OUTCOME_BY_CODE = {
    InvalidInputError.code: InvoiceOutcome.INVALID_INPUT,
    InvalidTransitionError.code: InvoiceOutcome.INVALID_TRANSITION,
    SequenceExhaustedError.code: InvoiceOutcome.SEQUENCE_EXHAUSTED,
    UnauthorizedError.code: InvoiceOutcome.UNAUTHORIZED,
    InvoiceNotFoundError.code: InvoiceOutcome.NOT_FOUND,
    ConflictError.code: InvoiceOutcome.CONFLICT,
}


@dataclass(frozen=True)
class InvoiceResult:
    """Result of an invoice request."""

    status: InvoiceOutcome
    invoice: Invoice | None = None
    error_code: str | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == InvoiceOutcome.OK

    @classmethod
    def ok(cls, invoice: Invoice | None) -> "InvoiceResult":
        return cls(status=InvoiceOutcome.OK, invoice=invoice)

    @classmethod
    def failure(cls, error: InvoiceError | ConcurrencyError) -> "InvoiceResult":
        return cls(
            status=_OUTCOME_BY_CODE.get(error.code, InvoiceOutcome.CONFLICT),
            error_code=error.code,
            message=str(error),
        )


class InvoiceService:
    """
    Invoice lifecycle operations for request handlers.

    Contract:
        Every public mutator takes the authenticated ``owner_id`` first and
        returns an ``InvoiceResult``.  Read helpers (``list_invoices``,
        ``summarize``) return DTOs directly.

    Guarantees:
        - Commit on success, rollback on failure (when auto_commit=True).
        - No retry on ConflictError; the caller may resubmit.

    Non-goals:
        - Does NOT authenticate; ``owner_id`` is trusted.
        - Does NOT render or send invoices.

    Usage:
        service = InvoiceService(session, settings=build_invoice_settings(config))
        result = service.create_invoice(owner_id, request)
        if not result.is_success:
            ...  # map result.status to a response
    """

    def __init__(
        self,
        session: Session,
        settings: InvoiceSettings | None = None,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._settings = settings or InvoiceSettings()
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._gateway = InvoiceGateway(session, self._clock)
        self._sequence = InvoiceSequenceService(self._gateway, prefix=self._settings.number_prefix)
        self._selector = InvoiceSelector(session)

    @property
    def settings(self) -> InvoiceSettings:
        return self._settings

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    def _execute(
        self,
        operation: str,
        work: Callable[[], Invoice | None],
        owner_id: UUID,
        invoice_id: UUID | None = None,
    ) -> InvoiceResult:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            owner_id=owner_id,
            invoice_id=invoice_id,
        ):
            t0 = time.monotonic()
            try:
                invoice = work()
                if self._auto_commit:
                    self._session.commit()
            except (InvoiceError, ConcurrencyError) as e:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    "invoice_request_rejected",
                    extra={
                        "operation": operation,
                        "error_code": e.code,
                        "error": str(e),
                    },
                )
                return InvoiceResult.failure(e)
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    "invoice_request_failed",
                    extra={
                        "operation": operation,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                    exc_info=True,
                )
                raise

            logger.info(
                "invoice_request_completed",
                extra={
                    "operation": operation,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return InvoiceResult.ok(invoice)

    def _load_owned(self, owner_id: UUID, invoice_id: UUID) -> Invoice:
        invoice = self._gateway.get_invoice(invoice_id, for_update=True)
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id))
        if invoice.owner_id != owner_id:
            raise UnauthorizedError(str(invoice_id), str(owner_id))
        return invoice

    def _check_line_items(self, line_items: tuple[LineItem, ...]) -> None:
        for index, item in enumerate(line_items):
            if not isinstance(item, LineItem):
                raise InvalidInputError(f"line_items[{index}]", "must be a LineItem")
            self._settings.check_tax_rate(item.tax_rate, field=f"line_items[{index}].tax_rate")

    @staticmethod
    def _check_dates(invoice_date: date, due_date: date) -> None:
        if due_date < invoice_date:
            raise InvalidInputError(
                "due_date", f"{due_date} is before the invoice date {invoice_date}"
            )

    def _status_changed(self, invoice: Invoice, from_status: InvoiceStatus, action: InvoiceAction) -> None:
        logger.info(
            "invoice_status_changed",
            extra={
                "invoice_number": invoice.invoice_number,
                "from_status": from_status.value,
                "to_status": invoice.status.value,
                "action": action.value,
            },
        )

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------

    def create_invoice(self, owner_id: UUID, request: InvoiceRequest) -> InvoiceResult:
        """
        Create an invoice as draft or pending.

        Defaults: invoice date is today, due date is the invoice date plus
        the configured payment terms, terms text is the configured wording.
        A number is assigned even for drafts.
        """

        def work() -> Invoice:
            today = self._clock.today()
            line_items = tuple(request.line_items)
            self._check_line_items(line_items)

            invoice_date = request.invoice_date or today
            due_date = request.due_date or invoice_date + timedelta(
                days=self._settings.payment_terms_days
            )
            self._check_dates(invoice_date, due_date)

            client = request.client or ClientSnapshot(name="")
            status = apply_transition(
                None,
                creation_action(request.status),
                GuardContext(line_items=line_items, client=client, due_date=due_date, today=today),
            )
            totals = compute_totals(line_items)

            number = self._sequence.assign_number(owner_id, today.year)
            now = self._clock.now()
            record = Invoice(
                id=uuid4(),
                owner_id=owner_id,
                invoice_number=number,
                client_id=request.client_id,
                client=client,
                invoice_date=invoice_date,
                due_date=due_date,
                line_items=line_items,
                subtotal=totals.subtotal,
                tax_total=totals.tax_total,
                total=totals.total,
                status=status,
                notes=request.notes,
                terms=request.terms if request.terms is not None else self._settings.default_terms,
                created_at=now,
                updated_at=now,
            )
            invoice = self._gateway.insert_invoice(record)
            logger.info(
                "invoice_created",
                extra={
                    "invoice_id": str(invoice.id),
                    "invoice_number": invoice.invoice_number,
                    "status": invoice.status.value,
                    "total": str(invoice.total),
                    "line_count": len(line_items),
                },
            )
            return invoice

        return self._execute("create_invoice", work, owner_id)

    def update_invoice(
        self, owner_id: UUID, invoice_id: UUID, request: InvoiceRequest
    ) -> InvoiceResult:
        """
        Edit the content of a draft or pending invoice.

        Line items are replaced and totals recomputed.  Dates, notes and
        terms are replaced when the request carries them and kept when it
        leaves them as None; send an empty string to clear notes or terms.
        The number and the client snapshot never change.
        ``request.status == PENDING`` submits a draft in the same step; a
        pending invoice cannot go back to draft.
        """

        def work() -> Invoice:
            current = self._load_owned(owner_id, invoice_id)
            ensure_editable(current.status)

            if request.client_id is not None and request.client_id != current.client_id:
                raise InvalidInputError("client_id", "cannot be changed after creation")
            if request.client is not None and request.client != current.client:
                raise InvalidInputError("client", "cannot be changed after creation")

            line_items = tuple(request.line_items)
            self._check_line_items(line_items)
            invoice_date = request.invoice_date or current.invoice_date
            due_date = request.due_date or current.due_date
            self._check_dates(invoice_date, due_date)

            context = GuardContext(
                line_items=line_items,
                client=current.client,
                due_date=due_date,
                today=self._clock.today(),
            )
            new_status = current.status
            if request.status == InvoiceStatus.PENDING:
                if current.status == InvoiceStatus.DRAFT:
                    new_status = apply_transition(current.status, InvoiceAction.SUBMIT, context)
                else:
                    # A pending invoice must stay submittable after an edit.
                    SUBMITTABLE.check(context, current.status, InvoiceAction.SUBMIT)
            elif request.status == InvoiceStatus.DRAFT:
                if current.status != InvoiceStatus.DRAFT:
                    raise InvalidTransitionError(current.status.value, "revert_to_draft")
            else:
                raise InvalidInputError(
                    "status", f"an update saves as draft or pending, not {request.status.value}"
                )

            invoice = self._gateway.update_invoice_content(
                invoice_id,
                line_items=line_items,
                totals=compute_totals(line_items),
                invoice_date=invoice_date,
                due_date=due_date,
                notes=request.notes if request.notes is not None else current.notes,
                terms=request.terms if request.terms is not None else current.terms,
                status=new_status if new_status != current.status else None,
            )
            logger.info(
                "invoice_updated",
                extra={
                    "invoice_number": invoice.invoice_number,
                    "total": str(invoice.total),
                    "line_count": len(line_items),
                },
            )
            if invoice.status != current.status:
                self._status_changed(invoice, current.status, InvoiceAction.SUBMIT)
            return invoice

        return self._execute("update_invoice", work, owner_id, invoice_id)

    def _transition(
        self,
        operation: str,
        owner_id: UUID,
        invoice_id: UUID,
        action: InvoiceAction,
    ) -> InvoiceResult:
        def work() -> Invoice:
            current = self._load_owned(owner_id, invoice_id)
            today = self._clock.today()
            context = GuardContext(
                line_items=current.line_items,
                client=current.client,
                due_date=current.due_date,
                today=today,
            )
            from_status = current.status
            if action == InvoiceAction.MARK_PAID:
                # Payment sees the same status whether or not the sweep ran.
                from_status = effective_status(current.status, current.due_date, today)
            new_status = apply_transition(from_status, action, context)
            paid_at = self._clock.now() if new_status == InvoiceStatus.PAID else None
            invoice = self._gateway.update_invoice_status(invoice_id, new_status, paid_at=paid_at)
            self._status_changed(invoice, current.status, action)
            return invoice

        return self._execute(operation, work, owner_id, invoice_id)

    def submit_invoice(self, owner_id: UUID, invoice_id: UUID) -> InvoiceResult:
        """Send a draft: draft -> pending."""
        return self._transition("submit_invoice", owner_id, invoice_id, InvoiceAction.SUBMIT)

    def mark_paid(self, owner_id: UUID, invoice_id: UUID) -> InvoiceResult:
        """
        Record payment of a pending or overdue invoice.  Sets ``paid_at``.

        A draft past its due date counts as overdue, so it is payable once it
        is complete (line items, first description, client).
        """
        return self._transition("mark_paid", owner_id, invoice_id, InvoiceAction.MARK_PAID)

    def cancel_invoice(self, owner_id: UUID, invoice_id: UUID) -> InvoiceResult:
        return self._transition("cancel_invoice", owner_id, invoice_id, InvoiceAction.CANCEL)

    def delete_invoice(self, owner_id: UUID, invoice_id: UUID) -> InvoiceResult:
        """
        Remove an invoice permanently, in any status.

        The result carries the invoice as it was before deletion.  Its
        number is not reissued: the yearly counter does not move back.
        """

        def work() -> Invoice:
            current = self._load_owned(owner_id, invoice_id)
            self._gateway.delete_invoice(invoice_id)
            logger.info(
                "invoice_deleted",
                extra={
                    "invoice_number": current.invoice_number,
                    "status": current.status.value,
                },
            )
            return current

        return self._execute("delete_invoice", work, owner_id, invoice_id)

    def sweep_overdue(self, today: date | None = None) -> list[Invoice]:
        """
        Persist OVERDUE on every draft and pending invoice past its due date.

        Runs across all owners, as a scheduled job.  Returns the invoices
        that changed.
        """
        as_of = today or self._clock.today()
        with LogContext.bind(correlation_id=str(uuid4())):
            try:
                changed = []
                for current in self._gateway.list_sweepable(as_of):
                    new_status = apply_transition(
                        current.status,
                        InvoiceAction.MARK_OVERDUE,
                        GuardContext(due_date=current.due_date, today=as_of),
                    )
                    invoice = self._gateway.update_invoice_status(current.id, new_status)
                    self._status_changed(invoice, current.status, InvoiceAction.MARK_OVERDUE)
                    changed.append(invoice)
                if self._auto_commit:
                    self._session.commit()
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.error("overdue_sweep_failed", exc_info=True)
                raise

            logger.info(
                "overdue_sweep_completed",
                extra={"as_of": as_of, "changed_count": len(changed)},
            )
            return changed

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_invoice(self, owner_id: UUID, invoice_id: UUID) -> InvoiceResult:
        """Fetch one invoice with its effective status."""

        def work() -> Invoice:
            invoice = self._gateway.get_invoice(invoice_id)
            if invoice is None:
                raise InvoiceNotFoundError(str(invoice_id))
            if invoice.owner_id != owner_id:
                raise UnauthorizedError(str(invoice_id), str(owner_id))
            return self._selector.with_effective_status(invoice, self._clock.today())

        return self._execute("get_invoice", work, owner_id, invoice_id)

    def list_invoices(
        self, owner_id: UUID, status: InvoiceStatus | None = None
    ) -> list[Invoice]:
        return self._selector.list_for_owner(owner_id, self._clock.today(), status=status)

    def summarize(self, owner_id: UUID, as_of: date | None = None) -> InvoiceSummary:
        return self._selector.summarize(owner_id, as_of or self._clock.today())

    def preview_number(self, owner_id: UUID) -> str:
        """Number the next invoice created today would get, for form previews."""
        return self._sequence.peek_next_number(owner_id, self._clock.today().year)
