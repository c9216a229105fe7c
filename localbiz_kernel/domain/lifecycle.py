"""
Invoice lifecycle state machine.

Every status change in the kernel goes through ``apply_transition``.  The
table below is the single source of truth; call sites never compare status
strings themselves.

    (none)                  --create_draft-->   draft
    (none)                  --create_pending--> pending    [submittable]
    draft                   --submit-->         pending    [submittable]
    pending                 --mark_paid-->      paid
    overdue                 --mark_paid-->      paid       [submittable]
    draft, pending          --mark_overdue-->   overdue    [past_due]
    draft, pending, overdue --cancel-->         cancelled

An overdue invoice may have been a draft that was never sent, so paying it
re-checks the submittable guard.  PAID and CANCELLED are terminal.  Any
(status, action) pair missing from the table raises InvalidTransitionError.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from localbiz_kernel.domain.dtos import ClientSnapshot, InvoiceStatus, LineItem
from localbiz_kernel.exceptions import InvalidInputError, InvalidTransitionError


class InvoiceAction(str, Enum):
    """Triggers that move an invoice between states."""

    CREATE_DRAFT = "create_draft"
    CREATE_PENDING = "create_pending"
    SUBMIT = "submit"
    MARK_PAID = "mark_paid"
    MARK_OVERDUE = "mark_overdue"
    CANCEL = "cancel"


@dataclass(frozen=True)
class GuardContext:
    """Facts a guard may inspect."""

    line_items: tuple[LineItem, ...] = ()
    client: ClientSnapshot | None = None
    due_date: date | None = None
    today: date | None = None


@dataclass(frozen=True)
class Guard:
    """A condition for a transition.  ``check`` raises when it does not hold."""

    name: str
    description: str
    check: Callable[[GuardContext, InvoiceStatus | None, InvoiceAction], None] = field(
        compare=False, repr=False
    )


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""

    from_state: InvoiceStatus | None
    to_state: InvoiceStatus
    action: InvoiceAction
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""

    name: str
    description: str
    states: tuple[InvoiceStatus, ...]
    transitions: tuple[Transition, ...]

    def find(self, from_state: InvoiceStatus | None, action: InvoiceAction) -> Transition | None:
        for transition in self.transitions:
            if transition.from_state == from_state and transition.action == action:
                return transition
        return None


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------


def _check_submittable(
    ctx: GuardContext, status: InvoiceStatus | None, action: InvoiceAction
) -> None:
    if not ctx.line_items:
        raise InvalidInputError("line_items", "at least one line item is required")
    if not ctx.line_items[0].has_description:
        raise InvalidInputError("line_items[0].description", "must not be empty")
    if ctx.client is None or not ctx.client.is_selected:
        raise InvalidInputError("client", "a client must be selected")


def _check_past_due(
    ctx: GuardContext, status: InvoiceStatus | None, action: InvoiceAction
) -> None:
    if ctx.due_date is None or ctx.today is None or not ctx.due_date < ctx.today:
        raise InvalidTransitionError(status.value if status else "none", action.value)


SUBMITTABLE = Guard(
    name="submittable",
    description="At least one line item, first description non-empty, client selected",
    check=_check_submittable,
)

PAST_DUE = Guard(
    name="past_due",
    description="Due date is strictly before today",
    check=_check_past_due,
)


# -----------------------------------------------------------------------------
# Invoice Workflow
# -----------------------------------------------------------------------------

_S = InvoiceStatus
_A = InvoiceAction

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Tradesperson invoice lifecycle",
    states=tuple(InvoiceStatus),
    transitions=(
        Transition(None, _S.DRAFT, _A.CREATE_DRAFT),
        Transition(None, _S.PENDING, _A.CREATE_PENDING, guard=SUBMITTABLE),
        Transition(_S.DRAFT, _S.PENDING, _A.SUBMIT, guard=SUBMITTABLE),
        Transition(_S.PENDING, _S.PAID, _A.MARK_PAID),
        Transition(_S.OVERDUE, _S.PAID, _A.MARK_PAID, guard=SUBMITTABLE),
        Transition(_S.DRAFT, _S.OVERDUE, _A.MARK_OVERDUE, guard=PAST_DUE),
        Transition(_S.PENDING, _S.OVERDUE, _A.MARK_OVERDUE, guard=PAST_DUE),
        Transition(_S.DRAFT, _S.CANCELLED, _A.CANCEL),
        Transition(_S.PENDING, _S.CANCELLED, _A.CANCEL),
        Transition(_S.OVERDUE, _S.CANCELLED, _A.CANCEL),
    ),
)

EDITABLE_STATES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.PENDING})


def creation_action(status: InvoiceStatus) -> InvoiceAction:
    """Map the submit button (DRAFT or PENDING) to its creation action."""
    if status == InvoiceStatus.DRAFT:
        return InvoiceAction.CREATE_DRAFT
    if status == InvoiceStatus.PENDING:
        return InvoiceAction.CREATE_PENDING
    raise InvalidInputError("status", f"invoices are created as draft or pending, not {status.value}")


def apply_transition(
    current: InvoiceStatus | None,
    action: InvoiceAction,
    context: GuardContext | None = None,
) -> InvoiceStatus:
    """
    Validate ``action`` from ``current`` and return the resulting status.

    ``current`` is None for creation actions.

    Raises:
        InvalidTransitionError: If the table has no such transition, or the
            past-due guard fails.
        InvalidInputError: If the submittable guard fails.
    """
    transition = INVOICE_WORKFLOW.find(current, action)
    if transition is None:
        raise InvalidTransitionError(current.value if current else "none", action.value)
    if transition.guard is not None:
        transition.guard.check(context or GuardContext(), current, action)
    return transition.to_state


def allowed_actions(current: InvoiceStatus | None) -> tuple[InvoiceAction, ...]:
    """Actions with a transition out of ``current`` (guards not evaluated)."""
    return tuple(
        t.action for t in INVOICE_WORKFLOW.transitions if t.from_state == current
    )


def ensure_editable(current: InvoiceStatus) -> None:
    """Only draft and pending invoices may have their content changed."""
    if current not in EDITABLE_STATES:
        raise InvalidTransitionError(current.value, "update")


def is_past_due(status: InvoiceStatus, due_date: date, today: date) -> bool:
    """True when a draft or pending invoice has passed its due date."""
    return status in (InvoiceStatus.DRAFT, InvoiceStatus.PENDING) and due_date < today


def effective_status(status: InvoiceStatus, due_date: date, today: date) -> InvoiceStatus:
    """
    Status as of ``today``, deriving OVERDUE without persisting it.

    The persisted sweep (``InvoiceService.sweep_overdue``) converges stored
    statuses onto the same answer.
    """
    if is_past_due(status, due_date, today):
        return InvoiceStatus.OVERDUE
    return status
