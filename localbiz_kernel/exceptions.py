"""
Typed exception hierarchy for the invoicing kernel.

Every error has its own class, a machine-readable ``code`` class attribute,
and carries its context as attributes rather than only in the message.
Callers catch by type and report by code; nobody parses message strings.

    LocalBizError (base)
    |
    +-- InvoiceError
    |   +-- InvalidInputError
    |   +-- InvalidTransitionError
    |   +-- SequenceExhaustedError
    |   +-- UnauthorizedError
    |   +-- InvoiceNotFoundError
    |
    +-- ConcurrencyError
    |   +-- ConflictError
    |
    +-- ConfigError
        +-- InvalidConfigError

Category        | Code                 | When raised
----------------|----------------------|------------------------------------------
Invoice         | INVALID_INPUT        | Malformed line item, negative amount,
                |                      | missing description/client, bad dates
                | INVALID_TRANSITION   | Status change not in the lifecycle table
                | SEQUENCE_EXHAUSTED   | Yearly invoice counter passed 999
                | UNAUTHORIZED         | Caller does not own the invoice
                | NOT_FOUND            | Invoice id unknown
----------------|----------------------|------------------------------------------
Concurrency     | CONFLICT             | Lost a race on number assignment or a
                |                      | unique constraint
----------------|----------------------|------------------------------------------
Config          | INVALID_CONFIG       | Configuration file failed validation

The service layer converts these into ``InvoiceResult`` values at its
boundary; see ``localbiz_kernel.services.invoice_service``.
"""


class LocalBizError(Exception):
    """
    Base exception for all invoicing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LOCALBIZ_ERROR"


# Invoice-related exceptions


class InvoiceError(LocalBizError):
    """Base exception for invoice-related errors."""

    code: str = "INVOICE_ERROR"


class InvalidInputError(InvoiceError):
    """Input rejected before any state change."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidTransitionError(InvoiceError):
    """Requested status change is not allowed from the current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, current_status: str, action: str):
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} an invoice in status '{current_status}'"
        )


class SequenceExhaustedError(InvoiceError):
    """
    The yearly invoice counter for an owner has no numbers left.

    Numbers are fixed at three digits, so 999 invoices per owner per year
    is a hard ceiling.
    """

    code: str = "SEQUENCE_EXHAUSTED"

    def __init__(self, owner_id: str, year: int, limit: int):
        self.owner_id = owner_id
        self.year = year
        self.limit = limit
        super().__init__(
            f"Invoice sequence exhausted for owner {owner_id} in {year} "
            f"(limit {limit})"
        )


class UnauthorizedError(InvoiceError):
    """Caller is not the tenant owning the invoice."""

    code: str = "UNAUTHORIZED"

    def __init__(self, invoice_id: str, owner_id: str):
        self.invoice_id = invoice_id
        self.owner_id = owner_id
        super().__init__(
            f"Owner {owner_id} is not allowed to modify invoice {invoice_id}"
        )


class InvoiceNotFoundError(InvoiceError):
    """Invoice with given ID was not found."""

    code: str = "NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


# Concurrency-related exceptions


class ConcurrencyError(LocalBizError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConflictError(ConcurrencyError):
    """
    A concurrent write won the race.

    Raised when the conditional counter update matches no row, when two
    requests create the same counter row, or when an insert hits the
    (owner_id, invoice_number) unique constraint.  The caller may retry the
    whole operation once with freshly read state.
    """

    code: str = "CONFLICT"

    def __init__(self, resource: str, key: str, reason: str):
        self.resource = resource
        self.key = key
        self.reason = reason
        super().__init__(f"Conflict on {resource} {key}: {reason}")


# Configuration-related exceptions


class ConfigError(LocalBizError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidConfigError(ConfigError):
    """Configuration value failed validation."""

    code: str = "INVALID_CONFIG"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")
