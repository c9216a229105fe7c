"""
Numbering -- year-scoped invoice numbers.

Responsibility:
    Derives the next ``{PREFIX}-{YEAR}-{SEQ:03d}`` number for a tenant from
    the last number it issued.  Pure: the atomic claim of the number lives in
    ``InvoiceSequenceService``, which calls ``next_invoice_number`` while
    holding the per-owner-per-year counter.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Sequences restart at 1 every calendar year.
    - Within a year, numbers are strictly increasing and gap-free when
      derived one after another.
    - The sequence part is always exactly three digits; the 1000th number
      of a year raises SequenceExhaustedError instead of widening.

Failure modes:
    - SequenceExhaustedError past 999.
    - InvalidInputError for a malformed prefix or year.
"""

import re
from dataclasses import dataclass
from uuid import UUID

from localbiz_kernel.exceptions import InvalidInputError, SequenceExhaustedError

DEFAULT_PREFIX = "FAC"
SEQUENCE_WIDTH = 3
MAX_SEQUENCE = 10**SEQUENCE_WIDTH - 1

_PREFIX_RE = re.compile(r"^[A-Z][A-Z0-9]{0,9}$")
_NUMBER_RE = re.compile(r"^(?P<prefix>[A-Z][A-Z0-9]{0,9})-(?P<year>\d{4})-(?P<seq>\d{3,})$")


@dataclass(frozen=True)
class InvoiceNumber:
    """Parsed form of an invoice number."""

    prefix: str
    year: int
    sequence: int

    def __str__(self) -> str:
        return format_invoice_number(self.prefix, self.year, self.sequence)


def _check_prefix(prefix: str) -> None:
    if not _PREFIX_RE.match(prefix or ""):
        raise InvalidInputError("prefix", f"must be 1-10 uppercase letters or digits, got {prefix!r}")


def format_invoice_number(prefix: str, year: int, sequence: int) -> str:
    """Format e.g. ("FAC", 2025, 8) -> "FAC-2025-008"."""
    _check_prefix(prefix)
    if not 1000 <= year <= 9999:
        raise InvalidInputError("year", f"must have four digits, got {year}")
    if not 1 <= sequence <= MAX_SEQUENCE:
        raise InvalidInputError("sequence", f"must be in 1..{MAX_SEQUENCE}, got {sequence}")
    return f"{prefix}-{year:04d}-{sequence:0{SEQUENCE_WIDTH}d}"


def parse_invoice_number(number: str | None, prefix: str | None = None) -> InvoiceNumber | None:
    """
    Parse an invoice number, or return None if it does not match.

    When ``prefix`` is given, numbers carrying another prefix do not match.
    Legacy numbers wider than three digits still parse so that an
    overflowed sequence is recognised rather than silently restarted.
    """
    if not number:
        return None
    match = _NUMBER_RE.match(number.strip())
    if match is None:
        return None
    if prefix is not None and match["prefix"] != prefix:
        return None
    return InvoiceNumber(
        prefix=match["prefix"],
        year=int(match["year"]),
        sequence=int(match["seq"]),
    )


def next_sequence(year: int, last_issued: InvoiceNumber | None) -> int:
    """Sequence that follows ``last_issued`` within ``year`` (1 on a new year)."""
    if last_issued is None or last_issued.year != year:
        return 1
    return last_issued.sequence + 1


def next_invoice_number(
    owner_id: UUID | str,
    year: int,
    last_issued_number: str | None,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """
    Next invoice number for an owner in ``year``.

    ``last_issued_number`` is the owner's most recently created invoice
    number, or None for a first invoice.  A number from another year, with
    another prefix, or in an unrecognised format starts the sequence at 1.

    Raises:
        SequenceExhaustedError: If the owner already issued 999 numbers in
            ``year``.
    """
    _check_prefix(prefix)
    last = parse_invoice_number(last_issued_number, prefix=prefix)
    sequence = next_sequence(year, last)
    if sequence > MAX_SEQUENCE:
        raise SequenceExhaustedError(str(owner_id), year, MAX_SEQUENCE)
    return format_invoice_number(prefix, year, sequence)
