"""Tests for localbiz_kernel.domain.numbering."""

from uuid import uuid4

import pytest

from localbiz_kernel.domain.numbering import (
    MAX_SEQUENCE,
    InvoiceNumber,
    format_invoice_number,
    next_invoice_number,
    next_sequence,
    parse_invoice_number,
)
from localbiz_kernel.exceptions import InvalidInputError, SequenceExhaustedError

OWNER = uuid4()


class TestNextInvoiceNumber:
    def test_first_invoice(self):
        assert next_invoice_number(OWNER, 2025, None) == "FAC-2025-001"

    def test_increments_within_year(self):
        assert next_invoice_number(OWNER, 2025, "FAC-2025-007") == "FAC-2025-008"

    def test_new_year_restarts(self):
        assert next_invoice_number(OWNER, 2026, "FAC-2025-007") == "FAC-2026-001"

    def test_unparseable_restarts(self):
        assert next_invoice_number(OWNER, 2025, "INV/42") == "FAC-2025-001"

    def test_other_prefix_restarts(self):
        assert next_invoice_number(OWNER, 2025, "DEV-2025-010") == "FAC-2025-001"

    def test_custom_prefix(self):
        assert next_invoice_number(OWNER, 2025, "DEV-2025-010", prefix="DEV") == "DEV-2025-011"

    def test_keeps_three_digits(self):
        assert next_invoice_number(OWNER, 2025, "FAC-2025-099") == "FAC-2025-100"

    def test_last_available_number(self):
        assert next_invoice_number(OWNER, 2025, "FAC-2025-998") == "FAC-2025-999"

    def test_exhausted_after_999(self):
        with pytest.raises(SequenceExhaustedError) as exc_info:
            next_invoice_number(OWNER, 2025, "FAC-2025-999")
        assert exc_info.value.year == 2025
        assert exc_info.value.limit == MAX_SEQUENCE
        assert exc_info.value.owner_id == str(OWNER)

    def test_exhaustion_is_per_year(self):
        assert next_invoice_number(OWNER, 2026, "FAC-2025-999") == "FAC-2026-001"

    def test_bad_prefix_rejected(self):
        with pytest.raises(InvalidInputError):
            next_invoice_number(OWNER, 2025, None, prefix="fac")


class TestParseInvoiceNumber:
    def test_parses(self):
        assert parse_invoice_number("FAC-2025-007") == InvoiceNumber("FAC", 2025, 7)

    def test_wide_legacy_sequence(self):
        assert parse_invoice_number("FAC-2025-1000").sequence == 1000

    @pytest.mark.parametrize("value", [None, "", "FAC-25-001", "FAC-2025-01", "fac-2025-001", "FAC-2025-001x"])
    def test_rejects(self, value):
        assert parse_invoice_number(value) is None

    def test_prefix_filter(self):
        assert parse_invoice_number("DEV-2025-001", prefix="FAC") is None

    def test_str_round_trips(self):
        assert str(parse_invoice_number("FAC-2024-123")) == "FAC-2024-123"


class TestFormatInvoiceNumber:
    def test_pads(self):
        assert format_invoice_number("FAC", 2025, 8) == "FAC-2025-008"

    @pytest.mark.parametrize("sequence", [0, -1, 1000])
    def test_sequence_out_of_range(self, sequence):
        with pytest.raises(InvalidInputError):
            format_invoice_number("FAC", 2025, sequence)

    def test_year_must_have_four_digits(self):
        with pytest.raises(InvalidInputError):
            format_invoice_number("FAC", 25, 1)


class TestNextSequence:
    def test_none(self):
        assert next_sequence(2025, None) == 1

    def test_same_year(self):
        assert next_sequence(2025, InvoiceNumber("FAC", 2025, 41)) == 42
