"""Tests for localbiz_kernel.domain.money and the LineItem DTO."""

from decimal import Decimal

import pytest

from localbiz_kernel.db.types import money_from_minor_units, round_money, to_minor_units
from localbiz_kernel.domain.dtos import LineItem
from localbiz_kernel.domain.money import (
    MAX_AMOUNT,
    MAX_QUANTITY,
    InvoiceTotals,
    build_line_item,
    build_line_items,
    compute_line_amount,
    compute_line_tax,
    compute_totals,
    to_decimal,
    to_line_value,
)
from localbiz_kernel.exceptions import InvalidInputError


class TestComputeLineAmount:
    def test_simple_product(self):
        assert compute_line_amount(Decimal("2"), Decimal("50")) == Decimal("100.00")

    def test_rounds_half_up(self):
        # 3 x 0.335 = 1.005 -> 1.01 (half-up), not 1.00 (banker's)
        assert compute_line_amount(Decimal("3"), Decimal("0.335")) == Decimal("1.01")

    def test_fractional_quantity(self):
        assert compute_line_amount(Decimal("1.5"), Decimal("45.50")) == Decimal("68.25")

    def test_zero_quantity(self):
        assert compute_line_amount(0, Decimal("99.99")) == Decimal("0.00")

    def test_accepts_strings_and_ints(self):
        assert compute_line_amount("2", 50) == Decimal("100.00")

    def test_accepts_french_decimal_comma(self):
        assert compute_line_amount("2", "12,50") == Decimal("25.00")

    def test_negative_quantity_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            compute_line_amount(Decimal("-1"), Decimal("10"))
        assert exc_info.value.field == "quantity"

    def test_negative_price_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            compute_line_amount(Decimal("1"), Decimal("-10"))
        assert exc_info.value.field == "unit_price"

    def test_float_rejected(self):
        with pytest.raises(InvalidInputError):
            compute_line_amount(0.1, Decimal("10"))

    def test_garbage_rejected(self):
        with pytest.raises(InvalidInputError):
            compute_line_amount("abc", Decimal("10"))


class TestToDecimal:
    @pytest.mark.parametrize("value", [True, 1.5, None, [1], "NaN", "Infinity"])
    def test_rejects(self, value):
        with pytest.raises(InvalidInputError):
            to_decimal(value, "x")

    def test_strips_whitespace(self):
        assert to_decimal("  5.5 ", "x") == Decimal("5.5")


class TestComputeLineTax:
    def test_exact_not_rounded(self):
        assert compute_line_tax(Decimal("0.05"), Decimal("5.5")) == Decimal("0.00275")

    def test_zero_rate(self):
        assert compute_line_tax(Decimal("30.00"), Decimal("0")) == 0


class TestComputeTotals:
    def test_reference_invoice(self, line_items):
        totals = compute_totals(line_items)
        assert [item.amount for item in line_items] == [
            Decimal("100.00"),
            Decimal("100.00"),
            Decimal("30.00"),
        ]
        assert totals.subtotal == Decimal("230.00")
        assert totals.tax_total == Decimal("30.00")
        assert totals.total == Decimal("260.00")

    def test_empty_is_zero(self):
        assert compute_totals(()) == InvoiceTotals.zero()

    def test_tax_summed_before_rounding(self):
        # Each line's tax is 0.0055; rounding per line would give 0.01 x 3.
        items = tuple(LineItem(name, 1, Decimal("0.10"), Decimal("5.5")) for name in "abc")
        assert compute_totals(items).tax_total == Decimal("0.02")

    def test_total_is_subtotal_plus_tax(self):
        items = (
            LineItem("a", Decimal("3"), Decimal("19.99"), Decimal("20")),
            LineItem("b", Decimal("0.5"), Decimal("7.33"), Decimal("5.5")),
        )
        totals = compute_totals(items)
        assert totals.total == totals.subtotal + totals.tax_total

    def test_idempotent(self, line_items):
        assert compute_totals(line_items) == compute_totals(line_items)

    def test_vat_rates_applied_per_line(self):
        items = (
            LineItem("a", 1, Decimal("100"), Decimal("20")),
            LineItem("b", 1, Decimal("100"), Decimal("5.5")),
        )
        assert compute_totals(items).tax_total == Decimal("25.50")


class TestLineItem:
    def test_amount_derived(self):
        item = LineItem("Pose carrelage", "12", "35.5", "10")
        assert item.amount == Decimal("426.00")
        assert item.quantity == Decimal("12")

    def test_amount_cannot_be_passed(self):
        with pytest.raises(TypeError):
            LineItem("x", 1, 1, 20, amount=Decimal("999"))  # type: ignore[call-arg]

    def test_negative_tax_rate_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            LineItem("x", 1, 1, "-1")
        assert exc_info.value.field == "tax_rate"

    def test_has_description(self):
        assert LineItem("x", 1, 1, 20).has_description
        assert not LineItem("   ", 1, 1, 20).has_description

    def test_payload_uses_strings(self):
        payload = LineItem("x", 2, "1.25", 20).to_payload()
        assert payload["amount"] == "2.50"


class TestBuildLineItems:
    def test_ignores_submitted_amount(self):
        (item,) = build_line_items(
            [{"description": "x", "quantity": "2", "unit_price": "10", "tax_rate": "20", "amount": "1"}]
        )
        assert item.amount == Decimal("20.00")

    def test_default_tax_rate(self):
        (item,) = build_line_items(
            [{"description": "x", "quantity": 1, "unit_price": 10}], default_tax_rate=Decimal("20")
        )
        assert item.tax_rate == Decimal("20")

    def test_missing_field_names_row(self):
        with pytest.raises(InvalidInputError) as exc_info:
            build_line_items([{"description": "x", "quantity": 1, "unit_price": 1, "tax_rate": 20}, {"quantity": 1}])
        assert exc_info.value.field == "line_items[1].unit_price"

    def test_build_line_item_defaults_description(self):
        assert build_line_item(None, 1, 1, 0).description == ""


class TestMinorUnits:
    def test_round_trip(self):
        assert to_minor_units(Decimal("260.00")) == 26000
        assert money_from_minor_units(26000) == Decimal("260.00")

    def test_round_money_half_up(self):
        assert round_money(Decimal("0.125")) == Decimal("0.13")


class TestLineBounds:
    def test_four_places_accepted(self):
        item = LineItem("Câble 2,5 mm²", Decimal("1.0004"), Decimal("999.99"), Decimal("20"))
        assert item.amount == Decimal("1000.39")

    def test_trailing_zeros_are_not_extra_places(self):
        assert LineItem("x", Decimal("1.50000"), 10, 20).amount == Decimal("15.00")

    @pytest.mark.parametrize(
        "quantity,unit_price,tax_rate,field",
        [
            (Decimal("1.00004"), Decimal("1000"), Decimal("20"), "quantity"),
            (Decimal("1"), Decimal("0.00001"), Decimal("20"), "unit_price"),
            (Decimal("1"), Decimal("1"), Decimal("5.55555"), "tax_rate"),
        ],
    )
    def test_more_than_four_places_rejected(self, quantity, unit_price, tax_rate, field):
        with pytest.raises(InvalidInputError) as exc_info:
            LineItem("Cable", quantity, unit_price, tax_rate)
        assert exc_info.value.field == field

    def test_huge_quantity_is_a_typed_error(self):
        with pytest.raises(InvalidInputError) as exc_info:
            compute_line_amount(Decimal("1e30"), Decimal("1"))
        assert exc_info.value.field == "quantity"

    def test_huge_exponent_is_a_typed_error(self):
        with pytest.raises(InvalidInputError):
            LineItem("x", Decimal("1E+999999"), Decimal("1E+999999"), 20)

    def test_quantity_limit_is_exclusive(self):
        with pytest.raises(InvalidInputError):
            to_line_value(MAX_QUANTITY, "quantity", MAX_QUANTITY)
        assert to_line_value(MAX_QUANTITY - 1, "quantity", MAX_QUANTITY) == MAX_QUANTITY - 1

    def test_tax_rate_limit(self):
        with pytest.raises(InvalidInputError) as exc_info:
            LineItem("x", 1, 1, 1000)
        assert exc_info.value.field == "tax_rate"

    def test_line_amount_must_fit_money_column(self):
        with pytest.raises(InvalidInputError) as exc_info:
            compute_line_amount(Decimal("99999999"), Decimal("9999999999"))
        assert exc_info.value.field == "amount"

    def test_line_tax_rejects_huge_amount(self):
        with pytest.raises(InvalidInputError) as exc_info:
            compute_line_tax(Decimal("1e30"), Decimal("20"))
        assert exc_info.value.field == "amount"

    def test_invoice_total_must_fit_money_column(self):
        item = LineItem("Chantier", Decimal("99999999"), Decimal("9999"), Decimal("0"))
        assert item.amount < MAX_AMOUNT
        with pytest.raises(InvalidInputError) as exc_info:
            compute_totals([item, item])
        assert exc_info.value.field == "total"

    def test_form_rows_with_huge_values(self):
        with pytest.raises(InvalidInputError) as exc_info:
            build_line_items([{"description": "x", "quantity": "1e40", "unit_price": "1", "tax_rate": "20"}])
        assert exc_info.value.field == "quantity"
