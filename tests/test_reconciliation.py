"""Tests for document recalculation and the editing operations."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from apps.invoices_api.models.invoice import LineItem, RawInvoiceData
from apps.invoices_api.services.reconciliation import (
    DEFAULT_TAX_RATE,
    LineField,
    add_line,
    edit_line,
    recompute,
    remove_line,
    resolve_tax_rate,
    set_document_discount,
    set_tax_rate,
    update_fields,
)


def test_single_line_with_default_tax_rate(make_invoice) -> None:
    inv = add_line(make_invoice(), LineItem(description="Tumbler", quantity=10, unit_price="2.50"))

    assert inv.lines[0].net_amount == Decimal("25.00")
    assert inv.net_total == Decimal("25.00")
    assert inv.tax_total == Decimal("5.00")
    assert inv.gross_total == Decimal("30.00")
    assert inv.raw.tax_rate == DEFAULT_TAX_RATE


def test_document_discount_applies_before_tax(make_invoice, make_line) -> None:
    inv = make_invoice(
        lines=[make_line(net_amount="100.00"), make_line(net_amount="50.00")],
        raw=RawInvoiceData(document_discount="10.00", tax_rate="0.20"),
    )

    result = recompute(inv)

    assert result.net_total == Decimal("140.00")
    assert result.tax_total == Decimal("28.00")
    assert result.gross_total == Decimal("168.00")


def test_recompute_persists_inputs_in_raw_data(make_invoice, make_line) -> None:
    inv = make_invoice(
        lines=[make_line(net_amount="100.00"), make_line(net_amount="50.00")],
        raw=RawInvoiceData(document_discount="10.00", tax_rate="0.20"),
    )

    raw = recompute(inv).raw

    assert raw.pre_discount_line_sum == Decimal("150.00")
    assert raw.document_discount == Decimal("10.00")
    assert raw.net_after_discount == Decimal("140.00")
    assert raw.tax_rate == Decimal("0.20")


def test_recompute_does_not_mutate_its_input(make_invoice, make_line) -> None:
    inv = make_invoice(lines=[make_line(quantity="2", unit_price="10")])

    result = recompute(inv)

    assert result is not inv
    assert inv.net_total == Decimal("0")
    assert inv.raw.tax_rate is None


def test_recompute_is_idempotent(make_invoice, make_line) -> None:
    inv = make_invoice(
        lines=[make_line(quantity="3", unit_price="9.99"), make_line(quantity="7", unit_price="0.333")],
        net_total="30",
        tax_total="5.5",
        gross_total="35.5",
        raw=RawInvoiceData(document_discount="1.17"),
    )

    once = recompute(inv)
    twice = recompute(once)

    assert twice == once


@pytest.mark.parametrize("discount", ["0", "4.99", "1000"])
def test_gross_is_net_plus_tax_after_recompute(make_invoice, make_line, discount) -> None:
    inv = make_invoice(
        lines=[make_line(quantity="13", unit_price="1.37"), make_line(quantity="2", unit_price="19.90")],
        raw=RawInvoiceData(document_discount=discount, tax_rate="0.055"),
    )

    result = recompute(inv)

    assert result.gross_total == result.net_total + result.tax_total
    assert result.net_total >= 0


def test_tax_rate_inferred_from_prior_totals(make_invoice, make_line) -> None:
    inv = make_invoice(
        lines=[make_line(quantity="1", unit_price="200")],
        net_total="100.00",
        tax_total="10.00",
        gross_total="110.00",
    )

    assert resolve_tax_rate(inv) == Decimal("0.1")
    result = recompute(inv)
    assert result.tax_total == Decimal("20.00")
    assert result.raw.tax_rate == Decimal("0.1")


def test_stored_tax_rate_wins_over_inferred_one(make_invoice) -> None:
    inv = make_invoice(net_total="100", tax_total="10", raw=RawInvoiceData(tax_rate="0.055"))

    assert resolve_tax_rate(inv) == Decimal("0.055")


def test_zero_prior_net_total_falls_back_to_default_rate(make_invoice) -> None:
    inv = make_invoice(net_total="0", tax_total="3")

    assert resolve_tax_rate(inv) == DEFAULT_TAX_RATE
    assert resolve_tax_rate(inv, Decimal("0.1")) == Decimal("0.1")


def test_editing_quantity_recomputes_line_and_document(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="1", unit_price="9.99")]))

    result = edit_line(inv, 0, LineField.QUANTITY, "3")

    assert result.lines[0].quantity == Decimal("3")
    assert result.lines[0].net_amount == Decimal("29.97")
    assert result.net_total == Decimal("29.97")
    assert result.tax_total == Decimal("5.99")
    assert result.gross_total == Decimal("35.96")


def test_editing_discount_with_malformed_text_counts_as_zero(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="2", unit_price="10", discount="5")]))

    result = edit_line(inv, 0, "discount", "abc")

    assert result.lines[0].discount == Decimal("0")
    assert result.lines[0].net_amount == Decimal("20")


def test_line_discount_above_line_value_clamps_line(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="1", unit_price="10")]))

    result = edit_line(inv, 0, LineField.DISCOUNT, "25")

    assert result.lines[0].net_amount == Decimal("0")
    assert result.net_total == Decimal("0")


def test_editing_net_amount_back_derives_unit_price(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="4", unit_price="5", discount="2")]))

    result = edit_line(inv, 0, LineField.NET_AMOUNT, "38")

    assert result.lines[0].net_amount == Decimal("38")
    assert result.lines[0].unit_price == Decimal("10")
    assert result.net_total == Decimal("38")


def test_negative_net_amount_override_clamps_to_zero(make_invoice, make_line) -> None:
    inv = recompute(
        make_invoice(
            lines=[
                make_line(quantity="1", unit_price="100"),
                make_line(description="Carafe", quantity="1", unit_price="20"),
            ]
        )
    )

    result = edit_line(inv, 0, LineField.NET_AMOUNT, "-50")

    assert result.lines[0].net_amount == Decimal("0")
    assert result.lines[0].unit_price == Decimal("0")
    assert result.net_total == Decimal("20")
    assert all(line.net_amount >= 0 for line in result.lines)


def test_editing_net_amount_with_zero_quantity_keeps_unit_price(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="0", unit_price="5")]))

    result = edit_line(inv, 0, LineField.NET_AMOUNT, "12")

    assert result.lines[0].unit_price == Decimal("5")
    assert result.lines[0].net_amount == Decimal("12")


def test_editing_text_fields(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="1", unit_price="5")]))
    inv = edit_line(inv, 0, LineField.VARIANT, "Blue")
    inv = edit_line(inv, 0, LineField.DESCRIPTION, "Carafe 1.2L")

    assert inv.lines[0].variant == "Blue"
    assert inv.lines[0].description == "Carafe 1.2L"

    cleared = edit_line(inv, 0, LineField.VARIANT, "")
    assert cleared.lines[0].variant is None
    assert cleared.net_total == Decimal("5")


def test_unknown_line_field_raises(make_invoice, make_line) -> None:
    inv = make_invoice(lines=[make_line()])

    with pytest.raises(ValueError):
        edit_line(inv, 0, "colour_code", "red")


def test_out_of_range_edit_leaves_lines_unchanged(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="1", unit_price="5")]))

    assert edit_line(inv, 3, LineField.QUANTITY, "9").lines == inv.lines
    assert remove_line(inv, -1).lines == inv.lines


def test_add_blank_line(make_invoice) -> None:
    inv = add_line(make_invoice())

    assert len(inv.lines) == 1
    assert inv.lines[0].description == ""
    assert inv.lines[0].quantity == Decimal("1")
    assert inv.lines[0].net_amount == Decimal("0")
    assert inv.net_total == Decimal("0")


def test_added_line_gets_fresh_net_amount(make_invoice) -> None:
    stale = LineItem(description="Shaker", quantity="2", unit_price="15", net_amount="999")

    inv = add_line(make_invoice(), stale)

    assert inv.lines[0].net_amount == Decimal("30")


def test_removing_last_line_zeroes_totals(make_invoice, make_line) -> None:
    inv = make_invoice(
        lines=[make_line(quantity="1", unit_price="80")],
        raw=RawInvoiceData(document_discount="10", tax_rate="0.2"),
    )
    inv = recompute(inv)

    result = remove_line(inv, 0)

    assert result.lines == []
    assert result.net_total == Decimal("0")
    assert result.tax_total == Decimal("0")
    assert result.gross_total == Decimal("0")


def test_document_discount_is_sticky_across_line_edits(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="10", unit_price="10")]))
    inv = set_document_discount(inv, "15,00")

    assert inv.net_total == Decimal("85.00")

    inv = edit_line(inv, 0, LineField.QUANTITY, "20")
    assert inv.raw.document_discount == Decimal("15.00")
    assert inv.net_total == Decimal("185.00")
    assert inv.tax_total == Decimal("37.00")


def test_malformed_document_discount_becomes_zero(make_invoice, make_line) -> None:
    inv = recompute(
        make_invoice(lines=[make_line(quantity="1", unit_price="50")], raw=RawInvoiceData(document_discount="5"))
    )

    result = set_document_discount(inv, "five")

    assert result.raw.document_discount == Decimal("0")
    assert result.net_total == Decimal("50")


def test_set_tax_rate(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="1", unit_price="50")]))

    result = set_tax_rate(inv, "0.055")

    assert result.raw.tax_rate == Decimal("0.055")
    assert result.tax_total == Decimal("2.75")
    assert result.gross_total == Decimal("52.75")


def test_malformed_tax_rate_keeps_last_known_rate(make_invoice, make_line) -> None:
    inv = set_tax_rate(recompute(make_invoice(lines=[make_line(quantity="1", unit_price="50")])), "0.1")

    result = set_tax_rate(inv, "ten percent")

    assert result.raw.tax_rate == Decimal("0.1")
    assert result.tax_total == Decimal("5.00")


def test_negative_document_discount_is_clamped(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="1", unit_price="50")]))

    result = set_document_discount(inv, "-10")

    assert result.raw.document_discount == Decimal("0")
    assert result.net_total == Decimal("50")


def test_negative_tax_rate_is_clamped(make_invoice, make_line) -> None:
    inv = recompute(make_invoice(lines=[make_line(quantity="1", unit_price="50")]))

    result = set_tax_rate(inv, "-0.2")

    assert result.raw.tax_rate == Decimal("0")
    assert result.tax_total == Decimal("0.00")
    assert result.gross_total == Decimal("50")


def test_update_fields_changes_header_and_recomputes(make_invoice, make_line) -> None:
    inv = make_invoice(lines=[make_line(quantity="2", unit_price="10")])

    result = update_fields(inv, supplier="ITALESSE", delivery_date="2025-04-01")

    assert result.supplier == "ITALESSE"
    assert result.delivery_date == date(2025, 4, 1)
    assert result.net_total == Decimal("20")
    assert inv.supplier == "RB DRINKS"


@pytest.mark.parametrize("field", ["net_total", "tax_total", "gross_total", "lines"])
def test_update_fields_rejects_derived_and_structural_fields(make_invoice, field) -> None:
    with pytest.raises(ValueError):
        update_fields(make_invoice(), **{field: "1"})


def test_invoice_is_frozen(make_invoice) -> None:
    inv = make_invoice()

    with pytest.raises(ValidationError):
        inv.net_total = Decimal("10")
