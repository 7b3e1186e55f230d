"""
Document reconciliation: keeps net / tax / gross totals consistent with the lines.

Every mutation path (add, remove or edit a line, change the document discount,
the tax rate or any other header field) goes through a function here that
returns a new, fully recomputed Invoice. Nothing mutates its input and there
is no setter for the derived totals.
"""
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from ..models.invoice import Invoice, LineItem
from .amounts import ZERO, compute_line_amount, parse_or_default, round_money

logger = logging.getLogger(__name__)

# Standard VAT rate used when no rate is stored or derivable
DEFAULT_TAX_RATE = Decimal("0.20")

DERIVED_FIELDS = {"net_total", "tax_total", "gross_total"}
EDITABLE_DOCUMENT_FIELDS = {"supplier", "number", "invoice_date", "delivery_date", "source_file"}


class LineField(str, Enum):
    DESCRIPTION = "description"
    SUPPLIER_REF = "supplier_ref"
    PROOF_CODE = "proof_code"
    LOGO = "logo"
    VARIANT = "variant"
    QUANTITY = "quantity"
    UNIT_PRICE = "unit_price"
    DISCOUNT = "discount"
    NET_AMOUNT = "net_amount"


TEXT_FIELDS = {
    LineField.DESCRIPTION,
    LineField.SUPPLIER_REF,
    LineField.PROOF_CODE,
    LineField.LOGO,
    LineField.VARIANT,
}
AMOUNT_INPUT_FIELDS = {LineField.QUANTITY, LineField.UNIT_PRICE, LineField.DISCOUNT}


def sum_line_amounts(lines: Iterable[LineItem]) -> Decimal:
    return sum((line.net_amount for line in lines), ZERO)


def document_discount(invoice: Invoice) -> Decimal:
    discount = invoice.raw.document_discount
    return ZERO if discount is None else discount


def resolve_tax_rate(invoice: Invoice, default_tax_rate: Decimal = DEFAULT_TAX_RATE) -> Decimal:
    """
    Pick the tax rate for a recompute.

    Priority:
    1. the rate stored on the invoice
    2. the ratio of the previously stored tax and net totals, when net is positive
    3. `default_tax_rate`
    """
    if invoice.raw.tax_rate is not None:
        return invoice.raw.tax_rate
    if invoice.net_total > 0:
        return invoice.tax_total / invoice.net_total
    return default_tax_rate


def with_computed_amount(line: LineItem) -> LineItem:
    return line.model_copy(
        update={"net_amount": compute_line_amount(line.quantity, line.unit_price, line.discount)}
    )


def recompute(invoice: Invoice, *, default_tax_rate: Decimal = DEFAULT_TAX_RATE) -> Invoice:
    """
    Return a copy of `invoice` whose totals follow from its lines.

    The line sum, discount, net-after-discount and tax rate are written back
    into `invoice.raw` so the discount and rate survive later partial edits.
    Calling this twice in a row changes nothing the second time.
    """
    line_sum = sum_line_amounts(invoice.lines)
    discount = document_discount(invoice)
    net_total = max(ZERO, line_sum - discount)
    tax_rate = resolve_tax_rate(invoice, default_tax_rate)
    tax_total = round_money(net_total * tax_rate)

    logger.debug(
        "recompute invoice=%s lines=%d line_sum=%s discount=%s tax_rate=%s",
        invoice.id,
        len(invoice.lines),
        line_sum,
        discount,
        tax_rate,
    )

    raw = invoice.raw.model_copy(
        update={
            "pre_discount_line_sum": line_sum,
            "document_discount": discount,
            "net_after_discount": net_total,
            "tax_rate": tax_rate,
        }
    )
    return invoice.model_copy(
        update={
            "net_total": net_total,
            "tax_total": tax_total,
            "gross_total": net_total + tax_total,
            "raw": raw,
        }
    )


def _index_in_range(invoice: Invoice, index: int) -> bool:
    if 0 <= index < len(invoice.lines):
        return True
    logger.warning(
        "Ignoring edit on invoice %s: line index %s out of range (%d lines)",
        invoice.id,
        index,
        len(invoice.lines),
    )
    return False


def add_line(
    invoice: Invoice,
    line: Optional[LineItem] = None,
    *,
    default_tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> Invoice:
    """Append `line` (or a blank one: quantity 1, no price) and recompute."""
    if line is None:
        line = LineItem(description="", quantity=Decimal("1"))
    lines = list(invoice.lines) + [with_computed_amount(line)]
    return recompute(invoice.model_copy(update={"lines": lines}), default_tax_rate=default_tax_rate)


def remove_line(invoice: Invoice, index: int, *, default_tax_rate: Decimal = DEFAULT_TAX_RATE) -> Invoice:
    lines = list(invoice.lines)
    if _index_in_range(invoice, index):
        del lines[index]
    return recompute(invoice.model_copy(update={"lines": lines}), default_tax_rate=default_tax_rate)


def edit_line(
    invoice: Invoice,
    index: int,
    field: Any,
    value: Any,
    *,
    default_tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> Invoice:
    """
    Change one field of one line, then recompute the document.

    Quantity, unit price and discount edits re-run the line calculator before
    the document sum is taken. Editing the net amount directly keeps the given
    value, floored at 0, and back-derives the unit price from it when the quantity is positive.
    Raises ValueError for an unknown field name.
    """
    field = LineField(field)
    if not _index_in_range(invoice, index):
        return recompute(invoice, default_tax_rate=default_tax_rate)

    line = invoice.lines[index]
    if field in TEXT_FIELDS:
        text = "" if value is None else str(value)
        if field is LineField.DESCRIPTION:
            updated = line.model_copy(update={"description": text})
        else:
            updated = line.model_copy(update={field.value: text or None})
    elif field is LineField.NET_AMOUNT:
        net_amount = max(ZERO, parse_or_default(value))
        unit_price = line.unit_price
        if line.quantity > 0:
            unit_price = (net_amount + line.discount) / line.quantity
        updated = line.model_copy(update={"net_amount": net_amount, "unit_price": unit_price})
    else:
        updated = with_computed_amount(line.model_copy(update={field.value: parse_or_default(value)}))

    lines = list(invoice.lines)
    lines[index] = updated
    return recompute(invoice.model_copy(update={"lines": lines}), default_tax_rate=default_tax_rate)


def set_document_discount(
    invoice: Invoice,
    value: Any,
    *,
    default_tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> Invoice:
    raw = invoice.raw.model_copy(update={"document_discount": max(ZERO, parse_or_default(value))})
    return recompute(invoice.model_copy(update={"raw": raw}), default_tax_rate=default_tax_rate)


def set_tax_rate(invoice: Invoice, value: Any, *, default_tax_rate: Decimal = DEFAULT_TAX_RATE) -> Invoice:
    # unparsable input keeps whatever rate was stored before
    rate = parse_or_default(value, default=invoice.raw.tax_rate)
    if rate is not None:
        rate = max(ZERO, rate)
    raw = invoice.raw.model_copy(update={"tax_rate": rate})
    return recompute(invoice.model_copy(update={"raw": raw}), default_tax_rate=default_tax_rate)


def update_fields(invoice: Invoice, *, default_tax_rate: Decimal = DEFAULT_TAX_RATE, **fields: Any) -> Invoice:
    """
    Change header fields (supplier, number, dates, source file) and recompute.

    Derived totals, lines and raw data have dedicated operations; naming them
    here raises ValueError, as does any unknown field. Values are validated
    by the Invoice model.
    """
    derived = DERIVED_FIELDS.intersection(fields)
    if derived:
        raise ValueError(f"Derived fields cannot be set directly: {sorted(derived)}")
    unknown = set(fields) - EDITABLE_DOCUMENT_FIELDS
    if unknown:
        raise ValueError(f"Fields not editable here: {sorted(unknown)}")

    updated = Invoice.model_validate({**invoice.model_dump(), **fields})
    return recompute(updated, default_tax_rate=default_tax_rate)
