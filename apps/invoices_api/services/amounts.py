"""
Numeric helpers shared by the line calculator and the reconciliation engine.

Everything here is pure. Values coming from an editor can be half-typed
("12,", "", "abc"), so coercion never raises: anything that does not parse
becomes the supplied default.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Value used when numeric input cannot be parsed
NUMERIC_FALLBACK = ZERO


def parse_or_default(value: Any, default: Optional[Decimal] = NUMERIC_FALLBACK) -> Optional[Decimal]:
    """
    Coerce `value` to a Decimal, returning `default` when it is not a usable number.

    Accepts Decimal, int, float and text. Text is stripped and a decimal comma
    is accepted ("12,50" -> 12.50). None, booleans, blank or unparsable text,
    NaN and infinities all yield `default`.
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, Decimal):
        candidate = value
    elif isinstance(value, (int, float)):
        candidate = Decimal(str(value))
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return default
        try:
            candidate = Decimal(text)
        except InvalidOperation:
            return default

    if not candidate.is_finite():
        return default
    return candidate


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_line_amount(quantity: Any, unit_price: Any, discount: Any) -> Decimal:
    """
    Net amount of one line: max(0, quantity * unit_price - discount).

    Negative inputs count as 0. Not rounded; only the document tax step rounds.
    """
    quantity, unit_price, discount = (
        max(ZERO, parse_or_default(v)) for v in (quantity, unit_price, discount)
    )
    amount = quantity * unit_price - discount
    # a line never contributes negative value; oversized discounts show up as a document gap instead
    return max(ZERO, amount)
