from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from typing import List, Optional, Annotated
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from ..services.amounts import ZERO, parse_or_default


def _coerce_amount(value):
    return parse_or_default(value)


def _coerce_optional_amount(value):
    return parse_or_default(value, default=None)


# Malformed numbers degrade to 0 (or None for optional fields) instead of failing validation.
# JSON output uses plain numbers, not decimal strings.
Amount = Annotated[
    Decimal,
    BeforeValidator(_coerce_amount),
    PlainSerializer(float, return_type=float, when_used="json"),
]
OptionalAmount = Annotated[
    Optional[Decimal],
    BeforeValidator(_coerce_optional_amount),
    PlainSerializer(lambda v: None if v is None else float(v), return_type=Optional[float], when_used="json"),
]


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    supplier_ref: Optional[str] = None
    proof_code: Optional[str] = None  # BAT / approval code
    logo: Optional[str] = None
    variant: Optional[str] = None  # colour, size...
    quantity: Amount = ZERO
    unit_price: Amount = ZERO  # before tax
    discount: Amount = ZERO  # absolute amount, not a percentage
    net_amount: Amount = ZERO


class RawInvoiceData(BaseModel):
    """
    Figures kept next to the totals so repeated edits recover the same inputs.

    The engine writes every numeric field back on each recompute; the
    upstream parser may pre-populate them when the source document states them.
    """

    model_config = ConfigDict(frozen=True)

    pre_discount_line_sum: OptionalAmount = None
    document_discount: OptionalAmount = None
    net_after_discount: OptionalAmount = None
    tax_rate: OptionalAmount = None  # fraction, 0.20 for 20%
    extracted_text: Optional[str] = None


class Invoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    supplier: str
    number: str
    invoice_date: date
    delivery_date: Optional[date] = None
    source_file: Optional[str] = None
    imported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    lines: List[LineItem] = Field(default_factory=list)
    net_total: Amount = ZERO
    tax_total: Amount = ZERO
    gross_total: Amount = ZERO
    raw: RawInvoiceData = Field(default_factory=RawInvoiceData)
