from fastapi import APIRouter, Body, HTTPException
from typing import Any, Dict, Optional, List
from pydantic import BaseModel, Field, ValidationError

from ..settings import settings
from ..models.invoice import Invoice, LineItem
from ..models.statistics import InvoiceStatistics
from ..models.validation import DiscrepancyReport
from ..services.reconciliation import (
    LineField,
    add_line,
    edit_line,
    recompute,
    remove_line,
    set_document_discount,
    set_tax_rate,
    update_fields,
)
from ..services.statistics import compute_statistics, filter_by_supplier, search_invoices
from ..services.validator import verify

router = APIRouter(prefix="/invoices", tags=["invoices"])


# Request bodies; the invoice snapshot always travels with the edit
class AddLineRequest(BaseModel):
    invoice: Invoice
    line: Optional[LineItem] = None

class LineEditRequest(BaseModel):
    invoice: Invoice
    field: LineField
    value: Any = None

class ValueRequest(BaseModel):
    invoice: Invoice
    value: Any = None

class InvoiceChangeRequest(BaseModel):
    invoice: Invoice
    changes: Dict[str, Any] = Field(default_factory=dict)

class SearchRequest(BaseModel):
    invoices: List[Invoice]
    term: Optional[str] = None
    supplier: Optional[str] = None


@router.post("/recompute", response_model=Invoice)
def recompute_invoice(inv: Invoice = Body(...)):
    return recompute(inv, default_tax_rate=settings.DEFAULT_TAX_RATE)


@router.post("/verify", response_model=DiscrepancyReport)
def verify_invoice(inv: Invoice = Body(...)):
    return verify(inv, tolerance=settings.AMOUNT_TOLERANCE)


@router.post("/lines", response_model=Invoice)
def add_invoice_line(req: AddLineRequest = Body(...)):
    return add_line(req.invoice, req.line, default_tax_rate=settings.DEFAULT_TAX_RATE)


@router.post("/lines/{index}/delete", response_model=Invoice)
def delete_invoice_line(index: int, inv: Invoice = Body(...)):
    return remove_line(inv, index, default_tax_rate=settings.DEFAULT_TAX_RATE)


@router.patch("/lines/{index}", response_model=Invoice)
def edit_invoice_line(index: int, req: LineEditRequest = Body(...)):
    return edit_line(req.invoice, index, req.field, req.value, default_tax_rate=settings.DEFAULT_TAX_RATE)


@router.put("/discount", response_model=Invoice)
def change_document_discount(req: ValueRequest = Body(...)):
    return set_document_discount(req.invoice, req.value, default_tax_rate=settings.DEFAULT_TAX_RATE)


@router.put("/tax-rate", response_model=Invoice)
def change_tax_rate(req: ValueRequest = Body(...)):
    return set_tax_rate(req.invoice, req.value, default_tax_rate=settings.DEFAULT_TAX_RATE)


# PATCH endpoint for header fields (supplier, number, dates...)
@router.patch("", response_model=Invoice)
def patch_invoice(req: InvoiceChangeRequest = Body(...)):
    try:
        return update_fields(req.invoice, default_tax_rate=settings.DEFAULT_TAX_RATE, **req.changes)
    except ValidationError as ve:
        raise HTTPException(status_code=422, detail=ve.errors(include_context=False))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/statistics", response_model=InvoiceStatistics)
def invoice_statistics(invoices: List[Invoice] = Body(...)):
    return compute_statistics(invoices)


@router.post("/search", response_model=List[Invoice])
def find_invoices(req: SearchRequest = Body(...)):
    return search_invoices(filter_by_supplier(req.invoices, req.supplier), req.term)
