from typing import Dict
from pydantic import BaseModel, Field
from .invoice import Amount
from ..services.amounts import ZERO

class SupplierTotals(BaseModel):
    count: int = 0
    net_total: Amount = ZERO
    tax_total: Amount = ZERO
    gross_total: Amount = ZERO

class InvoiceStatistics(BaseModel):
    invoice_count: int = 0
    net_total: Amount = ZERO
    tax_total: Amount = ZERO
    gross_total: Amount = ZERO
    by_supplier: Dict[str, SupplierTotals] = Field(default_factory=dict)
