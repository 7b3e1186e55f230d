from typing import Dict, Iterable, List, Optional

from ..models.invoice import Invoice
from ..models.statistics import InvoiceStatistics, SupplierTotals


def compute_statistics(invoices: Iterable[Invoice]) -> InvoiceStatistics:
    """Sum the stored totals overall and per supplier."""
    stats = InvoiceStatistics()
    by_supplier: Dict[str, SupplierTotals] = {}

    for inv in invoices:
        stats.invoice_count += 1
        stats.net_total += inv.net_total
        stats.tax_total += inv.tax_total
        stats.gross_total += inv.gross_total

        supplier = by_supplier.setdefault(inv.supplier, SupplierTotals())
        supplier.count += 1
        supplier.net_total += inv.net_total
        supplier.tax_total += inv.tax_total
        supplier.gross_total += inv.gross_total

    stats.by_supplier = by_supplier
    return stats


def search_invoices(invoices: Iterable[Invoice], term: Optional[str]) -> List[Invoice]:
    """Case-insensitive match on number, supplier or any line description."""
    invoices = list(invoices)
    if not term or not term.strip():
        return invoices

    needle = term.strip().lower()
    return [
        inv
        for inv in invoices
        if needle in inv.number.lower()
        or needle in inv.supplier.lower()
        or any(needle in line.description.lower() for line in inv.lines)
    ]


def filter_by_supplier(invoices: Iterable[Invoice], supplier: Optional[str]) -> List[Invoice]:
    invoices = list(invoices)
    if not supplier:
        return invoices
    return [inv for inv in invoices if inv.supplier == supplier]
