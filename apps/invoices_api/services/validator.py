import logging
from decimal import Decimal
from typing import List

from ..models.invoice import Invoice
from ..models.validation import DiscrepancyIssue, DiscrepancyReport
from .reconciliation import document_discount, sum_line_amounts

logger = logging.getLogger(__name__)

# Tolerance in currency units; a gap must be strictly larger to be flagged
AMOUNT_TOLERANCE = Decimal("0.05")


def is_significant(gap: Decimal, tolerance: Decimal = AMOUNT_TOLERANCE) -> bool:
    return abs(gap) > tolerance


def verify(inv: Invoice, *, tolerance: Decimal = AMOUNT_TOLERANCE) -> DiscrepancyReport:
    """
    Compare the totals declared on an invoice with what its lines imply.

    This checks:
    - Net: sum(line.net_amount) - document discount ≈ net_total
    - Gross: net_total + tax_total ≈ gross_total

    The declared totals may come straight from the paper document, so they
    are reported on, never overwritten: the invoice is not modified and no
    recompute happens. Gaps are signed (computed minus declared) and the
    expected net is not clamped at zero, so an oversized discount stays visible.
    """
    issues: List[DiscrepancyIssue] = []

    # 1) Net total vs line sum minus document discount
    line_sum = sum_line_amounts(inv.lines)
    expected_net = line_sum - document_discount(inv)
    net_gap = expected_net - inv.net_total

    if is_significant(net_gap, tolerance):
        issues.append(
            DiscrepancyIssue(
                field="net_total",
                code="NET_TOTAL_MISMATCH",
                message=(
                    f"net_total differs from line sum minus discount "
                    f"by {net_gap:.2f} (expected {expected_net:.2f}, "
                    f"got {inv.net_total:.2f})."
                ),
                diff=net_gap,
            )
        )

    # 2) Gross total vs net + tax
    expected_gross = inv.net_total + inv.tax_total
    gross_gap = expected_gross - inv.gross_total

    if is_significant(gross_gap, tolerance):
        issues.append(
            DiscrepancyIssue(
                field="gross_total",
                code="GROSS_TOTAL_MISMATCH",
                message=(
                    f"gross_total differs from net_total + tax_total "
                    f"by {gross_gap:.2f} (expected {expected_gross:.2f}, "
                    f"got {inv.gross_total:.2f})."
                ),
                diff=gross_gap,
            )
        )

    if issues:
        logger.info(
            "Invoice %s (%s) is inconsistent: %s",
            inv.number,
            inv.supplier,
            ", ".join(issue.code for issue in issues),
        )

    return DiscrepancyReport(
        line_sum=line_sum,
        expected_net=expected_net,
        net_gap=net_gap,
        expected_gross=expected_gross,
        gross_gap=gross_gap,
        is_consistent=not issues,
        issues=issues,
    )
