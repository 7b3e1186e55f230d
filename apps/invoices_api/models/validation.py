from typing import List, Optional
from pydantic import BaseModel, Field
from .invoice import Amount, OptionalAmount

class DiscrepancyIssue(BaseModel):
    field: str          # "net_total" or "gross_total"
    code: str           # e.g. "NET_TOTAL_MISMATCH"
    message: str        # human-readable explanation
    diff: OptionalAmount = None  # signed gap, computed minus declared

class DiscrepancyReport(BaseModel):
    line_sum: Amount
    expected_net: Amount     # not clamped, a negative value is an anomaly worth showing
    net_gap: Amount
    expected_gross: Amount
    gross_gap: Amount
    is_consistent: bool
    issues: List[DiscrepancyIssue] = Field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)
