"""
Run the discrepancy check over a directory of structured invoice exports.

Usage:
  python scripts/verify_samples.py data/samples/invoices_json
  python scripts/verify_samples.py data/samples/invoices_csv
"""
import pathlib, sys
from dotenv import load_dotenv

from apps.invoices_api.services.statistics import compute_statistics
from apps.invoices_api.services.structured_extract import (
    assemble_invoices_from_rows,
    build_invoice,
    parse_csv_bytes,
    parse_json_bytes,
)
from apps.invoices_api.services.validator import verify

load_dotenv(".env.local")
ROOT = pathlib.Path(sys.argv[1]).resolve()

invoices = []
for p in sorted(ROOT.rglob("*")):
    if not p.is_file(): continue
    content = p.read_bytes()
    if p.suffix == ".json":
        docs = parse_json_bytes(content)
    elif p.suffix == ".csv":
        docs = assemble_invoices_from_rows(list(parse_csv_bytes(content)))
    else:
        continue
    invoices.extend(build_invoice(doc) for doc in docs)

flagged = 0
for inv in invoices:
    report = verify(inv)
    if report.is_consistent:
        continue
    flagged += 1
    print(f"[anomaly] {inv.supplier} {inv.number}")
    for issue in report.issues:
        print(f"    {issue.code}: {issue.message}")

stats = compute_statistics(invoices)
for supplier, totals in sorted(stats.by_supplier.items()):
    print(f"{supplier:<40} {totals.count:>4} invoices  net {totals.net_total:>12.2f}  gross {totals.gross_total:>12.2f}")
print(f"[ok] checked {stats.invoice_count} invoices, {flagged} with discrepancies")
