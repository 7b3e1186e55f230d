import logging

from fastapi import APIRouter, UploadFile, File, HTTPException
from pydantic import ValidationError

from ..services.structured_extract import parse_csv_bytes, parse_json_bytes, assemble_invoices_from_rows, build_invoice
from ..services.reconciliation import recompute
from ..services.validator import verify
from ..settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/extract", tags=["extraction"])


@router.post("/structured")
def extract_structured(file: UploadFile = File(...), recalculate: bool = False):
    """
    Load invoices from a structured JSON or CSV export of the upstream parser.

    Each invoice is checked against its declared totals. With
    `recalculate=true` the returned invoices are recomputed from their lines;
    the reports always describe the totals as declared in the file.
    """
    content = file.file.read()
    if not content:
        raise HTTPException(400, "Empty file upload")

    filename = (file.filename or "").lower()
    try:
        if file.content_type in ("text/csv", "application/vnd.ms-excel") or filename.endswith(".csv"):
            rows = list(parse_csv_bytes(content))
            docs = assemble_invoices_from_rows(rows)
        elif file.content_type == "application/json" or filename.endswith(".json"):
            docs = parse_json_bytes(content)
        else:
            raise HTTPException(415, f"Unsupported type: {file.content_type}")

        invoices = [build_invoice(doc) for doc in docs]
    except ValidationError as ve:
        raise HTTPException(status_code=422, detail=ve.errors(include_context=False))
    except ValueError as e:
        # bad JSON or structurally broken CSV
        raise HTTPException(status_code=422, detail=str(e))

    reports = [verify(inv, tolerance=settings.AMOUNT_TOLERANCE) for inv in invoices]
    flagged = sum(1 for report in reports if not report.is_consistent)
    if flagged:
        logger.warning(
            "Imported %d invoices from %s, %d with discrepancies",
            len(invoices),
            file.filename,
            flagged,
        )

    if recalculate:
        invoices = [recompute(inv, default_tax_rate=settings.DEFAULT_TAX_RATE) for inv in invoices]

    return {
        "ok": True,
        "count": len(invoices),
        "flagged": flagged,
        "invoices": [inv.model_dump(mode="json") for inv in invoices],
        "reports": [report.model_dump(mode="json") for report in reports],
    }
