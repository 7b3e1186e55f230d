import csv, io, json
from typing import Iterable

from ..models.invoice import Invoice
from .amounts import compute_line_amount

CSV_HEADER_MAP = {
  "id": {"id", "invoice_id"},
  "number": {"number", "invoice_no", "invoice number", "inv_no", "numero"},
  "supplier": {"supplier", "vendor", "vendor_name", "fournisseur"},
  "invoice_date": {"date", "invoice_date"},
  "delivery_date": {"delivery_date", "date_livraison", "datelivraison"},
  "source_file": {"source_file", "file", "fichierpdf"},
  "net_total": {"net_total", "subtotal", "totalht", "total_ht"},
  "tax_total": {"tax_total", "tax", "totaltva", "total_tva"},
  "gross_total": {"gross_total", "total", "grand_total", "totalttc", "total_ttc"},
  "document_discount": {"document_discount", "discount_total", "remise_globale"},
  "tax_rate": {"tax_rate", "vat_rate", "tauxtva"},
  "description": {"description", "desc"},
  "supplier_ref": {"supplier_ref", "sku", "reffournisseur"},
  "proof_code": {"proof_code", "bat"},
  "logo": {"logo"},
  "variant": {"variant", "color", "colour", "couleur"},
  "quantity": {"quantity", "qty", "quantite"},
  "unit_price": {"unit_price", "prixunitaireht"},
  "discount": {"discount", "remise"},
  "net_amount": {"net_amount", "line_total", "montantht"},
}

# keys that belong in Invoice.raw rather than on the invoice itself
RAW_KEYS = ("document_discount", "tax_rate", "pre_discount_line_sum", "net_after_discount", "extracted_text")
LINE_KEYS = ("description", "supplier_ref", "proof_code", "logo", "variant",
             "quantity", "unit_price", "discount", "net_amount")


def _normalize_header(h: str) -> str:
    h = h.strip().lower()
    for key, aliases in CSV_HEADER_MAP.items():
        if h in aliases:
            return key
    return h


def _require_object(value, what: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"expected {what}, got {type(value).__name__}")
    return value


def normalize_invoice_doc(doc: dict) -> dict:
    """Map alias keys to Invoice field names and gather side-channel figures under `raw`."""
    doc = _require_object(doc, "an invoice object or a list of them")
    doc = {_normalize_header(k): v for k, v in doc.items()}
    raw = dict(_require_object(doc.pop("raw", None) or {}, "an object for raw"))
    for key in RAW_KEYS:
        if key in doc:
            raw.setdefault(key, doc.pop(key))
    doc["raw"] = raw
    lines = doc.get("lines") or []
    if not isinstance(lines, list):
        raise ValueError("expected a list of line objects for lines")
    doc["lines"] = [
        {_normalize_header(k): v for k, v in _require_object(line, "a line object").items()}
        for line in lines
    ]
    return doc


def build_invoice(doc: dict) -> Invoice:
    """
    Turn a structured export of the upstream parser into an Invoice.

    Declared totals are kept exactly as given; run the discrepancy check
    on the result before deciding whether to recompute. Lines exported
    without a net amount get it from quantity, unit price and discount.
    """
    doc = normalize_invoice_doc(doc)
    for line in doc["lines"]:
        if line.get("net_amount") in (None, ""):
            line["net_amount"] = compute_line_amount(
                line.get("quantity"), line.get("unit_price"), line.get("discount")
            )
    return Invoice.model_validate(doc)


def assemble_invoices_from_rows(rows: list[dict]) -> list[dict]:
    """Group denormalized CSV rows (one line per row) by invoice number."""
    if not rows:
        raise ValueError("CSV file contained no rows")

    grouped: dict[str, list[dict]] = {}
    for row in rows:
        number = row.get("number")
        if not number:
            raise ValueError("CSV row missing required invoice number field")
        grouped.setdefault(number, []).append(row)

    invoices = []
    for number, inv_rows in grouped.items():
        header = inv_rows[0]
        invoice = {
            key: header.get(key)
            for key in ("id", "number", "supplier", "invoice_date", "delivery_date", "source_file",
                        "net_total", "tax_total", "gross_total", "document_discount", "tax_rate")
            if header.get(key) not in (None, "")
        }
        invoice["lines"] = []
        for row in inv_rows:
            line = {key: row.get(key) for key in LINE_KEYS if row.get(key) not in (None, "")}
            # header-only rows carry no line
            if not line:
                continue
            line.setdefault("description", "")
            invoice["lines"].append(line)
        invoices.append(invoice)

    return invoices


def parse_csv_bytes(b: bytes) -> Iterable[dict]:
    text = b.decode("utf-8-sig", errors="replace")
    rdr = csv.DictReader(io.StringIO(text))
    for row in rdr:
        norm = { _normalize_header(k): v for k, v in row.items() if k is not None }
        yield norm


def parse_json_bytes(b: bytes) -> list[dict]:
    doc = json.loads(b)  # a single invoice object or a list of them
    docs = doc if isinstance(doc, list) else [doc]
    return [normalize_invoice_doc(d) for d in docs]
