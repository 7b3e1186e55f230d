#!/usr/bin/env python3
"""
make_fake_invoices.py

Generate synthetic supplier invoices for the Invoice Ledger API.
- Structured outputs: denormalized CSV and/or per-invoice JSON
- Totals are produced by the reconciliation engine, then some invoices get
  tampered declared totals so the discrepancy check has something to flag
- Edge cases: document discounts, oversized line discounts, empty invoices,
  non-standard tax rates

Usage examples:
  python scripts/make_fake_invoices.py \
    --csv data/samples/invoices_csv \
    --json data/samples/invoices_json \
    --n 12

Dependencies:
  pip install -e ".[dev]"   (faker)

This script is deterministic per --seed to make debugging easier.
"""
from __future__ import annotations
import argparse
import csv
import json
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from random import Random
from typing import List

from faker import Faker

from apps.invoices_api.models.invoice import Invoice, LineItem
from apps.invoices_api.services.reconciliation import add_line, recompute, set_document_discount, set_tax_rate

SUPPLIER_COUNT = 4

PRODUCT_POOL = [
    ("TMB-075", "Tumbler 75cl, frosted"),
    ("CAR-12", "Carafe 1.2L"),
    ("SHK-PRO", "Cocktail shaker, pro"),
    ("BKT-ICE", "Ice bucket, steel"),
    ("GLS-WINE", "Wine glass 35cl"),
    ("STR-BAM", "Bamboo straws (100)"),
    ("CST-FLT", "Coaster, felt"),
    ("OPN-WAI", "Waiter's friend opener"),
]

TAX_RATES = [Decimal("0.20"), Decimal("0.20"), Decimal("0.20"), Decimal("0.10"), Decimal("0.055")]


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def make_invoice_number(supplier_index: int, counter: int) -> str:
    # e.g., FAC-02-202509-0142
    return f"FAC-{supplier_index:02d}-{date.today().strftime('%Y%m')}-{counter:04d}"


def random_line_item(rng: Random, fake: Faker) -> LineItem:
    sku, desc = rng.choice(PRODUCT_POOL)
    qty = rng.randint(1, 48)
    unit_price = Decimal(f"{rng.uniform(0.8, 60):.2f}")
    discount = Decimal("0")
    if rng.random() < 0.2:
        discount = Decimal(f"{rng.uniform(1, 20):.2f}")
    return LineItem(
        description=desc,
        supplier_ref=sku,
        proof_code=f"BAT-{rng.randint(100, 999)}" if rng.random() < 0.3 else None,
        logo=fake.word().upper() if rng.random() < 0.3 else None,
        variant=fake.color_name() if rng.random() < 0.4 else None,
        quantity=qty,
        unit_price=unit_price,
        discount=discount,
    )


def build_invoice(rng: Random, fake: Faker, supplier: str, supplier_index: int, idx: int) -> Invoice:
    # date spread over last ~120 days
    d = date.today() - timedelta(days=rng.randint(0, 120))
    inv = Invoice(
        supplier=supplier,
        number=make_invoice_number(supplier_index, idx),
        invoice_date=d,
        delivery_date=d + timedelta(days=rng.randint(3, 30)) if rng.random() < 0.5 else None,
        source_file=f"{supplier.replace(' ', '_')}_{idx:04d}.pdf",
    )
    inv = set_tax_rate(inv, rng.choice(TAX_RATES))

    # 1-15 lines; occasionally none at all
    n_items = 0 if rng.random() < 0.03 else 1 + rng.randint(0, 14)
    for _ in range(n_items):
        inv = add_line(inv, random_line_item(rng, fake))

    if inv.lines and rng.random() < 0.25:
        inv = set_document_discount(inv, Decimal(f"{float(inv.net_total) * rng.uniform(0.02, 0.1):.2f}"))

    return recompute(inv)


def tamper_declared_totals(rng: Random, inv: Invoice) -> Invoice:
    """Shift a declared total as a wrong manual entry or a bad parse would."""
    shift = Decimal(f"{rng.uniform(0.06, 25):.2f}") * rng.choice([1, -1])
    if rng.random() < 0.5:
        return inv.model_copy(update={"net_total": inv.net_total + shift})
    return inv.model_copy(update={"gross_total": inv.gross_total + shift})


def write_csv(out_dir: Path, invoices: List[Invoice]) -> None:
    ensure_dir(out_dir)
    path = out_dir / "invoices.csv"
    header = [
        "number", "supplier", "invoice_date", "delivery_date", "net_total", "tax_total", "gross_total",
        "document_discount", "tax_rate", "description", "supplier_ref", "proof_code", "logo", "variant",
        "quantity", "unit_price", "discount", "net_amount",
    ]

    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(header)
        for inv in invoices:
            head = [
                inv.number, inv.supplier, inv.invoice_date.isoformat(),
                inv.delivery_date.isoformat() if inv.delivery_date else "",
                f"{inv.net_total:.2f}", f"{inv.tax_total:.2f}", f"{inv.gross_total:.2f}",
                f"{inv.raw.document_discount or 0:.2f}", str(inv.raw.tax_rate or ""),
            ]
            if not inv.lines:
                w.writerow(head + [""] * 9)
            for li in inv.lines:
                w.writerow(head + [
                    li.description, li.supplier_ref or "", li.proof_code or "", li.logo or "",
                    li.variant or "", str(li.quantity), f"{li.unit_price:.2f}", f"{li.discount:.2f}",
                    f"{li.net_amount:.2f}",
                ])


def write_json(out_dir: Path, invoices: List[Invoice]) -> None:
    ensure_dir(out_dir)
    for inv in invoices:
        path = out_dir / f"{inv.number}.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(inv.model_dump(mode="json"), f, indent=2)


def main() -> None:
    ap = argparse.ArgumentParser(description="Generate synthetic supplier invoices")
    ap.add_argument("--csv", type=Path, help="Output directory for the CSV file")
    ap.add_argument("--json", type=Path, help="Output directory for per-invoice JSON files")
    ap.add_argument("--n", type=int, default=12, help="Number of invoices to generate")
    ap.add_argument("--tamper", type=float, default=0.2, help="Share of invoices with wrong declared totals")
    ap.add_argument("--seed", type=int, default=42, help="RNG seed for reproducibility")
    args = ap.parse_args()

    rng = Random(args.seed)
    fake = Faker("fr_FR")
    Faker.seed(args.seed)

    suppliers = [fake.company().upper() for _ in range(SUPPLIER_COUNT)]

    invoices: List[Invoice] = []
    for i in range(args.n):
        supplier_index = rng.randrange(len(suppliers))
        inv = build_invoice(rng, fake, suppliers[supplier_index], supplier_index, i + 1)
        if rng.random() < args.tamper:
            inv = tamper_declared_totals(rng, inv)
        invoices.append(inv)

    if args.csv:
        write_csv(args.csv, invoices)
        print(f"[ok] Wrote CSV to {args.csv}/invoices.csv")

    if args.json:
        write_json(args.json, invoices)
        print(f"[ok] Wrote {len(invoices)} JSON files to {args.json}")

    if not any([args.csv, args.json]):
        print("No outputs selected. Use --csv/--json.")


if __name__ == "__main__":
    main()
