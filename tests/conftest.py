"""Shared pytest fixtures for invoice ledger tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from apps.invoices_api.models.invoice import Invoice, LineItem


def _line(description: str = "Tumbler", quantity="1", unit_price="0", discount="0", net_amount=None) -> LineItem:
    if net_amount is None:
        net_amount = max(Decimal("0"), Decimal(quantity) * Decimal(unit_price) - Decimal(discount))
    return LineItem(
        description=description,
        quantity=quantity,
        unit_price=unit_price,
        discount=discount,
        net_amount=net_amount,
    )


@pytest.fixture
def make_line():
    return _line


@pytest.fixture
def make_invoice():
    def factory(lines=(), **fields) -> Invoice:
        payload = {
            "id": "inv-1",
            "supplier": "RB DRINKS",
            "number": "FAC-0001",
            "invoice_date": date(2025, 3, 14),
            "lines": list(lines),
        }
        payload.update(fields)
        return Invoice(**payload)

    return factory
