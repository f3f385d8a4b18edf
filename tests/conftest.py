"""Shared fixtures for the receipt client tests."""

from decimal import Decimal
from itertools import count

import pytest

from core.models import Receipt, ReceiptItem


@pytest.fixture
def make_receipt():
    """Factory for receipts with sensible defaults."""
    ids = count(1)

    def _make(**overrides) -> Receipt:
        data = {
            "id": next(ids),
            "merchant_name": "Test Store",
            "date": "2024-01-15",
            "category": "shopping",
            "items": [],
            "subtotal": Decimal("10.00"),
            "tax": Decimal("0.80"),
            "total": Decimal("10.80"),
            "filename": "receipt.jpg",
        }
        data.update(overrides)
        return Receipt(**data)

    return _make


@pytest.fixture
def sample_receipts(make_receipt):
    """A small mixed collection spanning two months and three categories."""
    return [
        make_receipt(
            merchant_name="Fresh Market",
            date="2024-01-03",
            category="groceries",
            items=[ReceiptItem(name="Bananas", quantity=6, price=Decimal("0.25")),
                   ReceiptItem(name="Caesar Salad Kit", price=Decimal("4.99"))],
            subtotal=Decimal("6.49"), tax=Decimal("0.00"), total=Decimal("6.49"),
        ),
        make_receipt(
            merchant_name="Luigi's Pizzeria",
            date="2024-01-20",
            category="restaurant",
            items=[ReceiptItem(name="Pizza Slice", quantity=2, price=Decimal("3.50")),
                   ReceiptItem(name="Garden Salad", price=Decimal("5.00"))],
            subtotal=Decimal("12.00"), tax=Decimal("0.96"), total=Decimal("12.96"),
        ),
        make_receipt(
            merchant_name="Salad Bar Co",
            date="2024-02-02",
            category="restaurant",
            items=[ReceiptItem(name="Cobb Bowl", price=Decimal("11.25"))],
            subtotal=Decimal("11.25"), tax=Decimal("0.90"), total=Decimal("12.15"),
        ),
        make_receipt(
            merchant_name="Shell",
            date="2024-02-14",
            category="gas",
            items=[],
            subtotal=Decimal("40.00"), tax=Decimal("0.00"), total=Decimal("40.00"),
        ),
    ]
