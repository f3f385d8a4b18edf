"""
Data models using Pydantic for the receipt client.
Validates the receipt and analytics payloads returned by the backend.
"""

import re
from decimal import Decimal
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .categories import Category

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")


class ReceiptItem(BaseModel):
    """A single purchased line on a receipt."""

    name: str = Field(..., min_length=1, description="Purchased item description")
    quantity: int = Field(1, ge=1, description="Number of units")
    price: Decimal = Field(..., ge=0, description="Unit price")

    @field_validator("quantity", mode="before")
    @classmethod
    def default_missing_quantity(cls, v):
        """Treat a quantity the extractor left empty as a single unit."""
        return 1 if v is None else v


class Receipt(BaseModel):
    """Parsed receipt as stored by the backend."""

    id: Union[int, str] = Field(..., description="Backend identifier")
    merchant_name: str = Field(..., description="Merchant name")
    date: str = Field(..., description="Transaction date (ISO 8601)")
    time: Optional[str] = Field(None, description="Time of day as printed on the receipt")
    category: Category = Field(Category.OTHER, description="Spending category")
    items: List[ReceiptItem] = Field(default_factory=list, description="Purchased items")
    subtotal: Decimal = Field(Decimal("0"), ge=0, description="Amount before tax")
    tax: Decimal = Field(Decimal("0"), ge=0, description="Tax amount")
    total: Decimal = Field(..., ge=0, description="Amount paid")
    payment_method: Optional[str] = Field(None, description="Payment method")
    filename: str = Field(..., description="Original uploaded file name")
    ai_model: Optional[str] = Field(None, description="Extraction model used by the backend")

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v):
        """Coerce missing or unrecognized categories to the fallback."""
        return Category.coerce(v)

    @field_validator("subtotal", "tax", mode="before")
    @classmethod
    def default_missing_amount(cls, v):
        """Treat a subtotal or tax the extractor left empty as zero."""
        return Decimal("0") if v is None else v

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        """Require an ISO 8601 date prefix (YYYY-MM-DD)."""
        v = v.strip()
        if not ISO_DATE_PATTERN.match(v):
            raise ValueError("Date must be an ISO 8601 date (YYYY-MM-DD)")
        return v

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def month_key(self) -> str:
        """Year-month key (YYYY-MM) used for monthly grouping."""
        return self.date[:7]

    @property
    def matches_total(self) -> bool:
        # Display-only expectation; the backend does not guarantee it.
        return self.subtotal + self.tax == self.total

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": 1,
                "merchant_name": "Joe's Diner",
                "date": "2024-03-01",
                "time": "12:30",
                "category": "restaurant",
                "items": [{"name": "Burger", "quantity": 2, "price": 5.5}],
                "subtotal": 11.00,
                "tax": 0.88,
                "total": 11.88,
                "payment_method": "VISA",
                "filename": "receipt_001.jpg",
                "ai_model": "gemini-1.5-flash",
            }
        }
    }


class AnalyticsSummary(BaseModel):
    """Aggregate spending figures over a receipt collection."""

    total_receipts: int = Field(0, ge=0, description="Number of receipts")
    total_spent: Decimal = Field(Decimal("0"), ge=0, description="Sum of all receipt totals")
    by_category: Dict[str, Decimal] = Field(default_factory=dict, description="Spending per category")
    by_month: Dict[str, Decimal] = Field(default_factory=dict, description="Spending per YYYY-MM")

    @field_validator("by_category")
    @classmethod
    def merge_category_keys(cls, v):
        """Fold category keys onto known values; unrecognized ones merge into "other"."""
        merged: Dict[str, Decimal] = {}
        for key, amount in v.items():
            category = Category.coerce(key).value
            merged[category] = merged.get(category, Decimal("0")) + amount
        return merged

    @classmethod
    def empty(cls) -> "AnalyticsSummary":
        return cls(total_receipts=0, total_spent=Decimal("0"), by_category={}, by_month={})

    @property
    def is_empty(self) -> bool:
        return self.total_receipts == 0
