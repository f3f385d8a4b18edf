"""
Search and analytics algorithms for the receipt client.
Implements client-side text search over a fetched receipt snapshot and the
spending aggregation the backend performs for /analytics.
"""

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from .categories import Category, display_name_for
from .models import AnalyticsSummary, Receipt

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class ReceiptView(BaseModel):
    """Visible subset of a receipt snapshot plus the state needed for messaging."""

    receipts: List[Receipt]
    selected_category: Optional[Category] = None
    search_query: str = ""

    @property
    def count(self) -> int:
        return len(self.receipts)

    @property
    def is_empty(self) -> bool:
        return not self.receipts

    @property
    def has_active_filters(self) -> bool:
        return bool(self.search_query) or self.selected_category is not None

    @property
    def empty_title(self) -> str:
        if self.search_query:
            return "No receipts found"
        if self.selected_category is not None:
            return f"No {self.selected_category.value} receipts yet"
        return "No receipts yet"

    @property
    def empty_hint(self) -> str:
        if self.search_query:
            return "Try a different search term"
        return "Upload a receipt to get started"


class SearchEngine:
    """Free-text search over receipts.

    Category narrowing is done by the backend when the receipts are fetched;
    the engine only applies the search query to whatever snapshot it is given.
    """

    def __init__(self):
        self.logger = logger

    def matches(self, receipt: Receipt, query: str) -> bool:
        """Check whether a receipt matches a search query.

        Args:
            receipt: Receipt to test
            query: Free-text query; empty matches everything

        Returns:
            True if the query is a case-insensitive substring of the merchant
            name or of any item name
        """
        if not query:
            return True

        needle = query.casefold()
        if needle in receipt.merchant_name.casefold():
            return True
        return any(needle in item.name.casefold() for item in receipt.items)

    def visible_receipts(self, receipts: Sequence[Receipt],
                         selected_category: Union[Category, str, None] = None,
                         search_query: str = "") -> ReceiptView:
        """Build the visible view of a fetched receipt snapshot.

        Args:
            receipts: Receipts as fetched (already scoped to the category)
            selected_category: Category the snapshot was fetched for, if any
            search_query: Current search box contents

        Returns:
            ReceiptView with matching receipts in source order
        """
        search_query = search_query or ""
        category = Category.coerce(selected_category) if selected_category is not None else None
        visible = [r for r in receipts if self.matches(r, search_query)]

        if search_query:
            self.logger.debug(f"Search '{search_query}' matched {len(visible)} of {len(receipts)} receipts")

        return ReceiptView(
            receipts=visible,
            selected_category=category,
            search_query=search_query,
        )


class AnalyticsEngine:
    """Spending aggregation and the ratios derived from it."""

    def __init__(self):
        self.logger = logger

    def summarize(self, receipts: Sequence[Receipt]) -> AnalyticsSummary:
        """Aggregate receipts into an analytics summary.

        Amounts are accumulated as exact decimals; rounding is left to
        presentation.

        Args:
            receipts: Receipts to aggregate

        Returns:
            AnalyticsSummary with totals per category and per month
        """
        if not receipts:
            return AnalyticsSummary.empty()

        total_spent = ZERO
        by_category: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        by_month: Dict[str, Decimal] = defaultdict(lambda: ZERO)

        for receipt in receipts:
            total_spent += receipt.total
            by_category[Category.coerce(receipt.category).value] += receipt.total
            by_month[receipt.month_key] += receipt.total

        self.logger.info(f"Summarized {len(receipts)} receipts totalling {total_spent}")
        return AnalyticsSummary(
            total_receipts=len(receipts),
            total_spent=total_spent,
            by_category=dict(by_category),
            by_month=dict(by_month),
        )

    @staticmethod
    def average_per_receipt(summary: AnalyticsSummary) -> Decimal:
        if summary.total_receipts <= 0:
            return ZERO
        return summary.total_spent / summary.total_receipts

    @staticmethod
    def percentage(amount: Decimal, total: Decimal) -> Decimal:
        """Share of a total in percent; zero when the total is zero."""
        if not total:
            return ZERO
        return amount / total * HUNDRED

    def category_percentages(self, summary: AnalyticsSummary) -> Dict[str, Decimal]:
        return {
            category: self.percentage(amount, summary.total_spent)
            for category, amount in summary.by_category.items()
        }

    def month_percentages(self, summary: AnalyticsSummary) -> Dict[str, Decimal]:
        return {
            month: self.percentage(amount, summary.total_spent)
            for month, amount in summary.by_month.items()
        }

    def category_breakdown(self, summary: AnalyticsSummary) -> List[Dict[str, object]]:
        """Rows for the per-category display, largest spend first.

        Returns:
            List of dicts with category, label, amount and percentage
        """
        rows = [
            {
                "category": category,
                "label": display_name_for(category),
                "amount": amount,
                "percentage": self.percentage(amount, summary.total_spent),
            }
            for category, amount in summary.by_category.items()
        ]
        return sorted(rows, key=lambda row: row["amount"], reverse=True)

    @staticmethod
    def sorted_months(summary: AnalyticsSummary) -> List[Tuple[str, Decimal]]:
        """Monthly totals in chronological order."""
        return sorted(summary.by_month.items())

    @staticmethod
    def format_month_label(month_key: str) -> str:
        """Turn a YYYY-MM key into a label such as "March 2024"."""
        try:
            return datetime.strptime(month_key, "%Y-%m").strftime("%B %Y")
        except ValueError:
            return month_key
