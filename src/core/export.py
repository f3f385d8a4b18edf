"""
Export functionality for receipt data.
Serializes receipts to CSV and hands the bytes to a download trigger, so the
serialization itself stays free of any platform side effects.
"""

import csv
import io
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional, Sequence, Union

from .exceptions import EmptyExportError
from .models import Receipt, ReceiptItem
from .notifications import NotificationKind, Notifier

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Date", "Time", "Merchant", "Category", "Subtotal", "Tax", "Total",
    "Payment Method", "Items", "Item Count",
]

LINE_TERMINATOR = "\n"

CENT = Decimal("0.01")

# Receives the encoded file and the suggested file name
DownloadTrigger = Callable[[bytes, str], None]


def quantize_amount(value: Decimal) -> Decimal:
    """Round a currency amount half-up to whole cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Render a currency amount with exactly two fraction digits."""
    return str(quantize_amount(value))


def format_item(item: ReceiptItem) -> str:
    return f"{item.quantity}x {item.name} (${format_amount(item.price)})"


class DataExporter:
    """Handles CSV export of receipt data."""

    def __init__(self):
        """Initialize the data exporter."""
        self.logger = logger

    def export_to_csv(self, receipts: Sequence[Receipt]) -> str:
        """Export receipts to CSV format.

        Text fields (Merchant and Items included) are always quoted with
        embedded quotes doubled; amounts and the item count are written bare.

        Args:
            receipts: Receipts to export, one row each

        Returns:
            CSV content as string

        Raises:
            EmptyExportError: If there is nothing to export
        """
        if not receipts:
            raise EmptyExportError()

        output = io.StringIO()
        header_writer = csv.writer(output, lineterminator=LINE_TERMINATOR)
        header_writer.writerow(CSV_COLUMNS)

        writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator=LINE_TERMINATOR)
        writer.writerows(self._receipt_row(receipt) for receipt in receipts)

        csv_content = output.getvalue()
        output.close()
        return csv_content

    def _receipt_row(self, receipt: Receipt) -> List[Union[str, Decimal, int]]:
        return [
            receipt.date,
            receipt.time or "",
            receipt.merchant_name,
            receipt.category.value,
            quantize_amount(receipt.subtotal),
            quantize_amount(receipt.tax),
            quantize_amount(receipt.total),
            receipt.payment_method or "",
            "; ".join(format_item(item) for item in receipt.items),
            receipt.item_count,
        ]

    def get_export_filename(self, now: Optional[datetime] = None) -> str:
        """Generate the download file name for the moment of export."""
        now = now or datetime.now()
        return f"smartreceipt_export_{now.strftime('%Y-%m-%d')}.csv"

    def export_receipts(self, receipts: Sequence[Receipt], trigger_download: DownloadTrigger,
                        notify: Notifier, now: Optional[datetime] = None) -> bool:
        """Export receipts and trigger the file download.

        Args:
            receipts: Receipts to export
            trigger_download: Platform hook that saves the file
            notify: Notification capability for user-visible conditions
            now: Export moment, defaults to the current time

        Returns:
            True if a file was produced, False otherwise
        """
        try:
            content = self.export_to_csv(receipts)
        except EmptyExportError as e:
            self.logger.warning("CSV export requested with no receipts")
            notify(NotificationKind.INFO, e.message)
            return False

        filename = self.get_export_filename(now)
        trigger_download(content.encode("utf-8"), filename)
        self.logger.info(f"Exported {len(receipts)} receipts to CSV ({filename})")
        return True
