"""
Application controller for the receipt client.
Owns the fetched snapshots, the filter state and the notification queue, and
makes sure only the most recently issued fetch of each kind is applied.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

from .algorithms import AnalyticsEngine, ReceiptView, SearchEngine
from .api import ReceiptApiClient, ReceiptId
from .categories import Category
from .exceptions import ReceiptClientError
from .export import DataExporter, DownloadTrigger
from .models import AnalyticsSummary, Receipt
from .notifications import NotificationKind, NotificationQueue
from .upload import UploadOrchestrator

logger = logging.getLogger(__name__)


class ResponseSequencer:
    """Tags requests in issue order so stale responses can be discarded."""

    def __init__(self):
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, tag: int) -> bool:
        return tag == self._latest


class AppController:
    """Client state and the operations the UI drives."""

    def __init__(self, api: ReceiptApiClient, notifications: Optional[NotificationQueue] = None):
        """Initialize the controller.

        Args:
            api: Backend API client
            notifications: Queue to report to; a new one is created if omitted
        """
        self.api = api
        self.notifications = notifications or NotificationQueue()
        self.search_engine = SearchEngine()
        self.analytics_engine = AnalyticsEngine()
        self.exporter = DataExporter()
        self.uploader = UploadOrchestrator(api, self.notify)
        self.logger = logger

        self.receipts: List[Receipt] = []
        self.analytics: Optional[AnalyticsSummary] = None
        self.analytics_failed = False
        self.selected_category: Optional[Category] = None
        self.search_query = ""
        self.refresh_key = 0
        self.loading_receipts = False
        self.loading_analytics = False
        self.backend_status: Optional[Dict[str, Any]] = None
        self.backend_error: Optional[str] = None
        self.backend_categories: List[str] = []

        # Category the current receipt snapshot was fetched for
        self._snapshot_category: Optional[Category] = None
        self._snapshot_loaded = False
        self._receipt_requests = ResponseSequencer()
        self._analytics_requests = ResponseSequencer()

    def notify(self, kind: NotificationKind, message: str) -> None:
        self.notifications.notify(kind, message)

    async def refresh(self, announce: bool = False) -> None:
        """Re-fetch receipts and analytics.

        Args:
            announce: Whether to confirm the refresh with a notification
        """
        self.refresh_key += 1
        await asyncio.gather(self.load_receipts(), self.load_analytics())
        if announce:
            self.notify(NotificationKind.SUCCESS, "Data refreshed")

    async def load_receipts(self) -> bool:
        """Fetch the receipt snapshot for the selected category.

        Returns:
            True if the response was applied, False if it failed or was stale
        """
        tag = self._receipt_requests.issue()
        category = self.selected_category
        self.loading_receipts = True

        try:
            receipts = await self.api.list_receipts(category)
        except ReceiptClientError as e:
            if not self._receipt_requests.is_current(tag):
                self.logger.debug(f"Ignoring failure of superseded receipts request #{tag}")
                return False
            self.logger.error(f"Failed to load receipts: {e.message}")
            self.receipts = []
            self._snapshot_loaded = False
            self.loading_receipts = False
            self.notify(NotificationKind.ERROR, e.message)
            return False

        if not self._receipt_requests.is_current(tag):
            self.logger.debug(f"Discarding stale receipts response #{tag} "
                              f"(latest is #{self._receipt_requests.latest})")
            return False

        self.receipts = receipts
        self._snapshot_category = category
        self._snapshot_loaded = True
        self.loading_receipts = False
        return True

    async def load_analytics(self) -> bool:
        """Fetch a fresh analytics summary, replacing the current one.

        Returns:
            True if the response was applied, False if it failed or was stale
        """
        tag = self._analytics_requests.issue()
        self.loading_analytics = True

        try:
            summary = await self.api.get_analytics()
        except ReceiptClientError as e:
            if not self._analytics_requests.is_current(tag):
                self.logger.debug(f"Ignoring failure of superseded analytics request #{tag}")
                return False
            self.logger.error(f"Failed to load analytics: {e.message}")
            self.analytics = None
            self.analytics_failed = True
            self.loading_analytics = False
            return False

        if not self._analytics_requests.is_current(tag):
            self.logger.debug(f"Discarding stale analytics response #{tag}")
            return False

        self.analytics = summary
        self.analytics_failed = False
        self.loading_analytics = False
        return True

    @property
    def summary(self) -> Optional[AnalyticsSummary]:
        """Analytics to display.

        Falls back to aggregating the loaded receipts when the backend
        summary is unavailable and the snapshot covers every category.
        """
        if self.analytics is not None:
            return self.analytics
        if self.summary_is_local:
            return self.analytics_engine.summarize(self.receipts)
        return None

    @property
    def summary_is_local(self) -> bool:
        return (self.analytics is None and self.analytics_failed
                and self._snapshot_loaded and self._snapshot_category is None)

    async def select_category(self, category: Union[Category, str, None]) -> bool:
        """Select a category (None for all) and fetch the receipts scoped to it."""
        self.selected_category = Category.coerce(category) if category is not None else None
        return await self.load_receipts()

    def set_search_query(self, query: Optional[str]) -> None:
        self.search_query = query or ""

    async def clear_filters(self) -> None:
        self.search_query = ""
        if self.selected_category is not None:
            await self.select_category(None)

    @property
    def view(self) -> ReceiptView:
        return self.search_engine.visible_receipts(
            self.receipts, self.selected_category, self.search_query
        )

    async def upload(self, content: bytes, filename: str, content_type: Optional[str]) -> Optional[Receipt]:
        """Upload a receipt image and refresh on success."""
        receipt = await self.uploader.submit(content, filename, content_type)
        if receipt is not None:
            await self.refresh()
        return receipt

    async def delete_receipt(self, receipt_id: ReceiptId, merchant_name: str = "") -> bool:
        """Delete a receipt and refresh the snapshots.

        Returns:
            True if the backend confirmed the deletion
        """
        try:
            await self.api.delete_receipt(receipt_id)
        except ReceiptClientError as e:
            self.logger.error(f"Failed to delete receipt #{receipt_id}: {e.message}")
            self.notify(NotificationKind.ERROR, f"Failed to delete receipt. {e.message}")
            return False

        label = f" from {merchant_name}" if merchant_name else ""
        self.notify(NotificationKind.SUCCESS, f"Receipt{label} deleted")
        await self.refresh()
        return True

    def export_csv(self, trigger_download: DownloadTrigger) -> bool:
        """Export the fetched receipts (category scope, not search scope) to CSV."""
        return self.exporter.export_receipts(self.receipts, trigger_download, self.notify)

    async def check_health(self) -> bool:
        try:
            self.backend_status = await self.api.health_check()
        except ReceiptClientError as e:
            self.logger.warning(f"Health check failed: {e.message}")
            self.backend_status = None
            self.backend_error = e.message
            return False
        self.backend_error = None
        return True

    async def load_backend_categories(self) -> List[str]:
        """Fetch the category list the backend classifier uses."""
        try:
            categories = await self.api.get_categories()
        except ReceiptClientError as e:
            self.logger.warning(f"Failed to load categories: {e.message}")
            return self.backend_categories

        known = {c.value for c in Category}
        unknown = [c for c in categories if c.strip().lower() not in known]
        if unknown:
            self.logger.warning(f"Backend categories not known to the client (shown as other): {unknown}")
        self.backend_categories = categories
        return categories
