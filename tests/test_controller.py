"""
Tests for the application controller.
Covers stale-response handling, the analytics fallback and the delete,
upload and export flows against an in-memory backend.
"""

import asyncio
import pytest
from decimal import Decimal

from core.categories import Category
from core.controller import AppController, ResponseSequencer
from core.exceptions import NetworkError, ServerError
from core.models import AnalyticsSummary
from core.notifications import NotificationKind


class FakeApi:
    """In-memory stand-in for ReceiptApiClient."""

    def __init__(self, receipts=None):
        self.receipts = list(receipts or [])
        self.analytics_error = None
        self.receipts_error = None
        self.delete_error = None
        self.health_error = None
        self.categories = [c.value for c in Category]
        self.category_requests = []
        self.upload_result = None

    async def list_receipts(self, category=None):
        self.category_requests.append(category)
        if self.receipts_error:
            raise self.receipts_error
        if category is None:
            return list(self.receipts)
        return [r for r in self.receipts if r.category == category]

    async def get_analytics(self):
        if self.analytics_error:
            raise self.analytics_error
        return AnalyticsSummary(
            total_receipts=len(self.receipts),
            total_spent=sum((r.total for r in self.receipts), Decimal("0")),
            by_category={},
            by_month={},
        )

    async def delete_receipt(self, receipt_id):
        if self.delete_error:
            raise self.delete_error
        self.receipts = [r for r in self.receipts if r.id != receipt_id]
        return {"message": "Receipt deleted"}

    async def upload_receipt(self, content, filename, content_type):
        self.receipts.append(self.upload_result)
        return self.upload_result

    async def health_check(self):
        if self.health_error:
            raise self.health_error
        return {"status": "healthy"}

    async def get_categories(self):
        return self.categories


class GatedApi(FakeApi):
    """Holds each receipts request until its category's gate is released."""

    def __init__(self, receipts):
        super().__init__(receipts)
        self.gates = {}

    def gate(self, category):
        return self.gates.setdefault(category, asyncio.Event())

    async def list_receipts(self, category=None):
        await self.gate(category).wait()
        return await super().list_receipts(category)


def messages(controller, kind=None):
    return [n.message for n in controller.notifications.active() if kind is None or n.kind == kind]


class TestResponseSequencer:
    """Tests for request tagging."""

    def test_only_latest_tag_is_current(self):
        sequencer = ResponseSequencer()
        first = sequencer.issue()
        second = sequencer.issue()

        assert not sequencer.is_current(first)
        assert sequencer.is_current(second)
        assert sequencer.latest == 2


class TestReceiptLoading:
    """Tests for fetching and filtering receipts."""

    @pytest.mark.asyncio
    async def test_refresh_loads_everything(self, sample_receipts):
        """Test that refresh fetches receipts and analytics."""
        controller = AppController(FakeApi(sample_receipts))

        await controller.refresh()

        assert controller.receipts == sample_receipts
        assert controller.analytics.total_receipts == 4
        assert controller.refresh_key == 1
        assert not controller.loading_receipts
        assert not controller.loading_analytics
        assert messages(controller) == []

    @pytest.mark.asyncio
    async def test_refresh_announce(self, sample_receipts):
        controller = AppController(FakeApi(sample_receipts))
        await controller.refresh(announce=True)
        assert messages(controller, NotificationKind.SUCCESS) == ["Data refreshed"]

    @pytest.mark.asyncio
    async def test_select_category_fetches_scoped_snapshot(self, sample_receipts):
        """Test that the category filter is applied by the backend request."""
        api = FakeApi(sample_receipts)
        controller = AppController(api)

        await controller.select_category("restaurant")

        assert api.category_requests == [Category.RESTAURANT]
        assert [r.merchant_name for r in controller.receipts] == ["Luigi's Pizzeria", "Salad Bar Co"]

    @pytest.mark.asyncio
    async def test_search_within_category(self, sample_receipts):
        """Test that search narrows the category snapshot without a request."""
        api = FakeApi(sample_receipts)
        controller = AppController(api)
        await controller.select_category(Category.RESTAURANT)

        controller.set_search_query("salad")

        assert [r.merchant_name for r in controller.view.receipts] == ["Luigi's Pizzeria", "Salad Bar Co"]
        assert len(api.category_requests) == 1

    @pytest.mark.asyncio
    async def test_clear_filters(self, sample_receipts):
        """Test that clearing resets the query and refetches all receipts."""
        controller = AppController(FakeApi(sample_receipts))
        await controller.select_category("gas")
        controller.set_search_query("shell")

        await controller.clear_filters()

        assert controller.search_query == ""
        assert controller.selected_category is None
        assert controller.view.count == 4

    @pytest.mark.asyncio
    async def test_stale_response_is_discarded(self, sample_receipts):
        """Test that a slow response for an old selection never overwrites a newer one."""
        api = GatedApi(sample_receipts)
        controller = AppController(api)

        all_task = asyncio.ensure_future(controller.load_receipts())
        await asyncio.sleep(0)
        restaurant_task = asyncio.ensure_future(controller.select_category("restaurant"))
        await asyncio.sleep(0)

        api.gate(Category.RESTAURANT).set()
        assert await restaurant_task is True
        api.gate(None).set()
        assert await all_task is False

        assert [r.merchant_name for r in controller.receipts] == ["Luigi's Pizzeria", "Salad Bar Co"]
        assert controller.selected_category == Category.RESTAURANT

    @pytest.mark.asyncio
    async def test_load_failure_clears_list_and_notifies(self, sample_receipts):
        """Test that a failed fetch empties the list and reports the error."""
        api = FakeApi(sample_receipts)
        controller = AppController(api)
        await controller.refresh()

        api.receipts_error = NetworkError()
        assert await controller.load_receipts() is False

        assert controller.receipts == []
        assert messages(controller, NotificationKind.ERROR) == [NetworkError.default_message]


class TestAnalyticsFallback:
    """Tests for local aggregation when the analytics endpoint fails."""

    @pytest.mark.asyncio
    async def test_local_summary_when_backend_fails(self, sample_receipts):
        """Test that unfiltered receipts are aggregated locally."""
        api = FakeApi(sample_receipts)
        api.analytics_error = ServerError("Server error: 500", status_code=500)
        controller = AppController(api)

        await controller.refresh()

        assert controller.analytics is None
        assert controller.summary_is_local
        assert controller.summary.total_spent == Decimal("71.60")
        assert controller.summary.by_category["restaurant"] == Decimal("25.11")
        assert messages(controller) == []

    @pytest.mark.asyncio
    async def test_no_fallback_for_category_snapshot(self, sample_receipts):
        """Test that a category-scoped snapshot is never passed off as totals."""
        api = FakeApi(sample_receipts)
        api.analytics_error = NetworkError()
        controller = AppController(api)
        await controller.select_category("gas")
        await controller.load_analytics()

        assert not controller.summary_is_local
        assert controller.summary is None

    @pytest.mark.asyncio
    async def test_backend_summary_preferred(self, sample_receipts):
        controller = AppController(FakeApi(sample_receipts))
        await controller.refresh()
        assert not controller.summary_is_local
        assert controller.summary is controller.analytics


class TestMutations:
    """Tests for delete, upload and export flows."""

    @pytest.mark.asyncio
    async def test_delete_success(self, sample_receipts):
        """Test that a delete notifies with the merchant and refreshes."""
        api = FakeApi(sample_receipts)
        controller = AppController(api)
        await controller.refresh()
        target = sample_receipts[-1]

        assert await controller.delete_receipt(target.id, target.merchant_name) is True

        assert messages(controller, NotificationKind.SUCCESS) == ["Receipt from Shell deleted"]
        assert target not in controller.receipts
        assert controller.analytics.total_receipts == 3

    @pytest.mark.asyncio
    async def test_delete_failure(self, sample_receipts):
        """Test the failure message and that the list is untouched."""
        api = FakeApi(sample_receipts)
        api.delete_error = ServerError("Receipt not found", status_code=404)
        controller = AppController(api)
        await controller.refresh()

        assert await controller.delete_receipt(999) is False

        assert messages(controller, NotificationKind.ERROR) == ["Failed to delete receipt. Receipt not found"]
        assert len(controller.receipts) == 4

    @pytest.mark.asyncio
    async def test_upload_refreshes_on_success(self, sample_receipts, make_receipt):
        """Test that a processed upload appears after the refresh."""
        api = FakeApi(sample_receipts)
        api.upload_result = make_receipt(merchant_name="New Bakery", total=Decimal("4.25"))
        controller = AppController(api)

        receipt = await controller.upload(b"jpeg", "bakery.jpg", "image/jpeg")

        assert receipt.merchant_name == "New Bakery"
        assert "New Bakery" in [r.merchant_name for r in controller.receipts]
        assert controller.refresh_key == 1
        assert messages(controller, NotificationKind.SUCCESS) == ["Receipt processed successfully!"]

    @pytest.mark.asyncio
    async def test_rejected_upload_does_not_refresh(self):
        controller = AppController(FakeApi())
        assert await controller.upload(b"gif", "a.gif", "image/gif") is None
        assert controller.refresh_key == 0

    def test_export_with_no_receipts(self):
        """Test that exporting nothing reports and skips the download."""
        controller = AppController(FakeApi())
        downloads = []

        assert controller.export_csv(lambda data, name: downloads.append(name)) is False

        assert downloads == []
        assert messages(controller, NotificationKind.INFO) == ["No receipts to export"]

    @pytest.mark.asyncio
    async def test_export_uses_fetched_snapshot_not_search(self, sample_receipts):
        """Test that export covers the category snapshot regardless of search."""
        controller = AppController(FakeApi(sample_receipts))
        await controller.select_category("restaurant")
        controller.set_search_query("luigi")
        downloads = []

        assert controller.export_csv(lambda data, name: downloads.append(data)) is True

        content = downloads[0].decode("utf-8")
        assert "Luigi's Pizzeria" in content
        assert "Salad Bar Co" in content


class TestBackendInfo:
    """Tests for health and category lookups."""

    @pytest.mark.asyncio
    async def test_health_ok(self):
        controller = AppController(FakeApi())
        assert await controller.check_health() is True
        assert controller.backend_status == {"status": "healthy"}
        assert controller.backend_error is None

    @pytest.mark.asyncio
    async def test_health_failure(self):
        """Test that an unreachable backend is recorded, not raised."""
        api = FakeApi()
        api.health_error = NetworkError()
        controller = AppController(api)

        assert await controller.check_health() is False
        assert controller.backend_status is None
        assert "Cannot connect to server" in controller.backend_error

    @pytest.mark.asyncio
    async def test_backend_categories(self):
        api = FakeApi()
        api.categories = ["groceries", "pets"]
        controller = AppController(api)

        assert await controller.load_backend_categories() == ["groceries", "pets"]
        assert controller.backend_categories == ["groceries", "pets"]
