"""
HTTP client for the receipt backend.
Wraps every endpoint the client uses and converts transport and server
failures into the client's error taxonomy.
"""

import logging
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from .categories import Category
from .config import get_settings
from .exceptions import NetworkError, ServerError
from .models import AnalyticsSummary, Receipt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
# Upload includes the AI extraction round trip on the backend
UPLOAD_TIMEOUT = 60.0

ReceiptId = Union[int, str]


class ReceiptApiClient:
    """Async client for the receipt backend API."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT,
                 upload_timeout: float = UPLOAD_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the API client.

        Args:
            base_url: Backend base URL; defaults to the configured api_url
            timeout: Timeout in seconds for regular requests
            upload_timeout: Timeout in seconds for uploads
            transport: Optional httpx transport (used to fake the backend)
        """
        self.base_url = (base_url or get_settings().base_url).rstrip("/")
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self.transport = transport
        self.logger = logger
        self.logger.info(f"API client configured for {self.base_url}")

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            transport=self.transport,
            headers={"Accept": "application/json"},
            event_hooks={
                "request": [self._log_request],
                "response": [self._log_response],
            },
        )

    async def _log_request(self, request: httpx.Request) -> None:
        self.logger.debug(f"API Request: {request.method} {request.url.path}")

    async def _log_response(self, response: httpx.Response) -> None:
        request = response.request
        self.logger.debug(f"API Response: {request.method} {request.url.path} -> {response.status_code}")

    async def _request(self, method: str, path: str, timeout: Optional[float] = None, **kwargs) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            NetworkError: If the backend could not be reached
            ServerError: If the backend answered with an error status
        """
        try:
            async with self._client(timeout) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            self.logger.error(f"{method} {path} failed: {e!r}")
            raise NetworkError() from e

        if response.is_error:
            message = self._error_detail(response)
            self.logger.error(f"{method} {path} returned {response.status_code}: {message}")
            raise ServerError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            self.logger.error(f"{method} {path} returned a non-JSON body")
            raise ServerError("Invalid response from server", status_code=response.status_code) from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        """Pick the server-supplied message out of an error response."""
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            for key in ("detail", "message"):
                if isinstance(data.get(key), str) and data[key]:
                    return data[key]
        return f"Server error: {response.status_code}"

    def _parse(self, parser, data: Any, what: str):
        try:
            return parser(data)
        except ValidationError as e:
            self.logger.error(f"Malformed {what} payload: {e}")
            raise ServerError(f"Unexpected {what} data from server") from e

    async def upload_receipt(self, content: bytes, filename: str, content_type: str) -> Receipt:
        """Upload a receipt image for extraction.

        Args:
            content: Raw image bytes
            filename: Original file name
            content_type: MIME type of the image

        Returns:
            The receipt created by the backend
        """
        self.logger.info(f"Uploading receipt {filename} ({len(content) / 1024:.2f} KB)")
        data = await self._request(
            "POST", "/upload",
            timeout=self.upload_timeout,
            files={"file": (filename, content, content_type)},
        )
        receipt = self._parse(Receipt.model_validate, data, "receipt")
        self.logger.info(f"Receipt uploaded successfully: #{receipt.id} {receipt.merchant_name}")
        return receipt

    async def list_receipts(self, category: Union[Category, str, None] = None) -> List[Receipt]:
        """Fetch receipts, optionally scoped to one category.

        Entries that fail validation are logged and skipped so one badly
        extracted receipt does not hide the rest.

        Raises:
            ServerError: If the payload is not a list
        """
        params = {}
        if category is not None:
            params["category"] = Category.coerce(category).value
        data = await self._request("GET", "/receipts", params=params)
        if not isinstance(data, list):
            self.logger.error(f"Malformed receipt list payload: {type(data).__name__}")
            raise ServerError("Unexpected receipt list data from server")

        receipts = []
        for index, entry in enumerate(data):
            try:
                receipts.append(Receipt.model_validate(entry))
            except ValidationError as e:
                entry_id = entry.get("id") if isinstance(entry, dict) else None
                self.logger.warning(f"Skipping malformed receipt at index {index} (id={entry_id}): {e}")

        self.logger.info(f"Fetched {len(receipts)} receipts"
                         + (f" (category: {params['category']})" if params else " (all)"))
        return receipts

    async def get_receipt(self, receipt_id: ReceiptId) -> Receipt:
        data = await self._request("GET", f"/receipts/{receipt_id}")
        return self._parse(Receipt.model_validate, data, "receipt")

    async def delete_receipt(self, receipt_id: ReceiptId) -> Dict[str, Any]:
        data = await self._request("DELETE", f"/receipts/{receipt_id}")
        self.logger.info(f"Deleted receipt #{receipt_id}")
        return data if isinstance(data, dict) else {"result": data}

    async def get_analytics(self) -> AnalyticsSummary:
        data = await self._request("GET", "/analytics")
        summary = self._parse(AnalyticsSummary.model_validate, data, "analytics")
        self.logger.info(f"Analytics fetched: {summary.total_receipts} receipts, "
                         f"{len(summary.by_category)} categories")
        return summary

    async def get_categories(self) -> List[str]:
        data = await self._request("GET", "/categories")
        if not isinstance(data, dict) or not isinstance(data.get("categories"), list):
            raise ServerError("Unexpected categories data from server")
        return [str(category) for category in data["categories"]]

    async def health_check(self) -> Dict[str, Any]:
        data = await self._request("GET", "/health")
        return data if isinstance(data, dict) else {"status": data}
