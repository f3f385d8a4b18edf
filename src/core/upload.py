"""
Upload orchestration for receipt images.
Validates a candidate file on the client, sends it to the backend and reports
the outcome through the notification capability.
"""

import logging
from typing import Optional

from .api import ReceiptApiClient
from .exceptions import FileValidationError, ReceiptClientError
from .models import Receipt
from .notifications import NotificationKind, Notifier

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB
ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})
UPLOAD_EXTENSIONS = ["jpg", "jpeg", "png"]


def validate_upload(filename: str, size: int, content_type: Optional[str]) -> None:
    """Validate a candidate upload before any request is made.

    Args:
        filename: Original file name
        size: File size in bytes
        content_type: MIME type reported for the file

    Raises:
        FileValidationError: If the file is too large or not a JPG/PNG image
    """
    if size > MAX_UPLOAD_BYTES:
        raise FileValidationError("File too large. Max size is 10MB")
    if (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise FileValidationError("Invalid file type. Please upload JPG or PNG")


class UploadOrchestrator:
    """Runs one upload from validation to user notification."""

    def __init__(self, api: ReceiptApiClient, notify: Notifier):
        self.api = api
        self.notify = notify
        self.logger = logger

    async def submit(self, content: bytes, filename: str, content_type: Optional[str]) -> Optional[Receipt]:
        """Validate and upload a receipt image.

        Args:
            content: Raw file bytes
            filename: Original file name
            content_type: MIME type reported for the file

        Returns:
            The created receipt, or None if validation or upload failed
        """
        try:
            validate_upload(filename, len(content), content_type)
        except FileValidationError as e:
            self.logger.warning(f"Rejected {filename}: {e.message}")
            self.notify(NotificationKind.ERROR, e.message)
            return None

        try:
            receipt = await self.api.upload_receipt(content, filename, content_type)
        except ReceiptClientError as e:
            self.logger.error(f"Upload of {filename} failed: {e.message}")
            self.notify(NotificationKind.ERROR, e.message)
            return None

        self.notify(NotificationKind.SUCCESS, "Receipt processed successfully!")
        return receipt
