"""
Error taxonomy for the receipt client.
Every error carries the message shown to the user in a notification.
"""

from typing import Optional


class ReceiptClientError(Exception):
    """Base class for errors recovered at a component boundary."""

    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class FileValidationError(ReceiptClientError):
    """Candidate upload rejected before any request was made."""

    default_message = "Invalid file"


class NetworkError(ReceiptClientError):
    """The backend could not be reached."""

    default_message = "Cannot connect to server. Please check if the backend is running."


class ServerError(ReceiptClientError):
    """The backend answered with an error status or an unusable payload."""

    default_message = "Server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class EmptyExportError(ReceiptClientError):
    """Export was attempted with no receipts."""

    default_message = "No receipts to export"
