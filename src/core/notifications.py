"""
User-facing notifications.
Notifications are a tagged variant (success, error, info) held in a queue that
the application controller owns and hands down as a notify capability.
"""

import itertools
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Callable, List, Literal, Optional, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MS = 3000


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class _BaseNotification(BaseModel):
    id: int
    message: str
    duration_ms: Optional[int] = Field(DEFAULT_DURATION_MS, ge=0, description="None keeps it until dismissed")
    created_at: datetime = Field(default_factory=datetime.now)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.duration_ms is None:
            return False
        now = now or datetime.now()
        return now >= self.created_at + timedelta(milliseconds=self.duration_ms)


class SuccessNotification(_BaseNotification):
    kind: Literal[NotificationKind.SUCCESS] = NotificationKind.SUCCESS


class ErrorNotification(_BaseNotification):
    kind: Literal[NotificationKind.ERROR] = NotificationKind.ERROR


class InfoNotification(_BaseNotification):
    kind: Literal[NotificationKind.INFO] = NotificationKind.INFO


Notification = Annotated[
    Union[SuccessNotification, ErrorNotification, InfoNotification],
    Field(discriminator="kind"),
]

_NOTIFICATION_TYPES = {
    NotificationKind.SUCCESS: SuccessNotification,
    NotificationKind.ERROR: ErrorNotification,
    NotificationKind.INFO: InfoNotification,
}

# Capability handed to components that need to report to the user
Notifier = Callable[[NotificationKind, str], None]


class NotificationQueue:
    """Ordered queue of pending notifications."""

    def __init__(self):
        self._items: List[Notification] = []
        self._ids = itertools.count(1)
        self.logger = logger

    def notify(self, kind: NotificationKind, message: str,
               duration_ms: Optional[int] = DEFAULT_DURATION_MS) -> Notification:
        """Queue a notification.

        Args:
            kind: Success, error or info
            message: Text shown to the user
            duration_ms: Display duration; None keeps it until dismissed

        Returns:
            The queued notification
        """
        notification = _NOTIFICATION_TYPES[NotificationKind(kind)](
            id=next(self._ids),
            message=message,
            duration_ms=duration_ms,
        )
        self._items.append(notification)
        self.logger.info(f"Notification ({notification.kind.value}): {message}")
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(NotificationKind.SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationKind.ERROR, message)

    def info(self, message: str) -> Notification:
        return self.notify(NotificationKind.INFO, message)

    def remove(self, notification_id: int) -> bool:
        """Dismiss a notification by id; returns False if it was already gone."""
        before = len(self._items)
        self._items = [n for n in self._items if n.id != notification_id]
        return len(self._items) != before

    def active(self, now: Optional[datetime] = None) -> List[Notification]:
        """Drop expired notifications and return the remaining ones, oldest first."""
        self._items = [n for n in self._items if not n.is_expired(now)]
        return list(self._items)

    def clear(self) -> None:
        self._items = []

    def __len__(self) -> int:
        return len(self._items)
