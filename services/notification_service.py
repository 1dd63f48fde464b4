"""
In-process notification feed.

Workflow events (submissions, returns, regression alerts, sync outcomes) are
published here as short user-facing messages. Listeners are called
synchronously on publish; the feed keeps the most recent messages for polling
clients.
"""

from __future__ import annotations

import logging
import secrets
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, List, Optional

from domain.time import utc_now

logger = logging.getLogger(__name__)

MAX_RETAINED_NOTIFICATIONS: int = 50


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    message: str
    type: NotificationType
    timestamp: datetime


Listener = Callable[[Notification], None]


class Notifier:
    def __init__(self, *, max_retained: int = MAX_RETAINED_NOTIFICATIONS) -> None:
        self._feed: Deque[Notification] = deque(maxlen=max_retained)
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, message: str, type: NotificationType = NotificationType.INFO) -> Notification:
        notification = Notification(
            id=secrets.token_hex(4),
            message=message,
            type=NotificationType(type),
            timestamp=utc_now(),
        )
        self._feed.appendleft(notification)
        logger.info("Notification published", extra={"type": notification.type.value, "message": message})

        for listener in list(self._listeners):
            listener(notification)
        return notification

    def recent(self, limit: Optional[int] = None) -> List[Notification]:
        """Newest first."""

        items = list(self._feed)
        return items if limit is None else items[:limit]

    def dismiss(self, notification_id: str) -> bool:
        for item in self._feed:
            if item.id == notification_id:
                self._feed.remove(item)
                return True
        return False

    def clear(self) -> None:
        self._feed.clear()


__all__ = ["MAX_RETAINED_NOTIFICATIONS", "Notification", "NotificationType", "Notifier"]
