"""User-facing notices (toasts) raised by the automation services.

Notifications are fire-and-forget: a failing notifier is logged and never
propagates into the rule, workflow, or relationship call that raised it.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Protocol

from qmsflow.core.config import settings
from qmsflow.utils.datetime import utcnow

logger = logging.getLogger("qmsflow.services.notifications")

NotificationLevel = Literal["info", "success", "error"]

_LOG_LEVELS = {"info": logging.INFO, "success": logging.INFO, "error": logging.WARNING}


class Notifier(Protocol):
    def notify(self, level: NotificationLevel, message: str) -> None:
        ...


@dataclass(slots=True)
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=utcnow)


class NotificationCenter:
    """Bounded in-memory buffer of notices waiting for the UI to collect them."""

    def __init__(self, max_items: int | None = None) -> None:
        self._items: deque[Notification] = deque(maxlen=max_items or settings.notification_buffer_size)

    def notify(self, level: NotificationLevel, message: str) -> None:
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "[%s] %s", level, message)
        self._items.append(Notification(level=level, message=message))

    def snapshot(self) -> list[Notification]:
        return list(self._items)

    def drain(self) -> list[Notification]:
        """Return and clear every buffered notification."""
        items = list(self._items)
        self._items.clear()
        return items


def notify_quietly(notifier: Notifier, level: NotificationLevel, message: str) -> bool:
    """Deliver a notice, returning False instead of raising when delivery fails."""
    try:
        notifier.notify(level, message)
    except Exception:
        logger.exception("Notification delivery failed: %s", message)
        return False
    return True


notification_center = NotificationCenter()
