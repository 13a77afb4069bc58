"""
Notification Center

Raises user-facing notifications for ledger events.

The center:
- Delivers through a pluggable NotificationDisplay (device, push, ...)
- Stores every notification in the user's inbox
- Never raises: a failed notification is logged and reported as None,
  so callers (refresh, settlement) are never failed by it
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from splitledger.models.notification import NavigationTarget, Notification
from splitledger.notifications.storage import (
    InMemoryNotificationStorage,
    NotificationStorageInterface,
)


class NotificationDisplay(ABC):
    """Delivery channel for notifications."""

    @abstractmethod
    async def display(self, notification: Notification) -> None:
        """Show the notification to the user."""
        pass


class LogNotificationDisplay(NotificationDisplay):
    """Delivers notifications to the structured log only."""

    def __init__(self):
        self._logger = structlog.get_logger(__name__)

    async def display(self, notification: Notification) -> None:
        self._logger.info("notification_displayed", **notification.to_log_dict())


class NotificationCenter:
    """Central notification service."""

    def __init__(
        self,
        display: Optional[NotificationDisplay] = None,
        storage: Optional[NotificationStorageInterface] = None,
    ):
        """
        Initialize the notification center.

        Args:
            display: Delivery channel. Defaults to logging only.
            storage: Inbox backend. Defaults to in-memory.
        """
        self._display = display or LogNotificationDisplay()
        self._storage = storage or InMemoryNotificationStorage()
        self._logger = structlog.get_logger(__name__)

    async def trigger(
        self,
        title: str,
        body: str,
        target: Optional[NavigationTarget] = None,
        user_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Raise a notification.

        Returns:
            The notification id, or None if delivery or storage failed
        """
        try:
            notification = Notification(
                title=title,
                body=body,
                target=target,
                user_id=user_id,
            )
            await self._display.display(notification)
            await self._storage.prepend(notification)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "notification_failed",
                title=title,
                user_id=user_id,
                error=str(e),
            )
            return None

        self._logger.info("notification_triggered", **notification.to_log_dict())
        return notification.id

    async def inbox(self, user_id: Optional[str] = None) -> list[Notification]:
        return await self._storage.inbox(user_id)

    async def unread_count(self, user_id: Optional[str] = None) -> int:
        return sum(1 for n in await self._storage.inbox(user_id) if not n.read)

    async def mark_read(self, notification_id: str, user_id: Optional[str] = None) -> bool:
        found = await self._storage.mark_read(notification_id, user_id)
        if not found:
            self._logger.warning(
                "notification_not_found",
                notification_id=notification_id,
                user_id=user_id,
            )
        return found

    async def clear(self, user_id: Optional[str] = None) -> None:
        await self._storage.clear(user_id)
        self._logger.info("notifications_cleared", user_id=user_id)
