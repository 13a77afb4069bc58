"""
Notification Inbox Storage

Each user has an inbox of notifications, newest first. The interface is
kept small so the in-memory store used by the engine and tests can be
swapped for a device or server-backed one.
"""

from abc import ABC, abstractmethod
from typing import Optional

from splitledger.models.notification import Notification

ANONYMOUS = "__anonymous__"


class NotificationStorageInterface(ABC):
    """Abstract per-user notification inbox."""

    @abstractmethod
    async def prepend(self, notification: Notification) -> None:
        """Store a notification at the head of its user's inbox."""
        pass

    @abstractmethod
    async def inbox(self, user_id: Optional[str] = None) -> list[Notification]:
        """
        Get a user's inbox.

        Returns:
            Notifications, newest first
        """
        pass

    @abstractmethod
    async def mark_read(self, notification_id: str, user_id: Optional[str] = None) -> bool:
        """
        Mark one notification as read.

        Returns:
            True if the notification was found
        """
        pass

    @abstractmethod
    async def clear(self, user_id: Optional[str] = None) -> None:
        """Empty a user's inbox."""
        pass


class InMemoryNotificationStorage(NotificationStorageInterface):
    """Process-local inbox keyed by user id."""

    def __init__(self):
        self._inboxes: dict[str, list[Notification]] = {}

    async def prepend(self, notification: Notification) -> None:
        key = notification.user_id or ANONYMOUS
        self._inboxes.setdefault(key, []).insert(0, notification)

    async def inbox(self, user_id: Optional[str] = None) -> list[Notification]:
        return list(self._inboxes.get(user_id or ANONYMOUS, []))

    async def mark_read(self, notification_id: str, user_id: Optional[str] = None) -> bool:
        inbox = self._inboxes.get(user_id or ANONYMOUS, [])
        for index, notification in enumerate(inbox):
            if notification.id == notification_id:
                inbox[index] = notification.model_copy(update={"read": True})
                return True
        return False

    async def clear(self, user_id: Optional[str] = None) -> None:
        self._inboxes[user_id or ANONYMOUS] = []
