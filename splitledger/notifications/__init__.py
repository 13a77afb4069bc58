"""Notifications package."""

from splitledger.notifications.center import (
    LogNotificationDisplay,
    NotificationCenter,
    NotificationDisplay,
)
from splitledger.notifications.storage import (
    InMemoryNotificationStorage,
    NotificationStorageInterface,
)

__all__ = [
    "InMemoryNotificationStorage",
    "LogNotificationDisplay",
    "NotificationCenter",
    "NotificationDisplay",
    "NotificationStorageInterface",
]
