"""
Notification Models

A notification is a user-facing message raised by the ledger controller
(new splits found, group created, settlement added, ...). Each one may carry
a navigation target so the presentation layer can deep-link into a screen.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class NavigationTarget(BaseModel):
    """Screen name plus parameters, e.g. GroupDetails {groupId: "7"}."""
    model_config = ConfigDict(frozen=True)

    screen: str = Field(..., min_length=1)
    params: dict[str, str] = Field(default_factory=dict)


# Well-known screens the controller points notifications at
DASHBOARD = "BillSplittingDashboard"
GROUP_DETAILS = "GroupDetails"
SPLIT_DETAILS = "SplitDetails"


class Notification(BaseModel):
    """A single notification, as stored in a user's inbox."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(default="", max_length=1000)
    target: Optional[NavigationTarget] = Field(default=None)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the notification was raised (UTC)",
    )
    read: bool = Field(default=False)
    user_id: Optional[str] = Field(default=None)

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "notification_id": self.id,
            "title": self.title,
            "body": self.body,
            "screen": self.target.screen if self.target else None,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat(),
        }
