"""Domain models for cm_notification."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Notification:
    id: int
    user_id: str
    type: str            # NotificationType value
    title: str
    message: str
    related_id: str | None = None
    is_read: bool = False
    created_at: datetime | None = None
