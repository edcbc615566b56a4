"""Pydantic schemas for cm_notification API."""

from pydantic import BaseModel

from src.cm_notification.domain.models import Notification


class NotificationItem(BaseModel):
    id: int
    type: str
    title: str
    message: str
    related_id: str | None
    is_read: bool
    created_at: str

    @classmethod
    def from_domain(cls, n: Notification) -> "NotificationItem":
        return cls(
            id=n.id,
            type=n.type,
            title=n.title,
            message=n.message,
            related_id=n.related_id,
            is_read=n.is_read,
            created_at=n.created_at.isoformat() if n.created_at else "",
        )


class NotificationListResponse(BaseModel):
    items: list[NotificationItem]
    unread_count: int
    next_cursor: str | None
    has_more: bool


class UnreadCountResponse(BaseModel):
    unread_count: int


class BulkUpdateResponse(BaseModel):
    affected: int
