"""Repository Protocol for notifications."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_notification.domain.models import Notification


class NotificationRepositoryProtocol(Protocol):
    async def create_notification(
        self,
        db: AsyncSession,
        user_id: str,
        type: str,
        title: str,
        message: str,
        related_id: str | None,
    ) -> Notification: ...

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: str,
        is_read: bool | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Notification]: ...

    async def count_unread(self, db: AsyncSession, user_id: str) -> int: ...

    async def set_read(
        self, db: AsyncSession, user_id: str, notification_id: int, is_read: bool
    ) -> Notification | None:
        """Returns None when the notification does not exist or belongs to another user."""
        ...

    async def mark_all_read(self, db: AsyncSession, user_id: str) -> int: ...

    async def delete_notification(
        self, db: AsyncSession, user_id: str, notification_id: int
    ) -> bool: ...

    async def delete_read(self, db: AsyncSession, user_id: str) -> int: ...
