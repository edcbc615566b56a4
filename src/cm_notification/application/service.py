"""NotificationApplicationService — a user's own notification inbox."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_common.enums import NotificationFilter
from src.cm_common.errors import NotificationNotFoundError
from src.cm_common.pagination import cursor_decode, cursor_encode, split_page
from src.cm_notification.application.schemas import (
    BulkUpdateResponse,
    NotificationItem,
    NotificationListResponse,
    UnreadCountResponse,
)
from src.cm_notification.domain.repository import NotificationRepositoryProtocol
from src.cm_notification.infrastructure.persistence import NotificationRepository

_FILTER_TO_IS_READ: dict[str, bool | None] = {
    NotificationFilter.ALL.value: None,
    NotificationFilter.UNREAD.value: False,
    NotificationFilter.READ.value: True,
}


class NotificationApplicationService:
    def __init__(self, repo: NotificationRepositoryProtocol | None = None) -> None:
        self._repo: NotificationRepositoryProtocol = repo or NotificationRepository()

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: str,
        filter_by: str,
        cursor: str | None,
        limit: int,
    ) -> NotificationListResponse:
        rows = await self._repo.list_notifications(
            db, user_id, _FILTER_TO_IS_READ[filter_by], cursor_decode(cursor), limit + 1
        )
        page, has_more = split_page(rows, limit)
        unread = await self._repo.count_unread(db, user_id)
        return NotificationListResponse(
            items=[NotificationItem.from_domain(n) for n in page],
            unread_count=unread,
            next_cursor=cursor_encode(page[-1].id) if has_more and page else None,
            has_more=has_more,
        )

    async def unread_count(self, db: AsyncSession, user_id: str) -> UnreadCountResponse:
        return UnreadCountResponse(unread_count=await self._repo.count_unread(db, user_id))

    async def set_read(
        self, db: AsyncSession, user_id: str, notification_id: int, is_read: bool
    ) -> NotificationItem:
        try:
            notification = await self._repo.set_read(db, user_id, notification_id, is_read)
            if notification is None:
                raise NotificationNotFoundError(str(notification_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return NotificationItem.from_domain(notification)

    async def mark_all_read(self, db: AsyncSession, user_id: str) -> BulkUpdateResponse:
        try:
            affected = await self._repo.mark_all_read(db, user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return BulkUpdateResponse(affected=affected)

    async def delete(self, db: AsyncSession, user_id: str, notification_id: int) -> None:
        try:
            if not await self._repo.delete_notification(db, user_id, notification_id):
                raise NotificationNotFoundError(str(notification_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def delete_read(self, db: AsyncSession, user_id: str) -> BulkUpdateResponse:
        try:
            affected = await self._repo.delete_read(db, user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return BulkUpdateResponse(affected=affected)
