"""NotificationRepository — raw SQL over the notifications table.

Every statement is scoped by user_id: users only ever see or touch their own rows.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_common.errors import InternalError
from src.cm_notification.domain.models import Notification

_COLUMNS = "id, user_id, type, title, message, related_id, is_read, created_at"

_INSERT_SQL = text(f"""
    INSERT INTO notifications (user_id, type, title, message, related_id)
    VALUES (:user_id, :type, :title, :message, :related_id)
    RETURNING {_COLUMNS}
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM notifications
    WHERE user_id = :user_id
      AND (CAST(:is_read AS BOOLEAN) IS NULL OR is_read = CAST(:is_read AS BOOLEAN))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

_COUNT_UNREAD_SQL = text(
    "SELECT COUNT(*) FROM notifications WHERE user_id = :user_id AND NOT is_read"
)

_SET_READ_SQL = text(f"""
    UPDATE notifications
    SET is_read = :is_read
    WHERE id = :id AND user_id = :user_id
    RETURNING {_COLUMNS}
""")

_MARK_ALL_READ_SQL = text(
    "UPDATE notifications SET is_read = TRUE WHERE user_id = :user_id AND NOT is_read"
)

_DELETE_SQL = text(
    "DELETE FROM notifications WHERE id = :id AND user_id = :user_id RETURNING id"
)

_DELETE_READ_SQL = text("DELETE FROM notifications WHERE user_id = :user_id AND is_read")


def _row_to_notification(row: object) -> Notification:
    return Notification(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        message=row.message,  # type: ignore[attr-defined]
        related_id=row.related_id,  # type: ignore[attr-defined]
        is_read=row.is_read,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class NotificationRepository:
    async def create_notification(
        self,
        db: AsyncSession,
        user_id: str,
        type: str,
        title: str,
        message: str,
        related_id: str | None,
    ) -> Notification:
        result = await db.execute(
            _INSERT_SQL,
            {
                "user_id": user_id,
                "type": type,
                "title": title,
                "message": message,
                "related_id": related_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Notification insert returned no rows")
        return _row_to_notification(row)

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: str,
        is_read: bool | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Notification]:
        rows = (
            await db.execute(
                _LIST_SQL,
                {"user_id": user_id, "is_read": is_read, "cursor_id": cursor_id, "limit": limit},
            )
        ).fetchall()
        return [_row_to_notification(r) for r in rows]

    async def count_unread(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(_COUNT_UNREAD_SQL, {"user_id": user_id})
        return int(result.scalar_one())

    async def set_read(
        self, db: AsyncSession, user_id: str, notification_id: int, is_read: bool
    ) -> Notification | None:
        row = (
            await db.execute(
                _SET_READ_SQL,
                {"id": notification_id, "user_id": user_id, "is_read": is_read},
            )
        ).fetchone()
        return _row_to_notification(row) if row else None

    async def mark_all_read(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(_MARK_ALL_READ_SQL, {"user_id": user_id})
        return result.rowcount  # type: ignore[attr-defined]

    async def delete_notification(
        self, db: AsyncSession, user_id: str, notification_id: int
    ) -> bool:
        row = (
            await db.execute(_DELETE_SQL, {"id": notification_id, "user_id": user_id})
        ).fetchone()
        return row is not None

    async def delete_read(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(_DELETE_READ_SQL, {"user_id": user_id})
        return result.rowcount  # type: ignore[attr-defined]
