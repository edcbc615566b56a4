"""NotificationDispatcher — best-effort delivery outside the caller's transaction.

Callers invoke `notify` only after their own unit of work has committed.
Delivery uses a fresh session, so a failure here can never roll back a
purchase or a payment transition; it is logged and dropped.
"""

import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.cm_common.database import async_session_factory
from src.cm_notification.domain.repository import NotificationRepositoryProtocol
from src.cm_notification.infrastructure.persistence import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        related_id: str | None = None,
    ) -> None: ...


class NotificationDispatcher:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        repo: NotificationRepositoryProtocol | None = None,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._repo: NotificationRepositoryProtocol = repo or NotificationRepository()

    async def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        related_id: str | None = None,
    ) -> None:
        try:
            async with self._session_factory() as session:
                await self._repo.create_notification(
                    session, user_id, type, title, message, related_id
                )
                await session.commit()
        except Exception:
            logger.exception(
                "Failed to deliver %s notification to user %s (related_id=%s)",
                type, user_id, related_id,
            )
