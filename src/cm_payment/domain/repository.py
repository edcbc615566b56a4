"""Repository Protocol for payment requests."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_payment.domain.models import PaymentRequest, PaymentRequestView, PaymentStats


class PaymentRepositoryProtocol(Protocol):
    async def create_payment_request(
        self, db: AsyncSession, request: PaymentRequest
    ) -> PaymentRequest: ...

    async def get_payment_request(
        self, db: AsyncSession, request_id: str
    ) -> PaymentRequest | None: ...

    async def transition_pending(
        self,
        db: AsyncSession,
        request_id: str,
        new_status: str,
        admin_id: str,
        admin_note: str | None,
        processed_at: datetime,
    ) -> PaymentRequest | None:
        """Move a request out of 'pending'. Returns None if it was not pending (or missing)."""
        ...

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        type: str | None,
        offset: int,
        limit: int,
    ) -> tuple[list[PaymentRequest], int]: ...

    async def list_requests(
        self,
        db: AsyncSession,
        type: str | None,
        status: str | None,
        sort: str,
        offset: int,
        limit: int,
    ) -> tuple[list[PaymentRequestView], int]: ...

    async def get_stats(self, db: AsyncSession) -> PaymentStats: ...
