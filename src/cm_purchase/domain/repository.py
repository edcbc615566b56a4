"""Repository Protocol for purchase records."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_purchase.domain.models import Purchase, PurchaseView


class PurchaseRepositoryProtocol(Protocol):
    async def create_purchase(self, db: AsyncSession, purchase: Purchase) -> Purchase: ...

    async def find_active_purchase(
        self, db: AsyncSession, buyer_id: str, listing_id: str, now: datetime
    ) -> Purchase | None:
        """Latest purchase of `listing_id` by `buyer_id` whose access is still valid."""
        ...

    async def has_purchased(
        self, db: AsyncSession, buyer_id: str, listing_id: str
    ) -> bool: ...

    async def count_by_listing(self, db: AsyncSession, listing_id: str) -> int: ...

    async def list_by_buyer(
        self, db: AsyncSession, buyer_id: str, offset: int, limit: int
    ) -> tuple[list[PurchaseView], int]: ...

    async def list_by_seller(
        self, db: AsyncSession, seller_id: str, offset: int, limit: int
    ) -> tuple[list[PurchaseView], int]: ...
