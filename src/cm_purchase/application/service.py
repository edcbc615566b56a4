"""PurchaseApplicationService — owns the settlement transaction.

Settlement runs inside commit_or_rollback: any failure after the buyer debit
rolls back every balance write. Notifications go out only after commit.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_account.domain.ledger import AccountLedger
from src.cm_account.infrastructure.persistence import AccountRepository
from src.cm_common.database import commit_or_rollback
from src.cm_common.enums import NotificationType
from src.cm_common.money import xu_to_display
from src.cm_listing.domain.repository import ListingRepositoryProtocol
from src.cm_listing.infrastructure.persistence import ListingRepository
from src.cm_notification.domain.dispatch import NotificationDispatcher, NotificationSink
from src.cm_purchase.application.schemas import PurchaseItem, PurchasePage, PurchaseResponse
from src.cm_purchase.domain.repository import PurchaseRepositoryProtocol
from src.cm_purchase.domain.settlement import PurchaseSettlement, SettlementResult
from src.cm_purchase.infrastructure.persistence import PurchaseRepository

logger = logging.getLogger(__name__)


class PurchaseApplicationService:
    def __init__(
        self,
        settlement: PurchaseSettlement | None = None,
        purchases: PurchaseRepositoryProtocol | None = None,
        listings: ListingRepositoryProtocol | None = None,
        notifier: NotificationSink | None = None,
    ) -> None:
        self._purchases: PurchaseRepositoryProtocol = purchases or PurchaseRepository()
        self._listings: ListingRepositoryProtocol = listings or ListingRepository()
        self._settlement = settlement or PurchaseSettlement(
            AccountLedger(AccountRepository()), self._listings, self._purchases
        )
        self._notifier: NotificationSink = notifier or NotificationDispatcher()

    async def settle_purchase(
        self, db: AsyncSession, buyer_id: str, listing_id: str, expected_price: int
    ) -> PurchaseResponse:
        async with commit_or_rollback(db, f"Purchase of {listing_id}"):
            result = await self._settlement.settle(db, buyer_id, listing_id, expected_price)

        p = result.purchase
        logger.info(
            "Purchase %s committed: buyer=%s listing=%s amount=%d earnings=%d commission=%d",
            p.id, p.buyer_id, p.listing_id, p.amount, p.seller_earnings, p.admin_commission,
        )
        await self._notify_parties(result)
        return PurchaseResponse.from_result(result)

    async def _notify_parties(self, result: SettlementResult) -> None:
        p, listing = result.purchase, result.listing
        await self._notifier.notify(
            p.seller_id,
            NotificationType.SALE.value,
            "Bạn có đơn hàng mới!",
            f"Mã nguồn \"{listing.title}\" vừa được bán. "
            f"Bạn nhận được {xu_to_display(p.seller_earnings)}.",
            p.id,
        )
        await self._notifier.notify(
            p.buyer_id,
            NotificationType.PURCHASE.value,
            "Mua mã nguồn thành công!",
            f"Bạn đã mua \"{listing.title}\" với giá {xu_to_display(p.amount)}.",
            p.id,
        )

    async def list_purchases(
        self, db: AsyncSession, buyer_id: str, page: int, limit: int
    ) -> PurchasePage:
        views, total = await self._purchases.list_by_buyer(
            db, buyer_id, (page - 1) * limit, limit
        )
        return PurchasePage(
            items=[PurchaseItem.from_view(v) for v in views], total=total, page=page, limit=limit
        )

    async def list_sales(
        self, db: AsyncSession, seller_id: str, page: int, limit: int
    ) -> PurchasePage:
        views, total = await self._purchases.list_by_seller(
            db, seller_id, (page - 1) * limit, limit
        )
        return PurchasePage(
            items=[PurchaseItem.from_view(v) for v in views], total=total, page=page, limit=limit
        )
