"""Purchase settlement — move funds and grant access for one purchase.

Runs inside the caller's transaction and never commits:

  1. lock the listing row (FOR UPDATE) and validate it: exists, active,
     price unchanged, not the buyer's own listing, not already owned
  2. debit the buyer the full price
  3. split: seller gets floor(price * share_bps / 10000), platform the rest
  4. credit the seller and the PLATFORM_FEE account
  5. bump the listing's purchase counter
  6. insert the immutable purchase record

The listing lock serializes concurrent purchases of the same listing, so
the "already owned" check cannot be raced by a double submit. Only the
buyer's debit can contend; both credits are relative writes, so purchases
that share nothing but the PLATFORM_FEE account never fail on each other.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cm_account.domain.constants import PLATFORM_FEE_USER_ID
from src.cm_account.domain.ledger import AccountLedger
from src.cm_common.datetime_utils import access_expiry, utc_now
from src.cm_common.enums import LedgerEntryType
from src.cm_common.errors import (
    InvalidPurchaseError,
    ListingNotFoundError,
    ListingUnavailableError,
    PriceMismatchError,
)
from src.cm_common.id_generator import PURCHASE_PREFIX, generate_id
from src.cm_common.money import split_amount
from src.cm_listing.domain.models import Listing
from src.cm_listing.domain.repository import ListingRepositoryProtocol
from src.cm_purchase.domain.models import Purchase
from src.cm_purchase.domain.repository import PurchaseRepositoryProtocol

logger = logging.getLogger(__name__)

_REF_TYPE = "PURCHASE"
_USE_SETTINGS = object()


@dataclass
class SettlementResult:
    purchase: Purchase
    listing: Listing
    buyer_balance: int | None     # None when the listing was free
    seller_balance: int | None


class PurchaseSettlement:
    def __init__(
        self,
        ledger: AccountLedger,
        listings: ListingRepositoryProtocol,
        purchases: PurchaseRepositoryProtocol,
        seller_share_bps: int | None = None,
        access_hours: int | None | object = _USE_SETTINGS,
    ) -> None:
        self._ledger = ledger
        self._listings = listings
        self._purchases = purchases
        self._seller_share_bps = (
            settings.SELLER_SHARE_BPS if seller_share_bps is None else seller_share_bps
        )
        self._access_hours = (
            settings.PURCHASE_ACCESS_HOURS if access_hours is _USE_SETTINGS else access_hours
        )

    async def settle(
        self,
        db: AsyncSession,
        buyer_id: str,
        listing_id: str,
        expected_price: int,
        now: datetime | None = None,
    ) -> SettlementResult:
        now = now or utc_now()
        listing = await self._listings.get_listing(db, listing_id, for_update=True)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        if not listing.is_active:
            raise ListingUnavailableError(listing_id)
        if expected_price != listing.price:
            raise PriceMismatchError(expected_price, listing.price)
        if buyer_id == listing.seller_id:
            raise InvalidPurchaseError("cannot buy your own listing")
        if await self._purchases.find_active_purchase(db, buyer_id, listing_id, now):
            raise InvalidPurchaseError("listing already purchased")

        purchase_id = generate_id(PURCHASE_PREFIX)
        price = listing.price
        seller_earnings, commission = split_amount(price, self._seller_share_bps)

        buyer_balance: int | None = None
        seller_balance: int | None = None
        if price > 0:
            buyer, _ = await self._ledger.debit(
                db, buyer_id, price, LedgerEntryType.PURCHASE_PAYMENT.value,
                _REF_TYPE, purchase_id, f"Mua mã nguồn: {listing.title}",
            )
            buyer_balance = buyer.balance
        if seller_earnings > 0:
            seller, _ = await self._ledger.credit(
                db, listing.seller_id, seller_earnings, LedgerEntryType.SALE_EARNING.value,
                _REF_TYPE, purchase_id, f"Bán mã nguồn: {listing.title}",
            )
            seller_balance = seller.balance
        if commission > 0:
            await self._ledger.credit(
                db, PLATFORM_FEE_USER_ID, commission,
                LedgerEntryType.PLATFORM_COMMISSION.value,
                _REF_TYPE, purchase_id, f"Hoa hồng: {listing.id}",
            )

        await self._listings.increment_purchase_count(db, listing_id)
        purchase = await self._purchases.create_purchase(
            db,
            Purchase(
                id=purchase_id,
                buyer_id=buyer_id,
                listing_id=listing_id,
                seller_id=listing.seller_id,
                amount=price,
                seller_earnings=seller_earnings,
                admin_commission=commission,
                access_expires_at=access_expiry(now, self._access_hours),
            ),
        )
        logger.debug(
            "Settled %s: buyer=%s seller=%s amount=%d earnings=%d commission=%d",
            purchase_id, buyer_id, listing.seller_id, price, seller_earnings, commission,
        )
        return SettlementResult(
            purchase=purchase,
            listing=listing,
            buyer_balance=buyer_balance,
            seller_balance=seller_balance,
        )
