"""ListingApplicationService — sell, browse, review and discuss source-code listings.

Ownership rule for writes: the seller or an admin. A listing must name an
active category; the category row is read FOR SHARE so an admin cannot hide
or delete it under a listing being written. Access rule for the
download link: the seller, an admin, or a buyer with unexpired access.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cm_category.domain.repository import CategoryRepositoryProtocol
from src.cm_category.infrastructure.persistence import CategoryRepository
from src.cm_common.datetime_utils import utc_now
from src.cm_common.errors import (
    CommentForbiddenError,
    CommentNotFoundError,
    InvalidAmountError,
    InvalidCategoryError,
    ListingForbiddenError,
    ListingHasPurchasesError,
    ListingNotFoundError,
    ReviewNotAllowedError,
)
from src.cm_common.id_generator import LISTING_PREFIX, generate_id
from src.cm_listing.application.schemas import (
    CommentItem,
    CreateListingRequest,
    ListingDetail,
    ListingPage,
    ListingSummary,
    ReviewItem,
    UpdateListingRequest,
)
from src.cm_listing.domain.models import Listing, ListingQuery
from src.cm_listing.domain.repository import ListingRepositoryProtocol
from src.cm_listing.infrastructure.persistence import ListingRepository
from src.cm_purchase.domain.repository import PurchaseRepositoryProtocol
from src.cm_purchase.infrastructure.persistence import PurchaseRepository

logger = logging.getLogger(__name__)


class ListingApplicationService:
    def __init__(
        self,
        repo: ListingRepositoryProtocol | None = None,
        purchases: PurchaseRepositoryProtocol | None = None,
        categories: CategoryRepositoryProtocol | None = None,
    ) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()
        self._purchases: PurchaseRepositoryProtocol = purchases or PurchaseRepository()
        self._categories: CategoryRepositoryProtocol = categories or CategoryRepository()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_listing(
        self, db: AsyncSession, seller_id: str, is_admin: bool, req: CreateListingRequest
    ) -> ListingDetail:
        _check_price(req.price)
        listing = Listing(
            id=generate_id(LISTING_PREFIX),
            seller_id=seller_id,
            title=req.title,
            description=req.description,
            category=req.category,
            price=req.price,
            source_link=req.source_link,
            tags=req.tags,
            thumbnail_url=req.thumbnail_url,
            demo_url=req.demo_url,
            is_admin_post=is_admin,
        )
        try:
            await self._require_category(db, req.category)
            created = await self._repo.create_listing(db, listing)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Listing %s created by %s at %d xu", created.id, seller_id, created.price)
        return ListingDetail.build(created, has_access=True)

    async def update_listing(
        self,
        db: AsyncSession,
        listing_id: str,
        actor_id: str,
        is_admin: bool,
        req: UpdateListingRequest,
    ) -> ListingDetail:
        patch: dict[str, Any] = req.model_dump(exclude_none=True)
        if "price" in patch:
            _check_price(patch["price"])
        try:
            if "category" in patch:
                await self._require_category(db, patch["category"])
            await self._get_owned(db, listing_id, actor_id, is_admin)
            updated = await self._repo.update_listing(db, listing_id, patch)
            if updated is None:
                raise ListingNotFoundError(listing_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ListingDetail.build(updated, has_access=True)

    async def set_active(
        self, db: AsyncSession, listing_id: str, is_active: bool
    ) -> ListingSummary:
        """Admin toggle; bypasses the ownership check."""
        try:
            updated = await self._repo.update_listing(db, listing_id, {"is_active": is_active})
            if updated is None:
                raise ListingNotFoundError(listing_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ListingSummary.from_domain(updated)

    async def delete_listing(
        self, db: AsyncSession, listing_id: str, actor_id: str, is_admin: bool
    ) -> None:
        try:
            await self._get_owned(db, listing_id, actor_id, is_admin, for_update=True)
            if await self._purchases.count_by_listing(db, listing_id) > 0:
                raise ListingHasPurchasesError(listing_id)
            await self._repo.delete_listing(db, listing_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Listing %s deleted by %s", listing_id, actor_id)

    async def add_review(
        self,
        db: AsyncSession,
        listing_id: str,
        buyer_id: str,
        rating: int,
        comment: str,
    ) -> ReviewItem:
        try:
            listing = await self._repo.get_listing(db, listing_id)
            if listing is None:
                raise ListingNotFoundError(listing_id)
            if not await self._purchases.has_purchased(db, buyer_id, listing_id):
                raise ReviewNotAllowedError("only buyers can review a listing")
            review = await self._repo.add_review(
                db, listing_id, buyer_id, rating, comment.strip()
            )
            if review is None:
                raise ReviewNotAllowedError("listing already reviewed")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ReviewItem.from_domain(review)

    async def add_comment(
        self,
        db: AsyncSession,
        listing_id: str,
        user_id: str,
        content: str,
        parent_id: int | None = None,
    ) -> CommentItem:
        """Any signed-in user may comment. A reply to a reply attaches to the thread root."""
        try:
            listing = await self._repo.get_listing(db, listing_id)
            if listing is None or not listing.is_active:
                raise ListingNotFoundError(listing_id)
            if parent_id is not None:
                parent = await self._repo.get_comment(db, parent_id)
                if parent is None or parent.listing_id != listing_id:
                    raise CommentNotFoundError(parent_id)
                parent_id = parent.parent_id or parent.id
            comment = await self._repo.add_comment(
                db, listing_id, user_id, content.strip(), parent_id
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return CommentItem.from_domain(comment)

    async def delete_comment(
        self,
        db: AsyncSession,
        listing_id: str,
        comment_id: int,
        actor_id: str,
        is_admin: bool,
    ) -> int:
        """Removes the comment and its replies; returns how many rows went."""
        try:
            comment = await self._repo.get_comment(db, comment_id)
            if comment is None or comment.listing_id != listing_id:
                raise CommentNotFoundError(comment_id)
            if comment.user_id != actor_id and not is_admin:
                raise CommentForbiddenError(comment_id)
            removed = await self._repo.delete_comment(db, comment_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Comment %d on %s deleted by %s", comment_id, listing_id, actor_id)
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_detail(
        self,
        db: AsyncSession,
        listing_id: str,
        viewer_id: str | None,
        is_admin: bool = False,
    ) -> ListingDetail:
        """Listing page. Counts a view; hidden listings 404 for everyone but owner/admin."""
        listing = await self._repo.get_listing(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        is_owner = viewer_id is not None and viewer_id == listing.seller_id
        if not listing.is_active and not (is_owner or is_admin):
            raise ListingNotFoundError(listing_id)

        has_access = is_owner or is_admin
        if not has_access and viewer_id is not None:
            active = await self._purchases.find_active_purchase(
                db, viewer_id, listing_id, utc_now()
            )
            has_access = active is not None

        try:
            await self._repo.increment_view_count(db, listing_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        listing.view_count += 1
        return ListingDetail.build(listing, has_access)

    async def browse(
        self,
        db: AsyncSession,
        query: ListingQuery,
        sort: str,
        page: int,
        limit: int,
    ) -> ListingPage:
        listings, total = await self._repo.search_listings(
            db, query, sort, (page - 1) * limit, limit
        )
        return ListingPage(
            items=[ListingSummary.from_domain(x) for x in listings],
            total=total,
            page=page,
            limit=limit,
        )

    async def list_mine(
        self, db: AsyncSession, seller_id: str, sort: str, page: int, limit: int
    ) -> ListingPage:
        query = ListingQuery(seller_id=seller_id, active_only=False)
        return await self.browse(db, query, sort, page, limit)

    async def list_reviews(
        self, db: AsyncSession, listing_id: str, limit: int
    ) -> list[ReviewItem]:
        reviews = await self._repo.list_reviews(db, listing_id, limit)
        return [ReviewItem.from_domain(r) for r in reviews]

    async def list_comments(
        self, db: AsyncSession, listing_id: str, limit: int
    ) -> list[CommentItem]:
        comments = await self._repo.list_comments(db, listing_id, limit)
        return [CommentItem.from_domain(c) for c in comments]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_category(self, db: AsyncSession, slug: str) -> None:
        category = await self._categories.get_by_slug(db, slug, for_share=True)
        if category is None or not category.is_active:
            raise InvalidCategoryError(slug)

    async def _get_owned(
        self,
        db: AsyncSession,
        listing_id: str,
        actor_id: str,
        is_admin: bool,
        for_update: bool = False,
    ) -> Listing:
        listing = await self._repo.get_listing(db, listing_id, for_update=for_update)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        if listing.seller_id != actor_id and not is_admin:
            raise ListingForbiddenError(listing_id)
        return listing


def _check_price(price: int) -> None:
    if price < settings.LISTING_MIN_PRICE:
        raise InvalidAmountError(
            f"listing price must be at least {settings.LISTING_MIN_PRICE} xu"
        )
