"""Unit tests for ListingApplicationService — ownership, link visibility, deletion guard."""

from datetime import timedelta

import pytest

from src.cm_category.domain.models import Category
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
from src.cm_listing.application.schemas import CreateListingRequest, UpdateListingRequest
from src.cm_listing.application.service import ListingApplicationService
from src.cm_listing.domain.models import Listing
from src.cm_purchase.domain.models import Purchase
from tests.fakes import (
    FakeSession,
    InMemoryCategoryRepository,
    InMemoryListingRepository,
    InMemoryPurchaseRepository,
)


def _listing(is_active: bool = True) -> Listing:
    return Listing(
        id="SC1",
        seller_id="seller",
        title="Booking system",
        description="Hotel booking system with admin panel",
        category="web",
        price=50_000,
        source_link="https://example.com/booking.zip",
        is_active=is_active,
    )


def _purchase(expires_in_hours: int | None = None) -> Purchase:
    expires = utc_now() + timedelta(hours=expires_in_hours) if expires_in_hours is not None else None
    return Purchase(
        id="PUR1",
        buyer_id="buyer",
        listing_id="SC1",
        seller_id="seller",
        amount=50_000,
        seller_earnings=40_000,
        admin_commission=10_000,
        access_expires_at=expires,
    )


def _catalog() -> InMemoryCategoryRepository:
    return InMemoryCategoryRepository(
        Category(id=1, name="Web", slug="web", description="", icon=""),
        Category(id=2, name="Mobile", slug="mobile", description="", icon=""),
        Category(id=3, name="Tools", slug="tools", description="", icon=""),
        Category(id=4, name="Retired", slug="flash", description="", icon="", is_active=False),
    )


def _build(*listings: Listing, categories: InMemoryCategoryRepository | None = None):  # type: ignore[no-untyped-def]
    repo = InMemoryListingRepository(*listings)
    purchases = InMemoryPurchaseRepository()
    svc = ListingApplicationService(repo, purchases, categories or _catalog())
    return svc, repo, purchases


class TestCreate:
    async def test_create_normalizes_and_returns_link_to_seller(self) -> None:
        svc, repo, _ = _build()
        req = CreateListingRequest(
            title="  Chat app  ",
            description="Realtime chat with websockets",
            category="mobile",
            price=20_000,
            source_link="https://example.com/chat.zip",
            tags=["Flutter", "flutter ", "Firebase", ""],
        )
        db = FakeSession()

        detail = await svc.create_listing(db, "seller", False, req)

        assert detail.id.startswith("SC")
        assert detail.title == "Chat app"
        assert detail.tags == ["flutter", "firebase"]
        assert detail.source_link == "https://example.com/chat.zip"
        assert detail.is_admin_post is False
        assert db.commits == 1
        assert detail.id in repo.listings

    async def test_price_below_minimum_rejected(self) -> None:
        svc, repo, _ = _build()
        req = CreateListingRequest(
            title="Tiny script",
            description="Just a tiny helper script",
            category="tools",
            price=999,
            source_link="https://example.com/t.zip",
        )

        with pytest.raises(InvalidAmountError):
            await svc.create_listing(FakeSession(), "seller", False, req)

        assert repo.listings == {}


class TestUpdate:
    async def test_owner_updates_price(self) -> None:
        svc, repo, _ = _build(_listing())

        detail = await svc.update_listing(
            FakeSession(), "SC1", "seller", False, UpdateListingRequest(price=60_000)
        )

        assert detail.price == 60_000
        assert repo.listings["SC1"].title == "Booking system"

    async def test_stranger_forbidden(self) -> None:
        svc, repo, _ = _build(_listing())
        db = FakeSession()

        with pytest.raises(ListingForbiddenError):
            await svc.update_listing(db, "SC1", "stranger", False, UpdateListingRequest(price=1_000))

        assert db.rollbacks == 1
        assert repo.listings["SC1"].price == 50_000

    async def test_admin_may_update_any_listing(self) -> None:
        svc, _, _ = _build(_listing())
        detail = await svc.update_listing(
            FakeSession(), "SC1", "admin1", True, UpdateListingRequest(is_active=False)
        )
        assert detail.is_active is False

    async def test_admin_toggle_unknown_listing(self) -> None:
        svc, _, _ = _build()
        with pytest.raises(ListingNotFoundError):
            await svc.set_active(FakeSession(), "SC404", False)


class TestDelete:
    async def test_delete_without_purchases(self) -> None:
        svc, repo, _ = _build(_listing())
        await svc.delete_listing(FakeSession(), "SC1", "seller", False)
        assert repo.listings == {}
        assert repo.locked == ["SC1"]

    async def test_delete_blocked_once_sold(self) -> None:
        svc, repo, purchases = _build(_listing())
        purchases.purchases.append(_purchase())

        with pytest.raises(ListingHasPurchasesError):
            await svc.delete_listing(FakeSession(), "SC1", "admin1", True)

        assert "SC1" in repo.listings


class TestDetail:
    async def test_anonymous_viewer_gets_no_link(self) -> None:
        svc, repo, _ = _build(_listing())

        detail = await svc.get_detail(FakeSession(), "SC1", None)

        assert detail.has_access is False
        assert detail.source_link is None
        assert detail.view_count == 1
        assert repo.listings["SC1"].view_count == 1

    async def test_buyer_with_access_gets_link(self) -> None:
        svc, _, purchases = _build(_listing())
        purchases.purchases.append(_purchase())

        detail = await svc.get_detail(FakeSession(), "SC1", "buyer")

        assert detail.has_access is True
        assert detail.source_link == "https://example.com/booking.zip"

    async def test_expired_access_hides_link(self) -> None:
        svc, _, purchases = _build(_listing())
        purchases.purchases.append(_purchase(expires_in_hours=-1))

        detail = await svc.get_detail(FakeSession(), "SC1", "buyer")

        assert detail.source_link is None

    async def test_seller_sees_own_link(self) -> None:
        svc, _, _ = _build(_listing())
        detail = await svc.get_detail(FakeSession(), "SC1", "seller")
        assert detail.source_link is not None

    async def test_hidden_listing_is_not_found_for_public(self) -> None:
        svc, _, _ = _build(_listing(is_active=False))
        with pytest.raises(ListingNotFoundError):
            await svc.get_detail(FakeSession(), "SC1", "buyer")

    async def test_hidden_listing_visible_to_admin(self) -> None:
        svc, _, _ = _build(_listing(is_active=False))
        detail = await svc.get_detail(FakeSession(), "SC1", "admin1", is_admin=True)
        assert detail.is_active is False


class TestReviews:
    async def test_buyer_can_review_once(self) -> None:
        svc, _, purchases = _build(_listing())
        purchases.purchases.append(_purchase())

        review = await svc.add_review(FakeSession(), "SC1", "buyer", 5, "  Great code  ")

        assert review.rating == 5
        assert review.comment == "Great code"
        with pytest.raises(ReviewNotAllowedError, match="already reviewed"):
            await svc.add_review(FakeSession(), "SC1", "buyer", 4, "again")

    async def test_non_buyer_cannot_review(self) -> None:
        svc, repo, _ = _build(_listing())

        with pytest.raises(ReviewNotAllowedError, match="only buyers"):
            await svc.add_review(FakeSession(), "SC1", "stranger", 1, "spam")

        assert repo.reviews == []


class TestCategoryCheck:
    def _request(self, category: str) -> CreateListingRequest:
        return CreateListingRequest(
            title="Chat app",
            description="Realtime chat with websockets",
            category=category,
            price=20_000,
            source_link="https://example.com/chat.zip",
        )

    async def test_category_is_normalized_and_share_locked(self) -> None:
        catalog = _catalog()
        svc, _, _ = _build(categories=catalog)

        detail = await svc.create_listing(FakeSession(), "seller", False, self._request(" Mobile "))

        assert detail.category == "mobile"
        assert catalog.share_locked == ["mobile"]

    @pytest.mark.parametrize("slug", ["flash", "blockchain"])
    async def test_inactive_or_unknown_category_rejected(self, slug: str) -> None:
        svc, repo, _ = _build()
        db = FakeSession()

        with pytest.raises(InvalidCategoryError):
            await svc.create_listing(db, "seller", False, self._request(slug))

        assert repo.listings == {}
        assert db.rollbacks == 1

    async def test_update_to_inactive_category_rejected(self) -> None:
        svc, repo, _ = _build(_listing())

        with pytest.raises(InvalidCategoryError):
            await svc.update_listing(
                FakeSession(), "SC1", "seller", False, UpdateListingRequest(category="flash")
            )

        assert repo.listings["SC1"].category == "web"

    async def test_update_without_category_skips_check(self) -> None:
        catalog = _catalog()
        svc, _, _ = _build(_listing(), categories=catalog)

        await svc.update_listing(
            FakeSession(), "SC1", "seller", False, UpdateListingRequest(price=60_000)
        )

        assert catalog.share_locked == []


class TestComments:
    async def test_anyone_signed_in_may_comment(self) -> None:
        svc, repo, _ = _build(_listing())
        db = FakeSession()

        item = await svc.add_comment(db, "SC1", "stranger", "  Does it support MySQL?  ")

        assert item.content == "Does it support MySQL?"
        assert item.parent_id is None
        assert db.commits == 1
        assert repo.reviews == []

    async def test_reply_to_reply_attaches_to_thread_root(self) -> None:
        svc, _, _ = _build(_listing())
        root = await svc.add_comment(FakeSession(), "SC1", "buyer", "Question")
        reply = await svc.add_comment(FakeSession(), "SC1", "seller", "Answer", root.id)

        nested = await svc.add_comment(FakeSession(), "SC1", "buyer", "Thanks", reply.id)

        assert reply.parent_id == root.id
        assert nested.parent_id == root.id
        threads = await svc.list_comments(FakeSession(), "SC1", 20)
        assert [t.id for t in threads] == [root.id]
        assert [r.content for r in threads[0].replies] == ["Answer", "Thanks"]

    async def test_newest_thread_first(self) -> None:
        svc, _, _ = _build(_listing())
        await svc.add_comment(FakeSession(), "SC1", "a", "first")
        await svc.add_comment(FakeSession(), "SC1", "b", "second")

        threads = await svc.list_comments(FakeSession(), "SC1", 20)

        assert [t.content for t in threads] == ["second", "first"]

    async def test_parent_on_other_listing_rejected(self) -> None:
        other = _listing()
        other.id = "SC2"
        svc, repo, _ = _build(_listing(), other)
        root = await svc.add_comment(FakeSession(), "SC2", "buyer", "Elsewhere")

        with pytest.raises(CommentNotFoundError):
            await svc.add_comment(FakeSession(), "SC1", "buyer", "Reply", root.id)

        assert len(repo.comments) == 1

    async def test_hidden_listing_takes_no_comments(self) -> None:
        svc, _, _ = _build(_listing(is_active=False))
        with pytest.raises(ListingNotFoundError):
            await svc.add_comment(FakeSession(), "SC1", "buyer", "Hello")

    async def test_author_deletes_thread_with_replies(self) -> None:
        svc, repo, _ = _build(_listing())
        root = await svc.add_comment(FakeSession(), "SC1", "buyer", "Question")
        await svc.add_comment(FakeSession(), "SC1", "seller", "Answer", root.id)

        removed = await svc.delete_comment(FakeSession(), "SC1", root.id, "buyer", False)

        assert removed == 2
        assert repo.comments == []

    async def test_stranger_cannot_delete_but_admin_can(self) -> None:
        svc, repo, _ = _build(_listing())
        root = await svc.add_comment(FakeSession(), "SC1", "buyer", "Question")
        db = FakeSession()

        with pytest.raises(CommentForbiddenError):
            await svc.delete_comment(db, "SC1", root.id, "stranger", False)

        assert db.rollbacks == 1
        assert len(repo.comments) == 1
        assert await svc.delete_comment(FakeSession(), "SC1", root.id, "admin1", True) == 1

    async def test_delete_through_wrong_listing_is_not_found(self) -> None:
        svc, _, _ = _build(_listing())
        root = await svc.add_comment(FakeSession(), "SC1", "buyer", "Question")
        with pytest.raises(CommentNotFoundError):
            await svc.delete_comment(FakeSession(), "SC9", root.id, "buyer", False)
