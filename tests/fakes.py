"""In-memory stand-ins for the PostgreSQL repositories.

FakeSession records an undo action for every write so rollback() restores
the exact pre-transaction state, like a real transaction would. The account
fake implements the same compare-and-swap contract as AccountRepository,
and can yield to the event loop between read and write to force races. With
interleave=True the listing fake also takes a real per-row lock on
``for_update`` reads, held by the session until commit or rollback.
"""

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from itertools import count
from typing import Any

from src.cm_account.domain.models import Account, LedgerEntry
from src.cm_common.enums import PaymentStatus
from src.cm_category.domain.models import Category
from src.cm_listing.domain.models import Comment, Listing, ListingQuery, Review
from src.cm_notification.domain.models import Notification
from src.cm_payment.domain.models import PaymentRequest
from src.cm_purchase.domain.models import Purchase, PurchaseView


class FakeSession:
    def __init__(self) -> None:
        self._undo: list[Callable[[], None]] = []
        self._locks: list[asyncio.Lock] = []
        self.commits = 0
        self.rollbacks = 0

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def hold(self, lock: asyncio.Lock) -> None:
        """Keep a row lock until the transaction ends."""
        self._locks.append(lock)

    def _release(self) -> None:
        while self._locks:
            self._locks.pop().release()

    async def commit(self) -> None:
        self._undo.clear()
        self._release()
        self.commits += 1

    async def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()
        self._release()
        self.rollbacks += 1


class InMemoryAccountRepository:
    def __init__(self, balances: dict[str, int] | None = None, interleave: bool = False) -> None:
        self.accounts: dict[str, Account] = {
            uid: Account(id=f"acc-{uid}", user_id=uid, balance=bal, version=0)
            for uid, bal in (balances or {}).items()
        }
        self.entries: list[LedgerEntry] = []
        self.broken_accounts: set[str] = set()
        self.cas_conflicts = 0
        self._interleave = interleave
        self._ids = count(1)

    def balance(self, user_id: str) -> int:
        return self.accounts[user_id].balance

    async def create_account(self, db: FakeSession, user_id: str) -> Account:
        self.accounts[user_id] = Account(id=f"acc-{user_id}", user_id=user_id, balance=0, version=0)
        db.record(lambda: self.accounts.pop(user_id, None))
        return replace(self.accounts[user_id])

    async def get_account_by_user_id(self, db: FakeSession, user_id: str) -> Account | None:
        account = self.accounts.get(user_id)
        if self._interleave:
            await asyncio.sleep(0)
        return replace(account) if account else None

    async def update_account_balance(
        self, db: FakeSession, user_id: str, new_balance: int, expected_balance: int
    ) -> Account | None:
        if user_id in self.broken_accounts:
            raise RuntimeError(f"simulated write failure on {user_id}")
        current = self.accounts.get(user_id)
        if current is None or current.balance != expected_balance:
            self.cas_conflicts += 1
            return None
        if new_balance < 0:
            raise RuntimeError("ck_accounts_balance_gte_0 violated")
        return self._shift(db, user_id, new_balance - expected_balance)

    async def increment_account_balance(
        self, db: FakeSession, user_id: str, delta: int
    ) -> Account | None:
        if user_id in self.broken_accounts:
            raise RuntimeError(f"simulated write failure on {user_id}")
        if self._interleave:
            await asyncio.sleep(0)
        if user_id not in self.accounts:
            return None
        return self._shift(db, user_id, delta)

    def _shift(self, db: FakeSession, user_id: str, delta: int) -> Account:
        # Undo is relative so rolling back one writer keeps other writers' changes
        current = self.accounts[user_id]
        self.accounts[user_id] = replace(
            current, balance=current.balance + delta, version=current.version + 1
        )

        def undo() -> None:
            account = self.accounts[user_id]
            self.accounts[user_id] = replace(account, balance=account.balance - delta)

        db.record(undo)
        return replace(self.accounts[user_id])

    async def insert_ledger_entry(
        self,
        db: FakeSession,
        user_id: str,
        entry_type: str,
        amount: int,
        balance_after: int,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            id=next(self._ids),
            user_id=user_id,
            entry_type=entry_type,
            amount=amount,
            balance_after=balance_after,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
        self.entries.append(entry)
        db.record(lambda: self.entries.remove(entry))
        return entry

    async def list_ledger_entries(
        self,
        db: FakeSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        rows = [
            e for e in reversed(self.entries)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
        ]
        return rows[:limit]


class InMemoryListingRepository:
    def __init__(self, *listings: Listing, interleave: bool = False) -> None:
        self.listings: dict[str, Listing] = {x.id: x for x in listings}
        self.locked: list[str] = []
        self.reviews: list[Review] = []
        self.comments: list[Comment] = []
        self._interleave = interleave
        self._row_locks: dict[str, asyncio.Lock] = {}

    async def get_listing(
        self, db: FakeSession, listing_id: str, for_update: bool = False
    ) -> Listing | None:
        if for_update:
            self.locked.append(listing_id)
            if self._interleave:
                # FOR UPDATE: blocks until the holder commits or rolls back
                lock = self._row_locks.setdefault(listing_id, asyncio.Lock())
                await lock.acquire()
                db.hold(lock)
        if self._interleave:
            await asyncio.sleep(0)
        listing = self.listings.get(listing_id)
        return replace(listing) if listing else None

    async def increment_purchase_count(self, db: FakeSession, listing_id: str) -> None:
        listing = self.listings[listing_id]
        listing.purchase_count += 1

        def undo() -> None:
            listing.purchase_count -= 1

        db.record(undo)

    async def update_listing(
        self, db: FakeSession, listing_id: str, patch: dict[str, Any]
    ) -> Listing | None:
        listing = self.listings.get(listing_id)
        if listing is None:
            return None
        before = replace(listing)
        for key, value in patch.items():
            setattr(listing, key, value)
        db.record(lambda: self.listings.__setitem__(listing_id, before))
        return replace(listing)

    async def create_listing(self, db: FakeSession, listing: Listing) -> Listing:
        self.listings[listing.id] = listing
        return replace(listing)

    async def increment_view_count(self, db: FakeSession, listing_id: str) -> None:
        self.listings[listing_id].view_count += 1

    async def delete_listing(self, db: FakeSession, listing_id: str) -> bool:
        return self.listings.pop(listing_id, None) is not None

    async def search_listings(
        self, db: FakeSession, query: ListingQuery, sort: str, offset: int, limit: int
    ) -> tuple[list[Listing], int]:
        rows = [x for x in self.listings.values() if x.is_active or not query.active_only]
        return rows[offset:offset + limit], len(rows)

    async def add_review(
        self, db: FakeSession, listing_id: str, buyer_id: str, rating: int, comment: str
    ) -> Review | None:
        if any(r.listing_id == listing_id and r.buyer_id == buyer_id for r in self.reviews):
            return None
        review = Review(
            id=len(self.reviews) + 1,
            listing_id=listing_id,
            buyer_id=buyer_id,
            rating=rating,
            comment=comment,
        )
        self.reviews.append(review)
        return review

    async def list_reviews(self, db: FakeSession, listing_id: str, limit: int) -> list[Review]:
        return [r for r in self.reviews if r.listing_id == listing_id][:limit]

    async def add_comment(
        self,
        db: FakeSession,
        listing_id: str,
        user_id: str,
        content: str,
        parent_id: int | None,
    ) -> Comment:
        comment = Comment(
            id=len(self.comments) + 1,
            listing_id=listing_id,
            user_id=user_id,
            content=content,
            parent_id=parent_id,
            created_at=datetime(2026, 1, 1, 0, 0, len(self.comments)),
        )
        self.comments.append(comment)
        return replace(comment)

    async def get_comment(self, db: FakeSession, comment_id: int) -> Comment | None:
        found = next((c for c in self.comments if c.id == comment_id), None)
        return replace(found) if found else None

    async def list_comments(
        self, db: FakeSession, listing_id: str, limit: int
    ) -> list[Comment]:
        own = [c for c in self.comments if c.listing_id == listing_id]
        top = [replace(c, replies=[]) for c in reversed(own) if c.parent_id is None][:limit]
        for root in top:
            root.replies = [replace(c) for c in own if c.parent_id == root.id]
        return top

    async def delete_comment(self, db: FakeSession, comment_id: int) -> int:
        gone = [c for c in self.comments if comment_id in (c.id, c.parent_id)]
        self.comments = [c for c in self.comments if c not in gone]
        return len(gone)


class InMemoryPurchaseRepository:
    def __init__(self) -> None:
        self.purchases: list[Purchase] = []
        self.fail_on_create = False

    async def create_purchase(self, db: FakeSession, purchase: Purchase) -> Purchase:
        if self.fail_on_create:
            raise RuntimeError("simulated insert failure")
        self.purchases.append(purchase)
        db.record(lambda: self.purchases.remove(purchase))
        return purchase

    async def find_active_purchase(
        self, db: FakeSession, buyer_id: str, listing_id: str, now: datetime
    ) -> Purchase | None:
        for p in reversed(self.purchases):
            if p.buyer_id == buyer_id and p.listing_id == listing_id and p.can_access(now):
                return p
        return None

    async def has_purchased(self, db: FakeSession, buyer_id: str, listing_id: str) -> bool:
        return any(p.buyer_id == buyer_id and p.listing_id == listing_id for p in self.purchases)

    async def count_by_listing(self, db: FakeSession, listing_id: str) -> int:
        return sum(1 for p in self.purchases if p.listing_id == listing_id)

    async def list_by_buyer(
        self, db: FakeSession, buyer_id: str, offset: int, limit: int
    ) -> tuple[list[PurchaseView], int]:
        rows = [
            PurchaseView(purchase=p, listing_title="", counterparty_name="")
            for p in self.purchases if p.buyer_id == buyer_id
        ]
        return rows[offset:offset + limit], len(rows)

    async def list_by_seller(
        self, db: FakeSession, seller_id: str, offset: int, limit: int
    ) -> tuple[list[PurchaseView], int]:
        rows = [
            PurchaseView(purchase=p, listing_title="", counterparty_name="")
            for p in self.purchases if p.seller_id == seller_id
        ]
        return rows[offset:offset + limit], len(rows)


class InMemoryPaymentRepository:
    def __init__(self) -> None:
        self.requests: dict[str, PaymentRequest] = {}

    async def create_payment_request(
        self, db: FakeSession, request: PaymentRequest
    ) -> PaymentRequest:
        self.requests[request.id] = request
        db.record(lambda: self.requests.pop(request.id, None))
        return replace(request)

    async def get_payment_request(
        self, db: FakeSession, request_id: str
    ) -> PaymentRequest | None:
        request = self.requests.get(request_id)
        return replace(request) if request else None

    async def transition_pending(
        self,
        db: FakeSession,
        request_id: str,
        new_status: str,
        admin_id: str,
        admin_note: str | None,
        processed_at: datetime,
    ) -> PaymentRequest | None:
        current = self.requests.get(request_id)
        if current is None or current.status != PaymentStatus.PENDING.value:
            return None
        self.requests[request_id] = replace(
            current,
            status=new_status,
            processed_by=admin_id,
            admin_note=admin_note,
            processed_at=processed_at,
        )
        db.record(lambda: self.requests.__setitem__(request_id, current))
        return replace(self.requests[request_id])

    async def list_by_user(
        self, db: FakeSession, user_id: str, type: str | None, offset: int, limit: int
    ) -> tuple[list[PaymentRequest], int]:
        rows = [
            replace(r) for r in self.requests.values()
            if r.user_id == user_id and (type is None or r.type == type)
        ]
        return rows[offset:offset + limit], len(rows)


class InMemoryNotificationRepository:
    def __init__(self) -> None:
        self.notifications: dict[int, Notification] = {}
        self._ids = count(1)

    async def create_notification(
        self,
        db: FakeSession,
        user_id: str,
        type: str,
        title: str,
        message: str,
        related_id: str | None,
    ) -> Notification:
        n = Notification(
            id=next(self._ids),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_id=related_id,
        )
        self.notifications[n.id] = n
        return replace(n)

    def _owned(self, user_id: str) -> list[Notification]:
        return [n for n in self.notifications.values() if n.user_id == user_id]

    async def list_notifications(
        self,
        db: FakeSession,
        user_id: str,
        is_read: bool | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Notification]:
        rows = [
            replace(n) for n in sorted(self._owned(user_id), key=lambda n: -n.id)
            if (is_read is None or n.is_read == is_read)
            and (cursor_id is None or n.id < cursor_id)
        ]
        return rows[:limit]

    async def count_unread(self, db: FakeSession, user_id: str) -> int:
        return sum(1 for n in self._owned(user_id) if not n.is_read)

    async def set_read(
        self, db: FakeSession, user_id: str, notification_id: int, is_read: bool
    ) -> Notification | None:
        n = self.notifications.get(notification_id)
        if n is None or n.user_id != user_id:
            return None
        n.is_read = is_read
        return replace(n)

    async def mark_all_read(self, db: FakeSession, user_id: str) -> int:
        unread = [n for n in self._owned(user_id) if not n.is_read]
        for n in unread:
            n.is_read = True
        return len(unread)

    async def delete_notification(
        self, db: FakeSession, user_id: str, notification_id: int
    ) -> bool:
        n = self.notifications.get(notification_id)
        if n is None or n.user_id != user_id:
            return False
        del self.notifications[notification_id]
        return True

    async def delete_read(self, db: FakeSession, user_id: str) -> int:
        read = [n.id for n in self._owned(user_id) if n.is_read]
        for nid in read:
            del self.notifications[nid]
        return len(read)


class InMemoryCategoryRepository:
    def __init__(self, *categories: Category) -> None:
        self.categories: dict[int, Category] = {c.id: c for c in categories}
        self.listing_counts: dict[str, int] = {}
        self.share_locked: list[str] = []
        self._ids = count(max(self.categories, default=0) + 1)

    def _clash(self, name: str | None = None, slug: str | None = None) -> bool:
        return any(
            c.slug == slug or (name is not None and c.name.lower() == name.lower())
            for c in self.categories.values()
        )

    async def create_category(
        self, db: FakeSession, name: str, slug: str, description: str, icon: str
    ) -> Category | None:
        if self._clash(name, slug):
            return None
        category = Category(
            id=next(self._ids), name=name, slug=slug, description=description, icon=icon
        )
        self.categories[category.id] = category
        return replace(category)

    async def get_category(
        self, db: FakeSession, category_id: int, for_update: bool = False
    ) -> Category | None:
        found = self.categories.get(category_id)
        return replace(found) if found else None

    async def get_by_slug(
        self, db: FakeSession, slug: str, for_share: bool = False
    ) -> Category | None:
        if for_share:
            self.share_locked.append(slug)
        found = next((c for c in self.categories.values() if c.slug == slug), None)
        return replace(found) if found else None

    async def get_by_name(self, db: FakeSession, name: str) -> Category | None:
        found = next(
            (c for c in self.categories.values() if c.name.lower() == name.lower()), None
        )
        return replace(found) if found else None

    async def list_categories(self, db: FakeSession, active_only: bool) -> list[Category]:
        rows = [
            replace(c, listing_count=self.listing_counts.get(c.slug, 0))
            for c in self.categories.values()
            if c.is_active or not active_only
        ]
        return sorted(rows, key=lambda c: c.name)

    async def update_category(
        self, db: FakeSession, category_id: int, patch: dict[str, Any]
    ) -> Category | None:
        category = self.categories.get(category_id)
        if category is None:
            return None
        for key, value in patch.items():
            setattr(category, key, value)
        return replace(category)

    async def delete_category(self, db: FakeSession, category_id: int) -> bool:
        return self.categories.pop(category_id, None) is not None

    async def count_listings(self, db: FakeSession, slug: str) -> int:
        return self.listing_counts.get(slug, 0)
