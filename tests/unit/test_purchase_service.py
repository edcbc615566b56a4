"""Unit tests for PurchaseApplicationService — commit boundary and notifications."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.cm_account.domain.constants import PLATFORM_FEE_USER_ID
from src.cm_account.domain.ledger import AccountLedger
from src.cm_common.enums import NotificationType
from src.cm_common.errors import InsufficientBalanceError
from src.cm_listing.domain.models import Listing
from src.cm_notification.domain.dispatch import NotificationDispatcher
from src.cm_purchase.application.schemas import PurchaseResponse
from src.cm_purchase.application.service import PurchaseApplicationService
from src.cm_purchase.domain.settlement import PurchaseSettlement
from tests.fakes import (
    FakeSession,
    InMemoryAccountRepository,
    InMemoryListingRepository,
    InMemoryPurchaseRepository,
)


def _build(buyer_balance: int = 1000, notifier: object | None = None):  # type: ignore[no-untyped-def]
    accounts = InMemoryAccountRepository(
        {"buyer": buyer_balance, "seller": 0, PLATFORM_FEE_USER_ID: 0}
    )
    listings = InMemoryListingRepository(
        Listing(
            id="SC1",
            seller_id="seller",
            title="Chat app",
            description="Realtime chat source code",
            category="mobile",
            price=500,
            source_link="https://example.com/chat.zip",
        )
    )
    purchases = InMemoryPurchaseRepository()
    settlement = PurchaseSettlement(
        AccountLedger(accounts), listings, purchases, seller_share_bps=8000, access_hours=None
    )
    notifier = notifier or AsyncMock()
    svc = PurchaseApplicationService(
        settlement=settlement, purchases=purchases, listings=listings, notifier=notifier
    )
    return svc, accounts, purchases, notifier


class TestSettlePurchase:
    async def test_commits_once_and_returns_download_link(self) -> None:
        svc, accounts, _, _ = _build()
        db = FakeSession()

        result = await svc.settle_purchase(db, "buyer", "SC1", 500)

        assert isinstance(result, PurchaseResponse)
        assert result.amount == 500
        assert result.balance_after == 500
        assert result.amount_display == "500 xu"
        assert result.source_link == "https://example.com/chat.zip"
        assert result.access_expires_at is None
        assert db.commits == 1
        assert db.rollbacks == 0

    async def test_notifies_seller_then_buyer_after_commit(self) -> None:
        svc, _, _, notifier = _build()

        result = await svc.settle_purchase(FakeSession(), "buyer", "SC1", 500)

        calls = notifier.notify.await_args_list
        assert [c.args[0] for c in calls] == ["seller", "buyer"]
        assert calls[0].args[1] == NotificationType.SALE.value
        assert calls[1].args[1] == NotificationType.PURCHASE.value
        assert calls[1].args[2] == "Mua mã nguồn thành công!"
        assert "400 xu" in calls[0].args[3]
        assert all(c.args[4] == result.purchase_id for c in calls)

    async def test_failed_settlement_rolls_back_and_sends_nothing(self) -> None:
        svc, accounts, purchases, notifier = _build(buyer_balance=100)
        db = FakeSession()

        with pytest.raises(InsufficientBalanceError):
            await svc.settle_purchase(db, "buyer", "SC1", 500)

        assert db.rollbacks == 1
        assert db.commits == 0
        assert accounts.balance("buyer") == 100
        assert purchases.purchases == []
        notifier.notify.assert_not_awaited()

    async def test_notification_failure_does_not_fail_purchase(self) -> None:
        broken_factory = MagicMock(side_effect=RuntimeError("notifications table gone"))
        dispatcher = NotificationDispatcher(session_factory=broken_factory)  # type: ignore[arg-type]
        svc, accounts, purchases, _ = _build(notifier=dispatcher)

        result = await svc.settle_purchase(FakeSession(), "buyer", "SC1", 500)

        assert result.amount == 500
        assert accounts.balance("buyer") == 500
        assert len(purchases.purchases) == 1


class TestListings:
    async def test_list_purchases_pages_by_offset(self) -> None:
        svc, _, _, _ = _build(buyer_balance=1000)
        await svc.settle_purchase(FakeSession(), "buyer", "SC1", 500)

        page = await svc.list_purchases(FakeSession(), "buyer", page=1, limit=10)

        assert page.total == 1
        assert page.items[0].can_access is True
        assert page.items[0].seller_earnings == 400

    async def test_list_sales_for_seller(self) -> None:
        svc, _, _, _ = _build()
        await svc.settle_purchase(FakeSession(), "buyer", "SC1", 500)

        page = await svc.list_sales(FakeSession(), "seller", page=1, limit=10)

        assert page.total == 1
        assert page.items[0].admin_commission == 100
