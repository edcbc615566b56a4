"""Pydantic schemas for cm_purchase API."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.cm_common.money import xu_to_display
from src.cm_purchase.domain.models import PurchaseView
from src.cm_purchase.domain.settlement import SettlementResult


class PurchaseRequest(BaseModel):
    listing_id: str = Field(..., min_length=1, max_length=64)
    expected_price: int = Field(..., ge=0, description="Price the buyer saw, in xu")


class PurchaseResponse(BaseModel):
    purchase_id: str
    listing_id: str
    amount: int
    amount_display: str
    balance_after: int | None
    access_expires_at: str | None
    source_link: str

    @classmethod
    def from_result(cls, result: SettlementResult) -> "PurchaseResponse":
        p = result.purchase
        return cls(
            purchase_id=p.id,
            listing_id=p.listing_id,
            amount=p.amount,
            amount_display=xu_to_display(p.amount),
            balance_after=result.buyer_balance,
            access_expires_at=_iso(p.access_expires_at),
            source_link=result.listing.source_link,
        )


class PurchaseItem(BaseModel):
    purchase_id: str
    listing_id: str
    listing_title: str
    counterparty_name: str   # seller for a purchase, buyer for a sale
    amount: int
    amount_display: str
    seller_earnings: int
    admin_commission: int
    access_expires_at: str | None
    can_access: bool
    created_at: str

    @classmethod
    def from_view(cls, v: PurchaseView) -> "PurchaseItem":
        p = v.purchase
        return cls(
            purchase_id=p.id,
            listing_id=p.listing_id,
            listing_title=v.listing_title,
            counterparty_name=v.counterparty_name,
            amount=p.amount,
            amount_display=xu_to_display(p.amount),
            seller_earnings=p.seller_earnings,
            admin_commission=p.admin_commission,
            access_expires_at=_iso(p.access_expires_at),
            can_access=p.can_access(),
            created_at=_iso(p.created_at) or "",
        )


class PurchasePage(BaseModel):
    items: list[PurchaseItem]
    total: int
    page: int
    limit: int


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None
