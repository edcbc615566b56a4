"""Domain models for cm_purchase — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.cm_common.datetime_utils import is_access_valid


@dataclass(frozen=True)
class Purchase:
    """Immutable settlement record; seller_earnings + admin_commission == amount."""

    id: str
    buyer_id: str
    listing_id: str
    seller_id: str
    amount: int
    seller_earnings: int
    admin_commission: int
    access_expires_at: datetime | None    # None = never expires
    created_at: datetime | None = None

    def can_access(self, now: datetime | None = None) -> bool:
        return is_access_valid(self.access_expires_at, now)


@dataclass
class PurchaseView:
    """A purchase joined with its listing title and the counterparty's name."""

    purchase: Purchase
    listing_title: str
    counterparty_name: str
