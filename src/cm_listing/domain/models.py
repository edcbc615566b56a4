"""Domain models for cm_listing — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Listing:
    id: str
    seller_id: str
    title: str
    description: str
    category: str
    price: int                    # xu, >= 0
    source_link: str              # download URL, only shown to entitled users
    tags: list[str] = field(default_factory=list)
    thumbnail_url: str = ""
    demo_url: str | None = None
    purchase_count: int = 0
    view_count: int = 0
    rating_sum: int = 0
    total_ratings: int = 0
    is_active: bool = True
    is_admin_post: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def rating(self) -> float:
        if self.total_ratings == 0:
            return 0.0
        return round(self.rating_sum / self.total_ratings, 2)


@dataclass
class Review:
    id: int
    listing_id: str
    buyer_id: str
    rating: int                   # 1..5
    comment: str
    buyer_name: str | None = None
    created_at: datetime | None = None


@dataclass
class ListingQuery:
    """Browse filters; every field is optional."""

    category: str | None = None
    search: str | None = None
    min_price: int | None = None
    max_price: int | None = None
    seller_id: str | None = None
    active_only: bool = True


@dataclass
class Comment:
    """Public discussion on a listing, open to any signed-in user.

    Replies nest one level: a reply's parent is always a top-level comment.
    """

    id: int
    listing_id: str
    user_id: str
    content: str
    parent_id: int | None = None
    user_name: str | None = None
    created_at: datetime | None = None
    replies: list["Comment"] = field(default_factory=list)
