"""Pydantic schemas for cm_listing API."""

from pydantic import BaseModel, Field, field_validator

from src.cm_common.money import xu_to_display
from src.cm_listing.domain.models import Comment, Listing, Review

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


def _clean_tags(tags: list[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class CreateListingRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=10_000)
    category: str = Field(..., min_length=1, max_length=64)
    price: int = Field(..., ge=0, description="Price in xu")
    source_link: str = Field(..., min_length=1, max_length=1000)
    tags: list[str] = Field(default_factory=list, max_length=20)
    thumbnail_url: str = Field("", max_length=1000)
    demo_url: str | None = Field(None, max_length=1000)

    @field_validator("title", "description", "source_link")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)

    @field_validator("category")
    @classmethod
    def normalize_category(cls, v: str) -> str:
        return v.strip().lower()


class UpdateListingRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, min_length=10, max_length=10_000)
    category: str | None = Field(None, min_length=1, max_length=64)
    price: int | None = Field(None, ge=0)
    source_link: str | None = Field(None, min_length=1, max_length=1000)
    tags: list[str] | None = Field(None, max_length=20)
    thumbnail_url: str | None = Field(None, max_length=1000)
    demo_url: str | None = Field(None, max_length=1000)
    is_active: bool | None = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tags(v) if v is not None else None

    @field_validator("category")
    @classmethod
    def normalize_category(cls, v: str | None) -> str | None:
        return v.strip().lower() if v is not None else None


class ReviewRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=2000)


class CommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    parent_id: int | None = Field(None, description="Comment being replied to")

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ListingSummary(BaseModel):
    id: str
    seller_id: str
    title: str
    category: str
    tags: list[str]
    price: int
    price_display: str
    thumbnail_url: str
    purchase_count: int
    view_count: int
    rating: float
    total_ratings: int
    is_active: bool
    is_admin_post: bool
    created_at: str

    @classmethod
    def from_domain(cls, listing: Listing) -> "ListingSummary":
        return cls(
            id=listing.id,
            seller_id=listing.seller_id,
            title=listing.title,
            category=listing.category,
            tags=listing.tags,
            price=listing.price,
            price_display=xu_to_display(listing.price),
            thumbnail_url=listing.thumbnail_url,
            purchase_count=listing.purchase_count,
            view_count=listing.view_count,
            rating=listing.rating,
            total_ratings=listing.total_ratings,
            is_active=listing.is_active,
            is_admin_post=listing.is_admin_post,
            created_at=listing.created_at.isoformat() if listing.created_at else "",
        )


class ListingDetail(ListingSummary):
    description: str
    demo_url: str | None
    has_access: bool
    source_link: str | None   # only for the seller, an admin, or a buyer with access

    @classmethod
    def build(cls, listing: Listing, has_access: bool) -> "ListingDetail":
        summary = ListingSummary.from_domain(listing)
        return cls(
            **summary.model_dump(),
            description=listing.description,
            demo_url=listing.demo_url,
            has_access=has_access,
            source_link=listing.source_link if has_access else None,
        )


class ListingPage(BaseModel):
    items: list[ListingSummary]
    total: int
    page: int
    limit: int


class ReviewItem(BaseModel):
    id: int
    buyer_id: str
    buyer_name: str | None
    rating: int
    comment: str
    created_at: str

    @classmethod
    def from_domain(cls, r: Review) -> "ReviewItem":
        return cls(
            id=r.id,
            buyer_id=r.buyer_id,
            buyer_name=r.buyer_name,
            rating=r.rating,
            comment=r.comment,
            created_at=r.created_at.isoformat() if r.created_at else "",
        )


class CommentItem(BaseModel):
    id: int
    user_id: str
    user_name: str | None
    content: str
    parent_id: int | None
    created_at: str
    replies: list["CommentItem"] = []

    @classmethod
    def from_domain(cls, c: Comment) -> "CommentItem":
        return cls(
            id=c.id,
            user_id=c.user_id,
            user_name=c.user_name,
            content=c.content,
            parent_id=c.parent_id,
            created_at=c.created_at.isoformat() if c.created_at else "",
            replies=[cls.from_domain(r) for r in c.replies],
        )
