"""Repository Protocol for listings and reviews."""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_listing.domain.models import Comment, Listing, ListingQuery, Review


class ListingRepositoryProtocol(Protocol):
    async def create_listing(self, db: AsyncSession, listing: Listing) -> Listing: ...

    async def get_listing(
        self, db: AsyncSession, listing_id: str, for_update: bool = False
    ) -> Listing | None: ...

    async def update_listing(
        self, db: AsyncSession, listing_id: str, patch: dict[str, Any]
    ) -> Listing | None: ...

    async def increment_purchase_count(self, db: AsyncSession, listing_id: str) -> None: ...

    async def increment_view_count(self, db: AsyncSession, listing_id: str) -> None: ...

    async def delete_listing(self, db: AsyncSession, listing_id: str) -> bool: ...

    async def search_listings(
        self,
        db: AsyncSession,
        query: ListingQuery,
        sort: str,
        offset: int,
        limit: int,
    ) -> tuple[list[Listing], int]: ...

    async def add_review(
        self,
        db: AsyncSession,
        listing_id: str,
        buyer_id: str,
        rating: int,
        comment: str,
    ) -> Review | None:
        """Insert a review and fold it into the listing's rating aggregates.

        Returns None when the buyer already reviewed this listing.
        """
        ...

    async def list_reviews(
        self, db: AsyncSession, listing_id: str, limit: int
    ) -> list[Review]: ...

    async def add_comment(
        self,
        db: AsyncSession,
        listing_id: str,
        user_id: str,
        content: str,
        parent_id: int | None,
    ) -> Comment: ...

    async def get_comment(self, db: AsyncSession, comment_id: int) -> Comment | None: ...

    async def list_comments(
        self, db: AsyncSession, listing_id: str, limit: int
    ) -> list[Comment]:
        """Newest top-level comments, each with its replies oldest first."""
        ...

    async def delete_comment(self, db: AsyncSession, comment_id: int) -> int:
        """Delete a comment and its replies; returns the number of rows removed."""
        ...
