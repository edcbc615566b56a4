"""ListingRepository — concrete implementation of ListingRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_common.database import contains_pattern
from src.cm_common.enums import ListingSort
from src.cm_common.errors import InternalError
from src.cm_listing.domain.models import Comment, Listing, ListingQuery, Review

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_LISTING_COLUMNS = """
    id, seller_id, title, description, category, tags, price, source_link,
    thumbnail_url, demo_url, purchase_count, view_count, rating_sum,
    total_ratings, is_active, is_admin_post, created_at, updated_at
"""

_INSERT_LISTING_SQL = text(f"""
    INSERT INTO listings
        (id, seller_id, title, description, category, tags, price, source_link,
         thumbnail_url, demo_url, is_active, is_admin_post)
    VALUES
        (:id, :seller_id, :title, :description, :category, :tags, :price, :source_link,
         :thumbnail_url, :demo_url, :is_active, :is_admin_post)
    RETURNING {_LISTING_COLUMNS}
""")

_GET_LISTING_SQL = text(f"SELECT {_LISTING_COLUMNS} FROM listings WHERE id = :listing_id")

# Row lock held until commit: price and active flag cannot change mid-settlement
_GET_LISTING_FOR_UPDATE_SQL = text(
    f"SELECT {_LISTING_COLUMNS} FROM listings WHERE id = :listing_id FOR UPDATE"
)

_INC_PURCHASES_SQL = text("""
    UPDATE listings
    SET purchase_count = purchase_count + 1, updated_at = NOW()
    WHERE id = :listing_id
""")

_INC_VIEWS_SQL = text("UPDATE listings SET view_count = view_count + 1 WHERE id = :listing_id")

_DELETE_LISTING_SQL = text("DELETE FROM listings WHERE id = :listing_id RETURNING id")

_DELETE_LISTING_COMMENTS_SQL = text("DELETE FROM comments WHERE listing_id = :listing_id")

_SEARCH_WHERE = """
    WHERE (NOT CAST(:active_only AS BOOLEAN) OR is_active)
      AND (CAST(:category AS TEXT) IS NULL OR category = CAST(:category AS TEXT))
      AND (CAST(:seller_id AS TEXT) IS NULL OR seller_id = CAST(:seller_id AS TEXT))
      AND (CAST(:min_price AS BIGINT) IS NULL OR price >= CAST(:min_price AS BIGINT))
      AND (CAST(:max_price AS BIGINT) IS NULL OR price <= CAST(:max_price AS BIGINT))
      AND (
          CAST(:pattern AS TEXT) IS NULL
          OR title ILIKE CAST(:pattern AS TEXT) ESCAPE '\\'
          OR description ILIKE CAST(:pattern AS TEXT) ESCAPE '\\'
          OR CAST(:search AS TEXT) = ANY(tags)
      )
"""

_ORDER_BY = {
    ListingSort.NEWEST.value: "created_at DESC, id DESC",
    ListingSort.PRICE_ASC.value: "price ASC, id DESC",
    ListingSort.PRICE_DESC.value: "price DESC, id DESC",
    ListingSort.POPULAR.value: "purchase_count DESC, view_count DESC, id DESC",
    ListingSort.RATING.value: (
        "CASE WHEN total_ratings = 0 THEN 0 "
        "ELSE rating_sum::float / total_ratings END DESC, total_ratings DESC, id DESC"
    ),
}

_COUNT_SQL = text(f"SELECT COUNT(*) FROM listings {_SEARCH_WHERE}")

_INSERT_REVIEW_SQL = text("""
    INSERT INTO reviews (listing_id, buyer_id, rating, comment)
    VALUES (:listing_id, :buyer_id, :rating, :comment)
    ON CONFLICT (listing_id, buyer_id) DO NOTHING
    RETURNING id, listing_id, buyer_id, rating, comment, created_at
""")

_FOLD_RATING_SQL = text("""
    UPDATE listings
    SET rating_sum = rating_sum + :rating,
        total_ratings = total_ratings + 1,
        updated_at = NOW()
    WHERE id = :listing_id
""")

_LIST_REVIEWS_SQL = text("""
    SELECT r.id, r.listing_id, r.buyer_id, r.rating, r.comment, r.created_at,
           u.full_name AS buyer_name
    FROM reviews r
    JOIN users u ON u.id = r.buyer_id
    WHERE r.listing_id = :listing_id
    ORDER BY r.created_at DESC, r.id DESC
    LIMIT :limit
""")

_COMMENT_COLUMNS = "c.id, c.listing_id, c.user_id, c.parent_id, c.content, c.created_at"

_INSERT_COMMENT_SQL = text(f"""
    INSERT INTO comments AS c (listing_id, user_id, parent_id, content)
    VALUES (:listing_id, :user_id, :parent_id, :content)
    RETURNING {_COMMENT_COLUMNS}
""")

_GET_COMMENT_SQL = text(f"SELECT {_COMMENT_COLUMNS} FROM comments c WHERE c.id = :comment_id")

_LIST_TOP_COMMENTS_SQL = text(f"""
    SELECT {_COMMENT_COLUMNS}, u.full_name AS user_name
    FROM comments c
    LEFT JOIN users u ON u.id = c.user_id
    WHERE c.listing_id = :listing_id AND c.parent_id IS NULL
    ORDER BY c.created_at DESC, c.id DESC
    LIMIT :limit
""")

_LIST_REPLIES_SQL = text(f"""
    SELECT {_COMMENT_COLUMNS}, u.full_name AS user_name
    FROM comments c
    LEFT JOIN users u ON u.id = c.user_id
    WHERE c.parent_id = ANY(:parent_ids)
    ORDER BY c.created_at ASC, c.id ASC
""")

_DELETE_COMMENT_SQL = text(
    "DELETE FROM comments WHERE id = :comment_id OR parent_id = :comment_id RETURNING id"
)

# Columns an owner or admin may patch; anything else is rejected
UPDATABLE_COLUMNS = frozenset({
    "title", "description", "category", "tags", "price", "source_link",
    "thumbnail_url", "demo_url", "is_active",
})

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_listing(row: object) -> Listing:
    return Listing(
        id=row.id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        tags=list(row.tags or []),  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        source_link=row.source_link,  # type: ignore[attr-defined]
        thumbnail_url=row.thumbnail_url,  # type: ignore[attr-defined]
        demo_url=row.demo_url,  # type: ignore[attr-defined]
        purchase_count=row.purchase_count,  # type: ignore[attr-defined]
        view_count=row.view_count,  # type: ignore[attr-defined]
        rating_sum=row.rating_sum,  # type: ignore[attr-defined]
        total_ratings=row.total_ratings,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        is_admin_post=row.is_admin_post,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_review(row: object) -> Review:
    return Review(
        id=row.id,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        buyer_id=row.buyer_id,  # type: ignore[attr-defined]
        rating=row.rating,  # type: ignore[attr-defined]
        comment=row.comment,  # type: ignore[attr-defined]
        buyer_name=getattr(row, "buyer_name", None),
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_comment(row: object) -> Comment:
    return Comment(
        id=row.id,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        parent_id=row.parent_id,  # type: ignore[attr-defined]
        content=row.content,  # type: ignore[attr-defined]
        user_name=getattr(row, "user_name", None),
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _search_params(query: ListingQuery) -> dict[str, Any]:
    search = query.search.strip() if query.search else None
    return {
        "active_only": query.active_only,
        "category": query.category,
        "seller_id": query.seller_id,
        "min_price": query.min_price,
        "max_price": query.max_price,
        "search": search or None,
        "pattern": contains_pattern(search) if search else None,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ListingRepository:
    async def create_listing(self, db: AsyncSession, listing: Listing) -> Listing:
        result = await db.execute(
            _INSERT_LISTING_SQL,
            {
                "id": listing.id,
                "seller_id": listing.seller_id,
                "title": listing.title,
                "description": listing.description,
                "category": listing.category,
                "tags": listing.tags,
                "price": listing.price,
                "source_link": listing.source_link,
                "thumbnail_url": listing.thumbnail_url,
                "demo_url": listing.demo_url,
                "is_active": listing.is_active,
                "is_admin_post": listing.is_admin_post,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Listing insert returned no rows")
        return _row_to_listing(row)

    async def get_listing(
        self, db: AsyncSession, listing_id: str, for_update: bool = False
    ) -> Listing | None:
        sql = _GET_LISTING_FOR_UPDATE_SQL if for_update else _GET_LISTING_SQL
        row = (await db.execute(sql, {"listing_id": listing_id})).fetchone()
        return _row_to_listing(row) if row else None

    async def update_listing(
        self, db: AsyncSession, listing_id: str, patch: dict[str, Any]
    ) -> Listing | None:
        unknown = set(patch) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update listing columns: {sorted(unknown)}")
        if not patch:
            return await self.get_listing(db, listing_id)

        # Column names come from the whitelist above, values are bound parameters
        assignments = ", ".join(f"{col} = :{col}" for col in sorted(patch))
        sql = text(f"""
            UPDATE listings
            SET {assignments}, updated_at = NOW()
            WHERE id = :listing_id
            RETURNING {_LISTING_COLUMNS}
        """)
        row = (await db.execute(sql, {**patch, "listing_id": listing_id})).fetchone()
        return _row_to_listing(row) if row else None

    async def increment_purchase_count(self, db: AsyncSession, listing_id: str) -> None:
        await db.execute(_INC_PURCHASES_SQL, {"listing_id": listing_id})

    async def increment_view_count(self, db: AsyncSession, listing_id: str) -> None:
        await db.execute(_INC_VIEWS_SQL, {"listing_id": listing_id})

    async def delete_listing(self, db: AsyncSession, listing_id: str) -> bool:
        row = (await db.execute(_DELETE_LISTING_SQL, {"listing_id": listing_id})).fetchone()
        if row is None:
            return False
        await db.execute(_DELETE_LISTING_COMMENTS_SQL, {"listing_id": listing_id})
        return True

    async def search_listings(
        self,
        db: AsyncSession,
        query: ListingQuery,
        sort: str,
        offset: int,
        limit: int,
    ) -> tuple[list[Listing], int]:
        order_by = _ORDER_BY.get(sort, _ORDER_BY[ListingSort.NEWEST.value])
        params = _search_params(query)
        list_sql = text(f"""
            SELECT {_LISTING_COLUMNS}
            FROM listings
            {_SEARCH_WHERE}
            ORDER BY {order_by}
            OFFSET :offset
            LIMIT :limit
        """)
        rows = (
            await db.execute(list_sql, {**params, "offset": offset, "limit": limit})
        ).fetchall()
        total = (await db.execute(_COUNT_SQL, params)).scalar_one()
        return [_row_to_listing(r) for r in rows], int(total)

    async def add_review(
        self,
        db: AsyncSession,
        listing_id: str,
        buyer_id: str,
        rating: int,
        comment: str,
    ) -> Review | None:
        row = (
            await db.execute(
                _INSERT_REVIEW_SQL,
                {
                    "listing_id": listing_id,
                    "buyer_id": buyer_id,
                    "rating": rating,
                    "comment": comment,
                },
            )
        ).fetchone()
        if row is None:
            return None
        await db.execute(_FOLD_RATING_SQL, {"listing_id": listing_id, "rating": rating})
        return _row_to_review(row)

    async def list_reviews(
        self, db: AsyncSession, listing_id: str, limit: int
    ) -> list[Review]:
        rows = (
            await db.execute(_LIST_REVIEWS_SQL, {"listing_id": listing_id, "limit": limit})
        ).fetchall()
        return [_row_to_review(r) for r in rows]

    async def add_comment(
        self,
        db: AsyncSession,
        listing_id: str,
        user_id: str,
        content: str,
        parent_id: int | None,
    ) -> Comment:
        row = (
            await db.execute(
                _INSERT_COMMENT_SQL,
                {
                    "listing_id": listing_id,
                    "user_id": user_id,
                    "parent_id": parent_id,
                    "content": content,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Comment insert returned no rows")
        return _row_to_comment(row)

    async def get_comment(self, db: AsyncSession, comment_id: int) -> Comment | None:
        row = (await db.execute(_GET_COMMENT_SQL, {"comment_id": comment_id})).fetchone()
        return _row_to_comment(row) if row else None

    async def list_comments(
        self, db: AsyncSession, listing_id: str, limit: int
    ) -> list[Comment]:
        rows = (
            await db.execute(_LIST_TOP_COMMENTS_SQL, {"listing_id": listing_id, "limit": limit})
        ).fetchall()
        top = [_row_to_comment(r) for r in rows]
        if not top:
            return top
        by_id = {c.id: c for c in top}
        replies = (
            await db.execute(_LIST_REPLIES_SQL, {"parent_ids": list(by_id)})
        ).fetchall()
        for r in replies:
            by_id[r.parent_id].replies.append(_row_to_comment(r))
        return top

    async def delete_comment(self, db: AsyncSession, comment_id: int) -> int:
        rows = (await db.execute(_DELETE_COMMENT_SQL, {"comment_id": comment_id})).fetchall()
        return len(rows)
