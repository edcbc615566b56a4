"""CategoryRepository — raw text() SQL over the `categories` table.

Listings reference a category by slug (listings.category); there is no
foreign key, so deletion checks the listing count under a row lock.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_category.domain.models import Category

_COLUMNS = "c.id, c.name, c.slug, c.description, c.icon, c.is_active, c.created_at, c.updated_at"

_INSERT_SQL = text(f"""
    INSERT INTO categories AS c (name, slug, description, icon)
    VALUES (:name, :slug, :description, :icon)
    ON CONFLICT DO NOTHING
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM categories c WHERE c.id = :category_id")
_GET_FOR_UPDATE_SQL = text(
    f"SELECT {_COLUMNS} FROM categories c WHERE c.id = :category_id FOR UPDATE"
)
_GET_BY_SLUG_SQL = text(f"SELECT {_COLUMNS} FROM categories c WHERE c.slug = :slug")
_GET_BY_SLUG_FOR_SHARE_SQL = text(
    f"SELECT {_COLUMNS} FROM categories c WHERE c.slug = :slug FOR SHARE"
)
_GET_BY_NAME_SQL = text(f"SELECT {_COLUMNS} FROM categories c WHERE lower(c.name) = lower(:name)")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS}, COUNT(l.id) AS listing_count
    FROM categories c
    LEFT JOIN listings l ON l.category = c.slug
    WHERE (NOT CAST(:active_only AS BOOLEAN) OR c.is_active)
    GROUP BY c.id
    ORDER BY c.name ASC
""")

_DELETE_SQL = text("DELETE FROM categories WHERE id = :category_id RETURNING id")

_COUNT_LISTINGS_SQL = text("SELECT COUNT(*) FROM listings WHERE category = :slug")

UPDATABLE_COLUMNS = frozenset({"name", "description", "icon", "is_active"})


def _row_to_category(row: object) -> Category:
    return Category(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        slug=row.slug,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        icon=row.icon,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        listing_count=int(getattr(row, "listing_count", 0) or 0),
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class CategoryRepository:
    async def create_category(
        self, db: AsyncSession, name: str, slug: str, description: str, icon: str
    ) -> Category | None:
        row = (
            await db.execute(
                _INSERT_SQL,
                {"name": name, "slug": slug, "description": description, "icon": icon},
            )
        ).fetchone()
        return _row_to_category(row) if row else None

    async def get_category(
        self, db: AsyncSession, category_id: int, for_update: bool = False
    ) -> Category | None:
        sql = _GET_FOR_UPDATE_SQL if for_update else _GET_SQL
        row = (await db.execute(sql, {"category_id": category_id})).fetchone()
        return _row_to_category(row) if row else None

    async def get_by_slug(
        self, db: AsyncSession, slug: str, for_share: bool = False
    ) -> Category | None:
        sql = _GET_BY_SLUG_FOR_SHARE_SQL if for_share else _GET_BY_SLUG_SQL
        row = (await db.execute(sql, {"slug": slug})).fetchone()
        return _row_to_category(row) if row else None

    async def get_by_name(self, db: AsyncSession, name: str) -> Category | None:
        row = (await db.execute(_GET_BY_NAME_SQL, {"name": name})).fetchone()
        return _row_to_category(row) if row else None

    async def list_categories(self, db: AsyncSession, active_only: bool) -> list[Category]:
        rows = (await db.execute(_LIST_SQL, {"active_only": active_only})).fetchall()
        return [_row_to_category(r) for r in rows]

    async def update_category(
        self, db: AsyncSession, category_id: int, patch: dict[str, Any]
    ) -> Category | None:
        unknown = set(patch) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update category columns: {sorted(unknown)}")
        if not patch:
            return await self.get_category(db, category_id)

        # Column names come from the whitelist above
        assignments = ", ".join(f"{col} = :{col}" for col in sorted(patch))
        sql = text(f"""
            UPDATE categories AS c
            SET {assignments}, updated_at = NOW()
            WHERE c.id = :category_id
            RETURNING {_COLUMNS}
        """)
        row = (await db.execute(sql, {**patch, "category_id": category_id})).fetchone()
        return _row_to_category(row) if row else None

    async def delete_category(self, db: AsyncSession, category_id: int) -> bool:
        row = (await db.execute(_DELETE_SQL, {"category_id": category_id})).fetchone()
        return row is not None

    async def count_listings(self, db: AsyncSession, slug: str) -> int:
        return int((await db.execute(_COUNT_LISTINGS_SQL, {"slug": slug})).scalar_one())
