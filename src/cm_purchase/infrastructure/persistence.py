"""PurchaseRepository — concrete implementation of PurchaseRepositoryProtocol.

Purchase rows are append-only: there is no UPDATE or DELETE here.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_common.errors import InternalError
from src.cm_purchase.domain.models import Purchase, PurchaseView

_PURCHASE_COLUMNS = """
    p.id, p.buyer_id, p.listing_id, p.seller_id, p.amount, p.seller_earnings,
    p.admin_commission, p.access_expires_at, p.created_at
"""

_INSERT_PURCHASE_SQL = text("""
    INSERT INTO purchases
        (id, buyer_id, listing_id, seller_id, amount, seller_earnings,
         admin_commission, access_expires_at)
    VALUES
        (:id, :buyer_id, :listing_id, :seller_id, :amount, :seller_earnings,
         :admin_commission, :access_expires_at)
    RETURNING id, buyer_id, listing_id, seller_id, amount, seller_earnings,
              admin_commission, access_expires_at, created_at
""")

_FIND_ACTIVE_SQL = text(f"""
    SELECT {_PURCHASE_COLUMNS}
    FROM purchases p
    WHERE p.buyer_id = :buyer_id
      AND p.listing_id = :listing_id
      AND (p.access_expires_at IS NULL OR p.access_expires_at > :now)
    ORDER BY p.created_at DESC
    LIMIT 1
""")

_HAS_PURCHASED_SQL = text("""
    SELECT EXISTS (
        SELECT 1 FROM purchases WHERE buyer_id = :buyer_id AND listing_id = :listing_id
    )
""")

_COUNT_BY_LISTING_SQL = text("SELECT COUNT(*) FROM purchases WHERE listing_id = :listing_id")

_LIST_BY_BUYER_SQL = text(f"""
    SELECT {_PURCHASE_COLUMNS},
           l.title AS listing_title,
           u.full_name AS counterparty_name
    FROM purchases p
    JOIN listings l ON l.id = p.listing_id
    JOIN users u ON u.id = p.seller_id
    WHERE p.buyer_id = :user_id
    ORDER BY p.created_at DESC, p.id DESC
    OFFSET :offset
    LIMIT :limit
""")

_COUNT_BY_BUYER_SQL = text("SELECT COUNT(*) FROM purchases WHERE buyer_id = :user_id")

_LIST_BY_SELLER_SQL = text(f"""
    SELECT {_PURCHASE_COLUMNS},
           l.title AS listing_title,
           u.full_name AS counterparty_name
    FROM purchases p
    JOIN listings l ON l.id = p.listing_id
    JOIN users u ON u.id = p.buyer_id
    WHERE p.seller_id = :user_id
    ORDER BY p.created_at DESC, p.id DESC
    OFFSET :offset
    LIMIT :limit
""")

_COUNT_BY_SELLER_SQL = text("SELECT COUNT(*) FROM purchases WHERE seller_id = :user_id")


def _row_to_purchase(row: object) -> Purchase:
    return Purchase(
        id=row.id,  # type: ignore[attr-defined]
        buyer_id=row.buyer_id,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        seller_earnings=row.seller_earnings,  # type: ignore[attr-defined]
        admin_commission=row.admin_commission,  # type: ignore[attr-defined]
        access_expires_at=row.access_expires_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_view(row: object) -> PurchaseView:
    return PurchaseView(
        purchase=_row_to_purchase(row),
        listing_title=row.listing_title,  # type: ignore[attr-defined]
        counterparty_name=row.counterparty_name,  # type: ignore[attr-defined]
    )


class PurchaseRepository:
    async def create_purchase(self, db: AsyncSession, purchase: Purchase) -> Purchase:
        result = await db.execute(
            _INSERT_PURCHASE_SQL,
            {
                "id": purchase.id,
                "buyer_id": purchase.buyer_id,
                "listing_id": purchase.listing_id,
                "seller_id": purchase.seller_id,
                "amount": purchase.amount,
                "seller_earnings": purchase.seller_earnings,
                "admin_commission": purchase.admin_commission,
                "access_expires_at": purchase.access_expires_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Purchase insert returned no rows")
        return _row_to_purchase(row)

    async def find_active_purchase(
        self, db: AsyncSession, buyer_id: str, listing_id: str, now: datetime
    ) -> Purchase | None:
        row = (
            await db.execute(
                _FIND_ACTIVE_SQL,
                {"buyer_id": buyer_id, "listing_id": listing_id, "now": now},
            )
        ).fetchone()
        return _row_to_purchase(row) if row else None

    async def has_purchased(self, db: AsyncSession, buyer_id: str, listing_id: str) -> bool:
        result = await db.execute(
            _HAS_PURCHASED_SQL, {"buyer_id": buyer_id, "listing_id": listing_id}
        )
        return bool(result.scalar_one())

    async def count_by_listing(self, db: AsyncSession, listing_id: str) -> int:
        result = await db.execute(_COUNT_BY_LISTING_SQL, {"listing_id": listing_id})
        return int(result.scalar_one())

    async def list_by_buyer(
        self, db: AsyncSession, buyer_id: str, offset: int, limit: int
    ) -> tuple[list[PurchaseView], int]:
        return await self._list(
            db, _LIST_BY_BUYER_SQL, _COUNT_BY_BUYER_SQL, buyer_id, offset, limit
        )

    async def list_by_seller(
        self, db: AsyncSession, seller_id: str, offset: int, limit: int
    ) -> tuple[list[PurchaseView], int]:
        return await self._list(
            db, _LIST_BY_SELLER_SQL, _COUNT_BY_SELLER_SQL, seller_id, offset, limit
        )

    async def _list(
        self, db: AsyncSession, list_sql, count_sql, user_id: str, offset: int, limit: int
    ) -> tuple[list[PurchaseView], int]:
        rows = (
            await db.execute(list_sql, {"user_id": user_id, "offset": offset, "limit": limit})
        ).fetchall()
        total = (await db.execute(count_sql, {"user_id": user_id})).scalar_one()
        return [_row_to_view(r) for r in rows], int(total)
