"""Admin application service — dashboard and user management.

Balance adjustments, listing moderation and payment processing are delegated
to the owning modules' services; this module only adds the admin-only reads.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_account.domain.constants import PLATFORM_FEE_USER_ID
from src.cm_common.enums import UserRole
from src.cm_common.money import xu_to_display
from src.cm_gateway.user.service import UserService

_DASHBOARD_SQL = text("""
    SELECT
        (SELECT COUNT(*) FROM users WHERE role = 'user')                    AS total_users,
        (SELECT COUNT(*) FROM listings)                                      AS total_listings,
        (SELECT COUNT(*) FROM listings WHERE is_active)                      AS active_listings,
        (SELECT COUNT(*) FROM purchases)                                     AS total_purchases,
        (SELECT COALESCE(SUM(amount), 0) FROM purchases)                     AS total_revenue,
        (SELECT COALESCE(SUM(admin_commission), 0) FROM purchases)           AS total_commission,
        (SELECT COUNT(*) FROM payment_requests WHERE status = 'pending')     AS pending_payments,
        (SELECT COALESCE(balance, 0) FROM accounts WHERE user_id = :platform_id)
                                                                             AS platform_balance
""")

_USER_BALANCES_SQL = text(
    "SELECT user_id, balance FROM accounts WHERE user_id = ANY(:user_ids)"
)


class AdminService:
    def __init__(self, users: UserService | None = None) -> None:
        self._users = users or UserService()

    async def get_dashboard_stats(self, db: AsyncSession) -> dict[str, Any]:
        row = (
            await db.execute(_DASHBOARD_SQL, {"platform_id": PLATFORM_FEE_USER_ID})
        ).fetchone()
        if row is None:
            return {}
        platform_balance = int(row.platform_balance or 0)
        return {
            "total_users": int(row.total_users),
            "total_listings": int(row.total_listings),
            "active_listings": int(row.active_listings),
            "total_purchases": int(row.total_purchases),
            "total_revenue": int(row.total_revenue),
            "total_commission": int(row.total_commission),
            "pending_payments": int(row.pending_payments),
            "platform_balance": platform_balance,
            "platform_balance_display": xu_to_display(platform_balance),
        }

    async def list_users(
        self, db: AsyncSession, search: str | None, page: int, limit: int
    ) -> dict[str, Any]:
        users, total = await self._users.list_users(db, search, page, limit)
        balances: dict[str, int] = {}
        if users:
            rows = (
                await db.execute(_USER_BALANCES_SQL, {"user_ids": [u.id for u in users]})
            ).fetchall()
            balances = {r.user_id: int(r.balance) for r in rows}
        return {
            "items": [
                {
                    "user_id": u.id,
                    "email": u.email,
                    "full_name": u.full_name,
                    "role": u.role,
                    "is_active": u.is_active,
                    "balance": balances.get(u.id, 0),
                    "created_at": u.created_at.isoformat() if u.created_at else "",
                }
                for u in users
            ],
            "total": total,
            "page": page,
            "limit": limit,
        }

    async def set_user_active(
        self, db: AsyncSession, user_id: str, is_active: bool
    ) -> dict[str, Any]:
        user = await self._users.set_active(db, user_id, is_active)
        return {
            "user_id": user.id,
            "is_active": user.is_active,
            "is_admin": user.role == UserRole.ADMIN.value,
        }
