"""PaymentRepository — concrete implementation of PaymentRepositoryProtocol.

asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_common.enums import PaymentSort
from src.cm_common.errors import InternalError
from src.cm_payment.domain.models import (
    BankInfo,
    PaymentRequest,
    PaymentRequestView,
    PaymentStats,
)

_COLUMNS = """
    id, user_id, type, amount, status, bank_account_name, bank_account_number,
    bank_name, note, admin_note, processed_by, processed_at, created_at
"""

_INSERT_SQL = text(f"""
    INSERT INTO payment_requests
        (id, user_id, type, amount, status, bank_account_name,
         bank_account_number, bank_name, note)
    VALUES
        (:id, :user_id, :type, :amount, :status, :bank_account_name,
         :bank_account_number, :bank_name, :note)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM payment_requests WHERE id = :id")

# Single-statement CAS on status: only one caller can ever see a row returned
_TRANSITION_SQL = text(f"""
    UPDATE payment_requests
    SET status = :new_status,
        processed_by = :admin_id,
        processed_at = :processed_at,
        admin_note = :admin_note,
        updated_at = NOW()
    WHERE id = :id AND status = 'pending'
    RETURNING {_COLUMNS}
""")

_USER_WHERE = """
    WHERE user_id = :user_id
      AND (CAST(:type AS TEXT) IS NULL OR type = CAST(:type AS TEXT))
"""

_LIST_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM payment_requests
    {_USER_WHERE}
    ORDER BY created_at DESC, id DESC
    OFFSET :offset
    LIMIT :limit
""")

_COUNT_BY_USER_SQL = text(f"SELECT COUNT(*) FROM payment_requests {_USER_WHERE}")

_ADMIN_WHERE = """
    WHERE (CAST(:type AS TEXT) IS NULL OR p.type = CAST(:type AS TEXT))
      AND (CAST(:status AS TEXT) IS NULL OR p.status = CAST(:status AS TEXT))
"""

_ADMIN_ORDER_BY = {
    PaymentSort.NEWEST.value: "p.created_at DESC, p.id DESC",
    PaymentSort.OLDEST.value: "p.created_at ASC, p.id ASC",
    PaymentSort.AMOUNT.value: "p.amount DESC, p.created_at DESC",
}

_ADMIN_COUNT_SQL = text(f"SELECT COUNT(*) FROM payment_requests p {_ADMIN_WHERE}")

_STATS_SQL = text("""
    SELECT
        COUNT(*) FILTER (WHERE type = 'deposit' AND status = 'pending')    AS pending_deposits,
        COUNT(*) FILTER (WHERE type = 'withdrawal' AND status = 'pending') AS pending_withdrawals,
        COALESCE(SUM(amount) FILTER (WHERE type = 'deposit' AND status = 'approved'), 0)
            AS approved_deposit_total,
        COALESCE(SUM(amount) FILTER (WHERE type = 'withdrawal' AND status = 'approved'), 0)
            AS approved_withdrawal_total
    FROM payment_requests
""")


def _row_to_request(row: object) -> PaymentRequest:
    bank_info = None
    if row.bank_account_number:  # type: ignore[attr-defined]
        bank_info = BankInfo(
            account_name=row.bank_account_name,  # type: ignore[attr-defined]
            account_number=row.bank_account_number,  # type: ignore[attr-defined]
            bank_name=row.bank_name,  # type: ignore[attr-defined]
        )
    return PaymentRequest(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        bank_info=bank_info,
        note=row.note,  # type: ignore[attr-defined]
        admin_note=row.admin_note,  # type: ignore[attr-defined]
        processed_by=row.processed_by,  # type: ignore[attr-defined]
        processed_at=row.processed_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class PaymentRepository:
    async def create_payment_request(
        self, db: AsyncSession, request: PaymentRequest
    ) -> PaymentRequest:
        bank = request.bank_info
        result = await db.execute(
            _INSERT_SQL,
            {
                "id": request.id,
                "user_id": request.user_id,
                "type": request.type,
                "amount": request.amount,
                "status": request.status,
                "bank_account_name": bank.account_name if bank else None,
                "bank_account_number": bank.account_number if bank else None,
                "bank_name": bank.bank_name if bank else None,
                "note": request.note,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Payment request insert returned no rows")
        return _row_to_request(row)

    async def get_payment_request(
        self, db: AsyncSession, request_id: str
    ) -> PaymentRequest | None:
        row = (await db.execute(_GET_SQL, {"id": request_id})).fetchone()
        return _row_to_request(row) if row else None

    async def transition_pending(
        self,
        db: AsyncSession,
        request_id: str,
        new_status: str,
        admin_id: str,
        admin_note: str | None,
        processed_at: datetime,
    ) -> PaymentRequest | None:
        row = (
            await db.execute(
                _TRANSITION_SQL,
                {
                    "id": request_id,
                    "new_status": new_status,
                    "admin_id": admin_id,
                    "admin_note": admin_note,
                    "processed_at": processed_at,
                },
            )
        ).fetchone()
        return _row_to_request(row) if row else None

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        type: str | None,
        offset: int,
        limit: int,
    ) -> tuple[list[PaymentRequest], int]:
        params = {"user_id": user_id, "type": type}
        rows = (
            await db.execute(_LIST_BY_USER_SQL, {**params, "offset": offset, "limit": limit})
        ).fetchall()
        total = (await db.execute(_COUNT_BY_USER_SQL, params)).scalar_one()
        return [_row_to_request(r) for r in rows], int(total)

    async def list_requests(
        self,
        db: AsyncSession,
        type: str | None,
        status: str | None,
        sort: str,
        offset: int,
        limit: int,
    ) -> tuple[list[PaymentRequestView], int]:
        order_by = _ADMIN_ORDER_BY.get(sort, _ADMIN_ORDER_BY[PaymentSort.NEWEST.value])
        prefixed = ", ".join(f"p.{c.strip()}" for c in _COLUMNS.split(","))
        sql = text(f"""
            SELECT {prefixed}, u.email AS user_email, u.full_name AS user_name
            FROM payment_requests p
            JOIN users u ON u.id = p.user_id
            {_ADMIN_WHERE}
            ORDER BY {order_by}
            OFFSET :offset
            LIMIT :limit
        """)
        params = {"type": type, "status": status}
        rows = (await db.execute(sql, {**params, "offset": offset, "limit": limit})).fetchall()
        total = (await db.execute(_ADMIN_COUNT_SQL, params)).scalar_one()
        views = [
            PaymentRequestView(
                request=_row_to_request(r),
                user_email=r.user_email,  # type: ignore[attr-defined]
                user_name=r.user_name,  # type: ignore[attr-defined]
            )
            for r in rows
        ]
        return views, int(total)

    async def get_stats(self, db: AsyncSession) -> PaymentStats:
        row = (await db.execute(_STATS_SQL)).fetchone()
        if row is None:
            return PaymentStats()
        return PaymentStats(
            pending_deposits=int(row.pending_deposits),  # type: ignore[attr-defined]
            pending_withdrawals=int(row.pending_withdrawals),  # type: ignore[attr-defined]
            approved_deposit_total=int(row.approved_deposit_total),  # type: ignore[attr-defined]
            approved_withdrawal_total=int(row.approved_withdrawal_total),  # type: ignore[attr-defined]
        )
