"""AccountRepository — concrete implementation of AccountRepositoryProtocol.

Debits are a single compare-and-swap UPDATE ... RETURNING: a result of 0 rows
means another transaction changed the balance since it was read. Credits are
a relative UPDATE that never misses. The row lock taken by either UPDATE is
held until the caller commits, so concurrent writers on one account are
serialized by PostgreSQL.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_account.domain.models import Account, LedgerEntry
from src.cm_common.errors import InternalError

_ACCOUNT_COLUMNS = "id, user_id, balance, version, created_at, updated_at"

_CREATE_ACCOUNT_SQL = text(f"""
    INSERT INTO accounts (user_id, balance, version)
    VALUES (:user_id, 0, 0)
    RETURNING {_ACCOUNT_COLUMNS}
""")

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE user_id = :user_id
""")

_CAS_BALANCE_SQL = text(f"""
    UPDATE accounts
    SET balance = :new_balance,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND balance = :expected_balance
    RETURNING {_ACCOUNT_COLUMNS}
""")

# Credits cannot break balance >= 0, so they skip the compare step
_INCREMENT_BALANCE_SQL = text(f"""
    UPDATE accounts
    SET balance = balance + :delta,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_ACCOUNT_COLUMNS}
""")

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (user_id, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, user_id, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = CAST(:entry_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_account(row: object) -> Account:
    return Account(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete repository — every write is atomic at the SQL level."""

    async def create_account(self, db: AsyncSession, user_id: str) -> Account:
        row = (await db.execute(_CREATE_ACCOUNT_SQL, {"user_id": user_id})).fetchone()
        if row is None:
            raise InternalError("Account insert returned no rows")
        return _row_to_account(row)

    async def get_account_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def update_account_balance(
        self,
        db: AsyncSession,
        user_id: str,
        new_balance: int,
        expected_balance: int,
    ) -> Account | None:
        result = await db.execute(
            _CAS_BALANCE_SQL,
            {
                "user_id": user_id,
                "new_balance": new_balance,
                "expected_balance": expected_balance,
            },
        )
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def increment_account_balance(
        self, db: AsyncSession, user_id: str, delta: int
    ) -> Account | None:
        result = await db.execute(
            _INCREMENT_BALANCE_SQL, {"user_id": user_id, "delta": delta}
        )
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def insert_ledger_entry(
        self,
        db: AsyncSession,
        user_id: str,
        entry_type: str,
        amount: int,
        balance_after: int,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> LedgerEntry:
        result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "user_id": user_id,
                "entry_type": entry_type,
                "amount": amount,
                "balance_after": balance_after,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Ledger insert returned no rows — this should never happen")
        return _row_to_ledger(row)

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_ledger(row) for row in result.fetchall()]
