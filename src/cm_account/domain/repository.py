"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock (or the in-memory fake) that conforms to this
Protocol. The infrastructure layer provides the PostgreSQL implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_account.domain.models import Account, LedgerEntry


class AccountRepositoryProtocol(Protocol):
    async def create_account(self, db: AsyncSession, user_id: str) -> Account: ...

    async def get_account_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Account | None: ...

    async def update_account_balance(
        self,
        db: AsyncSession,
        user_id: str,
        new_balance: int,
        expected_balance: int,
    ) -> Account | None:
        """Compare-and-swap write. Returns None when the stored balance moved."""
        ...

    async def increment_account_balance(
        self, db: AsyncSession, user_id: str, delta: int
    ) -> Account | None:
        """Atomic relative write for credits. Returns None when the account is missing."""
        ...

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
    ) -> LedgerEntry: ...

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...
