"""AccountApplicationService — thin composition layer over the ledger.

Balance reads and ledger history are read-only. Manual admin adjustments go
through AccountLedger like every other balance change and commit here.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_account.application.schemas import (
    AdjustmentResponse,
    BalanceResponse,
    LedgerEntryItem,
    LedgerResponse,
)
from src.cm_account.domain.ledger import AccountLedger
from src.cm_account.domain.repository import AccountRepositoryProtocol
from src.cm_account.infrastructure.persistence import AccountRepository
from src.cm_common.database import commit_or_rollback
from src.cm_common.enums import LedgerEntryType
from src.cm_common.errors import AccountNotFoundError, InvalidAmountError
from src.cm_common.money import xu_to_display
from src.cm_common.pagination import cursor_decode, cursor_encode, split_page


class AccountApplicationService:
    def __init__(
        self,
        repo: AccountRepositoryProtocol | None = None,
        ledger: AccountLedger | None = None,
    ) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._ledger = ledger or AccountLedger(self._repo)

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        account = await self._repo.get_account_by_user_id(db, user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        return BalanceResponse.from_account(account)

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_ledger_entries(
            db, user_id, cursor_id, limit + 1, entry_type
        )
        page, has_more = split_page(entries, limit)
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(
            items=[LedgerEntryItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def adjust_balance(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        admin_id: str,
        note: str | None,
    ) -> AdjustmentResponse:
        """Admin credit (amount > 0) or debit (amount < 0) of any account."""
        if amount == 0:
            raise InvalidAmountError("adjustment must be non-zero")

        description = note or f"Điều chỉnh số dư bởi quản trị viên {admin_id}"
        async with commit_or_rollback(db, f"Balance adjustment for {user_id}"):
            if amount > 0:
                account, entry = await self._ledger.credit(
                    db, user_id, amount, LedgerEntryType.ADMIN_CREDIT.value,
                    "ADMIN", admin_id, description,
                )
            else:
                account, entry = await self._ledger.debit(
                    db, user_id, -amount, LedgerEntryType.ADMIN_DEBIT.value,
                    "ADMIN", admin_id, description,
                )

        return AdjustmentResponse(
            user_id=user_id,
            balance=account.balance,
            balance_display=xu_to_display(account.balance),
            ledger_entry_id=entry.id,
        )
