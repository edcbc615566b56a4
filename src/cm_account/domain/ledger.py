"""AccountLedger — the only writer of account balances.

debit reads the balance, checks it covers the amount and writes the new value
back with a compare-and-swap UPDATE (``WHERE balance = :expected_balance``). A
lost race re-reads and retries up to ``LEDGER_MAX_RETRIES`` times before
surfacing ContentionError to the caller.

credit is a single relative UPDATE (``balance = balance + :delta``). It cannot
drive a balance negative, so it needs no compare step and never exhausts a
retry budget, even on a hot account such as PLATFORM_FEE that every purchase
credits.

Transaction ownership: the ledger never commits. Each successful write and its
ledger entry land in the caller's transaction, so a settlement that debits
the buyer and credits the seller commits or rolls back as one unit.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cm_account.domain.models import Account, LedgerEntry
from src.cm_account.domain.repository import AccountRepositoryProtocol
from src.cm_common.errors import (
    AccountNotFoundError,
    ContentionError,
    InsufficientBalanceError,
    InvalidAmountError,
)

logger = logging.getLogger(__name__)


class AccountLedger:
    def __init__(
        self,
        repo: AccountRepositoryProtocol,
        max_retries: int | None = None,
    ) -> None:
        self._repo = repo
        self._max_retries = settings.LEDGER_MAX_RETRIES if max_retries is None else max_retries

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: str,
        reference_type: str | None = None,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> tuple[Account, LedgerEntry]:
        delta = _positive(amount)
        updated = await self._repo.increment_account_balance(db, user_id, delta)
        if updated is None:
            raise AccountNotFoundError(user_id)
        entry = await self._repo.insert_ledger_entry(
            db, user_id, entry_type, delta, updated.balance,
            reference_type, reference_id, description,
        )
        return updated, entry

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: str,
        reference_type: str | None = None,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> tuple[Account, LedgerEntry]:
        """Raises InsufficientBalanceError if the balance cannot cover `amount`."""
        amount = _positive(amount)
        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            account = await self._repo.get_account_by_user_id(db, user_id)
            if account is None:
                raise AccountNotFoundError(user_id)

            new_balance = account.balance - amount
            if new_balance < 0:
                raise InsufficientBalanceError(amount, account.balance)

            updated = await self._repo.update_account_balance(
                db, user_id, new_balance, account.balance
            )
            if updated is not None:
                entry = await self._repo.insert_ledger_entry(
                    db, user_id, entry_type, -amount, updated.balance,
                    reference_type, reference_id, description,
                )
                return updated, entry

            logger.warning(
                "Balance CAS conflict: user=%s attempt=%d/%d expected=%d",
                user_id, attempt, attempts, account.balance,
            )

        raise ContentionError(user_id, attempts)


def _positive(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(f"amount must be a positive integer, got {amount!r}")
    return amount
