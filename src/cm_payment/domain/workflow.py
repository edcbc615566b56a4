"""Payment request workflow: pending → approved | rejected, exactly once.

Balance moves only on approval. The status flip is a conditional UPDATE
(`WHERE status = 'pending'`), so of two admins racing on one request only
one gets a row back; the other sees AlreadyProcessedError. The ledger write
for an approval happens in the same transaction as the flip: if a withdrawal
debit fails for lack of funds, the caller rolls back and the request stays
pending.

Nothing here commits.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cm_account.domain.ledger import AccountLedger
from src.cm_account.domain.repository import AccountRepositoryProtocol
from src.cm_common.datetime_utils import utc_now
from src.cm_common.enums import LedgerEntryType, PaymentStatus, PaymentType
from src.cm_common.errors import (
    AccountNotFoundError,
    AlreadyProcessedError,
    BankInfoRequiredError,
    InsufficientBalanceError,
    InvalidAmountError,
    PaymentRequestNotFoundError,
)
from src.cm_common.id_generator import PAYMENT_PREFIX, generate_id
from src.cm_payment.domain.models import BankInfo, PaymentRequest
from src.cm_payment.domain.repository import PaymentRepositoryProtocol

logger = logging.getLogger(__name__)

_REF_TYPE = "PAYMENT"


def validate_submission(type: str, amount: int, bank_info: BankInfo | None) -> None:
    """Static limits on a new request. Raises InvalidAmountError / BankInfoRequiredError."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError("amount must be a positive integer")
    if type == PaymentType.DEPOSIT.value:
        if not settings.DEPOSIT_MIN_AMOUNT <= amount <= settings.DEPOSIT_MAX_AMOUNT:
            raise InvalidAmountError(
                f"deposit must be between {settings.DEPOSIT_MIN_AMOUNT} "
                f"and {settings.DEPOSIT_MAX_AMOUNT} xu"
            )
    elif type == PaymentType.WITHDRAWAL.value:
        if amount < settings.WITHDRAW_MIN_AMOUNT:
            raise InvalidAmountError(
                f"withdrawal must be at least {settings.WITHDRAW_MIN_AMOUNT} xu"
            )
        if bank_info is None or not all(
            (bank_info.account_name, bank_info.account_number, bank_info.bank_name)
        ):
            raise BankInfoRequiredError()
    else:
        raise InvalidAmountError(f"unknown payment type: {type}")


class PaymentWorkflow:
    def __init__(
        self,
        ledger: AccountLedger,
        accounts: AccountRepositoryProtocol,
        repo: PaymentRepositoryProtocol,
    ) -> None:
        self._ledger = ledger
        self._accounts = accounts
        self._repo = repo

    async def submit(
        self,
        db: AsyncSession,
        user_id: str,
        type: str,
        amount: int,
        bank_info: BankInfo | None = None,
        note: str | None = None,
    ) -> PaymentRequest:
        validate_submission(type, amount, bank_info)
        if type == PaymentType.WITHDRAWAL.value:
            # Advisory only: the authoritative check is the debit at approval time
            account = await self._accounts.get_account_by_user_id(db, user_id)
            if account is None:
                raise AccountNotFoundError(user_id)
            if account.balance < amount:
                raise InsufficientBalanceError(required=amount, available=account.balance)

        return await self._repo.create_payment_request(
            db,
            PaymentRequest(
                id=generate_id(PAYMENT_PREFIX),
                user_id=user_id,
                type=type,
                amount=amount,
                bank_info=bank_info if type == PaymentType.WITHDRAWAL.value else None,
                note=note,
            ),
        )

    async def approve(
        self,
        db: AsyncSession,
        request_id: str,
        admin_id: str,
        admin_note: str | None = None,
        now: datetime | None = None,
    ) -> PaymentRequest:
        request = await self._transition(
            db, request_id, PaymentStatus.APPROVED.value, admin_id, admin_note, now
        )
        if request.type == PaymentType.DEPOSIT.value:
            await self._ledger.credit(
                db, request.user_id, request.amount, LedgerEntryType.DEPOSIT.value,
                _REF_TYPE, request.id, f"Nạp tiền: {request.id}",
            )
        else:
            await self._ledger.debit(
                db, request.user_id, request.amount, LedgerEntryType.WITHDRAW.value,
                _REF_TYPE, request.id, f"Rút tiền: {request.id}",
            )
        return request

    async def reject(
        self,
        db: AsyncSession,
        request_id: str,
        admin_id: str,
        admin_note: str | None = None,
        now: datetime | None = None,
    ) -> PaymentRequest:
        return await self._transition(
            db, request_id, PaymentStatus.REJECTED.value, admin_id, admin_note, now
        )

    async def _transition(
        self,
        db: AsyncSession,
        request_id: str,
        new_status: str,
        admin_id: str,
        admin_note: str | None,
        now: datetime | None,
    ) -> PaymentRequest:
        updated = await self._repo.transition_pending(
            db, request_id, new_status, admin_id, admin_note, now or utc_now()
        )
        if updated is not None:
            return updated
        existing = await self._repo.get_payment_request(db, request_id)
        if existing is None:
            raise PaymentRequestNotFoundError(request_id)
        logger.warning(
            "Payment request %s already %s, refusing %s by %s",
            request_id, existing.status, new_status, admin_id,
        )
        raise AlreadyProcessedError(request_id, existing.status)
