"""Domain models for cm_payment — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.cm_common.enums import PaymentStatus


@dataclass(frozen=True)
class BankInfo:
    account_name: str
    account_number: str
    bank_name: str


@dataclass
class PaymentRequest:
    id: str
    user_id: str
    type: str                    # PaymentType value
    amount: int
    status: str = PaymentStatus.PENDING.value
    bank_info: BankInfo | None = None
    note: str | None = None
    admin_note: str | None = None
    processed_by: str | None = None
    processed_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class PaymentRequestView:
    """Admin listing row: request joined with the owner's identity."""

    request: PaymentRequest
    user_email: str
    user_name: str


@dataclass
class PaymentStats:
    pending_deposits: int = 0
    pending_withdrawals: int = 0
    approved_deposit_total: int = 0
    approved_withdrawal_total: int = 0
