"""Pydantic schemas for cm_payment API."""

from pydantic import BaseModel, Field

from src.cm_common.money import xu_to_display
from src.cm_payment.domain.models import (
    BankInfo,
    PaymentRequest,
    PaymentRequestView,
    PaymentStats,
)

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BankInfoSchema(BaseModel):
    account_name: str = Field(..., min_length=1, max_length=128)
    account_number: str = Field(..., min_length=4, max_length=32, pattern=r"^[0-9 ]+$")
    bank_name: str = Field(..., min_length=1, max_length=128)

    def to_domain(self) -> BankInfo:
        return BankInfo(
            account_name=self.account_name.strip(),
            account_number=self.account_number.replace(" ", ""),
            bank_name=self.bank_name.strip(),
        )


class DepositRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in xu")
    note: str | None = Field(None, max_length=500)


class WithdrawRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in xu")
    bank_info: BankInfoSchema | None = None
    note: str | None = Field(None, max_length=500)


class ProcessRequest(BaseModel):
    """Admin approve/reject body."""

    admin_note: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PaymentRequestItem(BaseModel):
    id: str
    user_id: str
    type: str
    amount: int
    amount_display: str
    status: str
    bank_account_name: str | None
    bank_account_number: str | None
    bank_name: str | None
    note: str | None
    admin_note: str | None
    processed_by: str | None
    processed_at: str | None
    created_at: str

    @classmethod
    def from_domain(cls, r: PaymentRequest) -> "PaymentRequestItem":
        bank = r.bank_info
        return cls(
            id=r.id,
            user_id=r.user_id,
            type=r.type,
            amount=r.amount,
            amount_display=xu_to_display(r.amount),
            status=r.status,
            bank_account_name=bank.account_name if bank else None,
            bank_account_number=bank.account_number if bank else None,
            bank_name=bank.bank_name if bank else None,
            note=r.note,
            admin_note=r.admin_note,
            processed_by=r.processed_by,
            processed_at=r.processed_at.isoformat() if r.processed_at else None,
            created_at=r.created_at.isoformat() if r.created_at else "",
        )


class AdminPaymentItem(PaymentRequestItem):
    user_email: str
    user_name: str

    @classmethod
    def from_view(cls, v: PaymentRequestView) -> "AdminPaymentItem":
        base = PaymentRequestItem.from_domain(v.request)
        return cls(**base.model_dump(), user_email=v.user_email, user_name=v.user_name)


class PaymentPage(BaseModel):
    items: list[PaymentRequestItem]
    total: int
    page: int
    limit: int


class AdminPaymentPage(BaseModel):
    items: list[AdminPaymentItem]
    total: int
    page: int
    limit: int


class PaymentStatsResponse(BaseModel):
    pending_deposits: int
    pending_withdrawals: int
    approved_deposit_total: int
    approved_withdrawal_total: int

    @classmethod
    def from_domain(cls, s: PaymentStats) -> "PaymentStatsResponse":
        return cls(
            pending_deposits=s.pending_deposits,
            pending_withdrawals=s.pending_withdrawals,
            approved_deposit_total=s.approved_deposit_total,
            approved_withdrawal_total=s.approved_withdrawal_total,
        )
