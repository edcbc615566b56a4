"""Pydantic schemas for cm_account API."""

from pydantic import BaseModel, Field

from src.cm_account.domain.models import Account, LedgerEntry
from src.cm_common.money import xu_to_display

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BalanceAdjustmentRequest(BaseModel):
    """Admin manual adjustment: positive credits, negative debits."""

    amount: int = Field(..., description="Signed amount in xu, non-zero")
    note: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    balance: int
    balance_display: str

    @classmethod
    def from_account(cls, account: Account) -> "BalanceResponse":
        return cls(
            user_id=account.user_id,
            balance=account.balance,
            balance_display=xu_to_display(account.balance),
        )


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount: int
    amount_display: str
    balance_after: int
    balance_after_display: str
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, e: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=e.id,
            entry_type=e.entry_type,
            amount=e.amount,
            amount_display=xu_to_display(e.amount),
            balance_after=e.balance_after,
            balance_after_display=xu_to_display(e.balance_after),
            reference_type=e.reference_type,
            reference_id=e.reference_id,
            description=e.description,
            created_at=e.created_at.isoformat() if e.created_at else "",
        )


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool


class AdjustmentResponse(BaseModel):
    user_id: str
    balance: int
    balance_display: str
    ledger_entry_id: int
