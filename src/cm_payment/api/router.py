"""cm_payment REST API — a user's deposit and withdrawal requests.

Approval and rejection live under /admin/payments (src/cm_admin/api/router.py).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_common.database import get_db_session
from src.cm_common.enums import PaymentType
from src.cm_common.response import ApiResponse, respond
from src.cm_gateway.auth.dependencies import get_current_user
from src.cm_gateway.user.db_models import UserModel
from src.cm_payment.application.schemas import DepositRequest, WithdrawRequest
from src.cm_payment.application.service import PaymentApplicationService

router = APIRouter(prefix="/payments", tags=["payments"])

_service = PaymentApplicationService()


@router.post("/deposit", status_code=status.HTTP_201_CREATED)
async def request_deposit(
    body: DepositRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.submit(
        db, current_user.id, PaymentType.DEPOSIT.value, body.amount, None, body.note
    )
    return respond(
        request, data.model_dump(), "Yêu cầu nạp tiền đã được gửi, vui lòng chờ duyệt"
    )


@router.post("/withdraw", status_code=status.HTTP_201_CREATED)
async def request_withdrawal(
    body: WithdrawRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    bank_info = body.bank_info.to_domain() if body.bank_info else None
    data = await _service.submit(
        db, current_user.id, PaymentType.WITHDRAWAL.value, body.amount, bank_info, body.note
    )
    return respond(
        request, data.model_dump(), "Yêu cầu rút tiền đã được gửi, vui lòng chờ duyệt"
    )


@router.get("")
async def list_my_requests(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    type: PaymentType | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_mine(
        db, current_user.id, type.value if type else None, page, limit
    )
    return respond(request, data.model_dump())
