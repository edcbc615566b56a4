"""cm_purchase REST API — buy a listing, list own purchases and sales."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_common.database import get_db_session
from src.cm_common.response import ApiResponse, respond
from src.cm_gateway.auth.dependencies import get_current_user
from src.cm_gateway.user.db_models import UserModel
from src.cm_purchase.application.schemas import PurchaseRequest
from src.cm_purchase.application.service import PurchaseApplicationService

router = APIRouter(prefix="/purchases", tags=["purchases"])

_service = PurchaseApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def purchase_listing(
    body: PurchaseRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.settle_purchase(
        db, current_user.id, body.listing_id, body.expected_price
    )
    return respond(request, data.model_dump(), "Mua mã nguồn thành công!")


@router.get("")
async def list_purchases(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_purchases(db, current_user.id, page, limit)
    return respond(request, data.model_dump())


@router.get("/sales")
async def list_sales(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_sales(db, current_user.id, page, limit)
    return respond(request, data.model_dump())
