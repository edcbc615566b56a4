"""Admin REST API — every route requires role=admin."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_account.application.schemas import BalanceAdjustmentRequest
from src.cm_account.application.service import AccountApplicationService
from src.cm_admin.application.service import AdminService
from src.cm_category.application.schemas import CreateCategoryRequest, UpdateCategoryRequest
from src.cm_category.application.service import CategoryApplicationService
from src.cm_common.database import get_db_session
from src.cm_common.enums import PaymentSort, PaymentStatus, PaymentType
from src.cm_common.response import ApiResponse, respond
from src.cm_gateway.auth.dependencies import require_admin
from src.cm_gateway.user.db_models import UserModel
from src.cm_listing.application.service import ListingApplicationService
from src.cm_payment.application.schemas import ProcessRequest
from src.cm_payment.application.service import PaymentApplicationService

router = APIRouter(prefix="/admin", tags=["admin"])

_service = AdminService()
_accounts = AccountApplicationService()
_listings = ListingApplicationService()
_categories = CategoryApplicationService()
_payments = PaymentApplicationService()

Admin = Annotated[UserModel, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


class ActiveFlagRequest(BaseModel):
    is_active: bool


# ---------------------------------------------------------------------------
# Dashboard & users
# ---------------------------------------------------------------------------


@router.get("/stats")
async def dashboard_stats(admin: Admin, db: DbSession, request: Request) -> ApiResponse:
    return respond(request, await _service.get_dashboard_stats(db))


@router.get("/users")
async def list_users(
    admin: Admin,
    db: DbSession,
    request: Request,
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    return respond(request, await _service.list_users(db, search, page, limit))


@router.put("/users/{user_id}/active")
async def set_user_active(
    user_id: str, body: ActiveFlagRequest, admin: Admin, db: DbSession, request: Request
) -> ApiResponse:
    data = await _service.set_user_active(db, user_id, body.is_active)
    return respond(request, data)


@router.post("/users/{user_id}/balance")
async def adjust_balance(
    user_id: str,
    body: BalanceAdjustmentRequest,
    admin: Admin,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _accounts.adjust_balance(db, user_id, body.amount, admin.id, body.note)
    return respond(request, data.model_dump(), "Điều chỉnh số dư thành công!")


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


@router.put("/listings/{listing_id}/active")
async def set_listing_active(
    listing_id: str, body: ActiveFlagRequest, admin: Admin, db: DbSession, request: Request
) -> ApiResponse:
    data = await _listings.set_active(db, listing_id, body.is_active)
    message = "Hiển thị mã nguồn thành công!" if body.is_active else "Ẩn mã nguồn thành công!"
    return respond(request, data.model_dump(), message)


@router.delete("/listings/{listing_id}")
async def delete_listing(
    listing_id: str, admin: Admin, db: DbSession, request: Request
) -> ApiResponse:
    await _listings.delete_listing(db, listing_id, admin.id, is_admin=True)
    return respond(request, None, "Xóa mã nguồn thành công!")


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@router.get("/categories")
async def list_categories(admin: Admin, db: DbSession, request: Request) -> ApiResponse:
    data = await _categories.list_all(db)
    return respond(request, data.model_dump())


@router.post("/categories", status_code=201)
async def create_category(
    body: CreateCategoryRequest, admin: Admin, db: DbSession, request: Request
) -> ApiResponse:
    data = await _categories.create(db, body)
    return respond(request, data.model_dump(), "Tạo danh mục thành công!")


@router.patch("/categories/{category_id}")
async def update_category(
    category_id: int,
    body: UpdateCategoryRequest,
    admin: Admin,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _categories.update(db, category_id, body)
    return respond(request, data.model_dump(), "Cập nhật danh mục thành công!")


@router.put("/categories/{category_id}/active")
async def set_category_active(
    category_id: int, body: ActiveFlagRequest, admin: Admin, db: DbSession, request: Request
) -> ApiResponse:
    data = await _categories.set_active(db, category_id, body.is_active)
    message = "Hiện danh mục thành công!" if body.is_active else "Ẩn danh mục thành công!"
    return respond(request, data.model_dump(), message)


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: int, admin: Admin, db: DbSession, request: Request
) -> ApiResponse:
    await _categories.delete(db, category_id)
    return respond(request, None, "Xóa danh mục thành công!")


# ---------------------------------------------------------------------------
# Payment requests
# ---------------------------------------------------------------------------


@router.get("/payments")
async def list_payments(
    admin: Admin,
    db: DbSession,
    request: Request,
    type: PaymentType | None = Query(None),
    status: PaymentStatus | None = Query(None),
    sort: PaymentSort = Query(PaymentSort.NEWEST),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _payments.list_all(
        db,
        type.value if type else None,
        status.value if status else None,
        sort.value,
        page,
        limit,
    )
    return respond(request, data.model_dump())


@router.get("/payments/stats")
async def payment_stats(admin: Admin, db: DbSession, request: Request) -> ApiResponse:
    data = await _payments.get_stats(db)
    return respond(request, data.model_dump())


@router.post("/payments/{request_id}/approve")
async def approve_payment(
    request_id: str, body: ProcessRequest, admin: Admin, db: DbSession, request: Request
) -> ApiResponse:
    data = await _payments.approve(db, request_id, admin.id, body.admin_note)
    return respond(request, data.model_dump(), "Đã duyệt giao dịch thành công!")


@router.post("/payments/{request_id}/reject")
async def reject_payment(
    request_id: str, body: ProcessRequest, admin: Admin, db: DbSession, request: Request
) -> ApiResponse:
    data = await _payments.reject(db, request_id, admin.id, body.admin_note)
    return respond(request, data.model_dump(), "Đã từ chối giao dịch!")
