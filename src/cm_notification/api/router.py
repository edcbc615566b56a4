"""cm_notification REST API — the current user's notification inbox."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_common.database import get_db_session
from src.cm_common.enums import NotificationFilter
from src.cm_common.response import ApiResponse, respond
from src.cm_gateway.auth.dependencies import get_current_user
from src.cm_gateway.user.db_models import UserModel
from src.cm_notification.application.service import NotificationApplicationService

router = APIRouter(prefix="/notifications", tags=["notifications"])

_service = NotificationApplicationService()

CurrentUser = Annotated[UserModel, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.get("")
async def list_notifications(
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
    filter: NotificationFilter = Query(NotificationFilter.ALL),
    cursor: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_notifications(
        db, current_user.id, filter.value, cursor, limit
    )
    return respond(request, data.model_dump())


@router.get("/unread-count")
async def unread_count(current_user: CurrentUser, db: DbSession, request: Request) -> ApiResponse:
    data = await _service.unread_count(db, current_user.id)
    return respond(request, data.model_dump())


@router.post("/read-all")
async def mark_all_read(current_user: CurrentUser, db: DbSession, request: Request) -> ApiResponse:
    data = await _service.mark_all_read(db, current_user.id)
    return respond(request, data.model_dump(), "Đã đánh dấu tất cả là đã đọc")


@router.delete("/read")
async def delete_read(current_user: CurrentUser, db: DbSession, request: Request) -> ApiResponse:
    data = await _service.delete_read(db, current_user.id)
    return respond(request, data.model_dump(), "Đã xóa các thông báo đã đọc")


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: int, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    data = await _service.set_read(db, current_user.id, notification_id, True)
    return respond(request, data.model_dump())


@router.post("/{notification_id}/unread")
async def mark_unread(
    notification_id: int, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    data = await _service.set_read(db, current_user.id, notification_id, False)
    return respond(request, data.model_dump())


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    await _service.delete(db, current_user.id, notification_id)
    return respond(request, None, "Đã xóa thông báo")
