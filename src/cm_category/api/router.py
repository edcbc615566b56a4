"""cm_category public API. Admin writes live in cm_admin."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_category.application.service import CategoryApplicationService
from src.cm_common.database import get_db_session
from src.cm_common.response import ApiResponse, respond

router = APIRouter(prefix="/categories", tags=["categories"])

_service = CategoryApplicationService()


@router.get("")
async def list_categories(
    db: Annotated[AsyncSession, Depends(get_db_session)], request: Request
) -> ApiResponse:
    items = await _service.list_active(db)
    return respond(request, [i.model_dump() for i in items])
