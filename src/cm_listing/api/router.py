"""cm_listing REST API — browse is public, everything that writes needs a JWT."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_common.database import get_db_session
from src.cm_common.enums import ListingSort
from src.cm_common.response import ApiResponse, respond
from src.cm_gateway.auth.dependencies import get_current_user, get_optional_user
from src.cm_gateway.user.db_models import UserModel
from src.cm_listing.application.schemas import (
    CommentRequest,
    CreateListingRequest,
    ReviewRequest,
    UpdateListingRequest,
)
from src.cm_listing.application.service import ListingApplicationService
from src.cm_listing.domain.models import ListingQuery

router = APIRouter(prefix="/listings", tags=["listings"])

_service = ListingApplicationService()

CurrentUser = Annotated[UserModel, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.get("")
async def browse_listings(
    db: DbSession,
    request: Request,
    category: str | None = Query(None),
    search: str | None = Query(None, max_length=100),
    min_price: int | None = Query(None, ge=0),
    max_price: int | None = Query(None, ge=0),
    sort: ListingSort = Query(ListingSort.NEWEST),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
) -> ApiResponse:
    query = ListingQuery(
        category=category, search=search, min_price=min_price, max_price=max_price
    )
    data = await _service.browse(db, query, sort.value, page, limit)
    return respond(request, data.model_dump())


@router.get("/mine")
async def list_my_listings(
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
    sort: ListingSort = Query(ListingSort.NEWEST),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_mine(db, current_user.id, sort.value, page, limit)
    return respond(request, data.model_dump())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_listing(
    body: CreateListingRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.create_listing(db, current_user.id, current_user.is_admin, body)
    return respond(request, data.model_dump(), "Đăng tải mã nguồn thành công!")


@router.get("/{listing_id}")
async def get_listing(
    listing_id: str,
    db: DbSession,
    request: Request,
    viewer: Annotated[UserModel | None, Depends(get_optional_user)],
) -> ApiResponse:
    data = await _service.get_detail(
        db,
        listing_id,
        viewer.id if viewer else None,
        viewer.is_admin if viewer else False,
    )
    return respond(request, data.model_dump())


@router.patch("/{listing_id}")
async def update_listing(
    listing_id: str,
    body: UpdateListingRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.update_listing(
        db, listing_id, current_user.id, current_user.is_admin, body
    )
    return respond(request, data.model_dump(), "Cập nhật mã nguồn thành công!")


@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    await _service.delete_listing(db, listing_id, current_user.id, current_user.is_admin)
    return respond(request, None, "Xóa mã nguồn thành công!")


@router.get("/{listing_id}/reviews")
async def list_reviews(
    listing_id: str,
    db: DbSession,
    request: Request,
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    items = await _service.list_reviews(db, listing_id, limit)
    return respond(request, [i.model_dump() for i in items])


@router.post("/{listing_id}/reviews", status_code=status.HTTP_201_CREATED)
async def add_review(
    listing_id: str,
    body: ReviewRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.add_review(
        db, listing_id, current_user.id, body.rating, body.comment
    )
    return respond(request, data.model_dump(), "Cảm ơn bạn đã đánh giá!")


@router.get("/{listing_id}/comments")
async def list_comments(
    listing_id: str,
    db: DbSession,
    request: Request,
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    items = await _service.list_comments(db, listing_id, limit)
    return respond(request, [i.model_dump() for i in items])


@router.post("/{listing_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    listing_id: str,
    body: CommentRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.add_comment(
        db, listing_id, current_user.id, body.content, body.parent_id
    )
    return respond(request, data.model_dump(), "Đã gửi bình luận!")


@router.delete("/{listing_id}/comments/{comment_id}")
async def delete_comment(
    listing_id: str,
    comment_id: int,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    removed = await _service.delete_comment(
        db, listing_id, comment_id, current_user.id, current_user.is_admin
    )
    return respond(request, {"removed": removed}, "Xóa bình luận thành công!")
