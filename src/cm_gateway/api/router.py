"""Auth API router: register, login, refresh, me, profile edit, password change.

All endpoints return ApiResponse. request_id is read from request.state
(injected by RequestLogMiddleware).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cm_account.infrastructure.persistence import AccountRepository
from src.cm_common.database import get_db_session
from src.cm_common.response import ApiResponse, respond
from src.cm_gateway.auth.dependencies import get_current_user
from src.cm_gateway.user.db_models import UserModel
from src.cm_gateway.user.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UpdateProfileRequest,
    UserInfo,
)
from src.cm_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_accounts = AccountRepository()
_service = UserService(account_repo=_accounts)


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="User registration",
)
async def register(
    request: Request,
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    async with db.begin():
        user = await _service.register(
            body.email, body.full_name, body.password, db, phone=body.phone
        )

    data = RegisterResponse(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        created_at=user.created_at.isoformat(),
    )
    return respond(request, data.model_dump(), "Đăng ký thành công")


@router.post("/login", response_model=ApiResponse, summary="User login")
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    user, access_token, refresh_token = await _service.login(body.email, body.password, db)

    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=UserInfo(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
        ),
    )
    return respond(request, data.model_dump(), "Đăng nhập thành công")


@router.post("/refresh", response_model=ApiResponse, summary="Refresh access token")
async def refresh_token(
    request: Request,
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token, db)
    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    return respond(request, data.model_dump())


async def _profile(db: AsyncSession, user: UserModel) -> ProfileResponse:
    account = await _accounts.get_account_by_user_id(db, user.id)
    return ProfileResponse(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        phone=user.phone,
        role=user.role,
        is_verified=user.is_verified,
        balance=account.balance if account else 0,
        created_at=user.created_at.isoformat(),
    )


@router.get("/me", response_model=ApiResponse, summary="Current user profile")
async def me(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _profile(db, current_user)
    return respond(request, data.model_dump())


@router.patch("/me", response_model=ApiResponse, summary="Edit own profile")
async def update_me(
    request: Request,
    body: UpdateProfileRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    user = await _service.update_profile(
        db, current_user.id, full_name=body.full_name, phone=body.phone
    )
    data = await _profile(db, user)
    return respond(request, data.model_dump(), "Cập nhật hồ sơ thành công")


@router.post("/change-password", response_model=ApiResponse, summary="Change own password")
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.change_password(
        db, current_user.id, body.current_password, body.new_password
    )
    return respond(request, None, "Đổi mật khẩu thành công")
