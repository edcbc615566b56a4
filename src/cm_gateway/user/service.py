"""User domain service: register, login, refresh, profile and password edits.

All DB operations use the injected AsyncSession. Register runs inside the
caller's `async with db.begin()` so the user row and its zero-balance account
row are created together.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_account.domain.repository import AccountRepositoryProtocol
from src.cm_account.infrastructure.persistence import AccountRepository
from src.cm_common.database import LIKE_ESCAPE, contains_pattern
from src.cm_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    UserNotFoundError,
    WrongPasswordError,
)
from src.cm_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.cm_gateway.auth.password import hash_password, verify_password
from src.cm_gateway.user.db_models import UserModel

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Stateless service — instantiate once, reuse across requests."""

    def __init__(self, account_repo: AccountRepositoryProtocol | None = None) -> None:
        self._accounts: AccountRepositoryProtocol = account_repo or AccountRepository()

    async def register(
        self,
        email: str,
        full_name: str,
        password: str,
        db: AsyncSession,
        phone: str = "",
    ) -> UserModel:
        email = _normalize_email(email)
        # DB UNIQUE constraint is the final guard
        result = await db.execute(select(UserModel).where(UserModel.email == email))
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        user = UserModel(
            email=email,
            full_name=full_name,
            phone=phone,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(user)
        await db.flush()  # Get user.id without committing

        await self._accounts.create_account(db, user.id)
        logger.info("Registered user %s", user.id)
        return user

    async def login(
        self,
        email: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Authenticate and return (user, access_token, refresh_token).

        Unknown email and wrong password both raise InvalidCredentialsError.
        """
        result = await db.execute(
            select(UserModel).where(UserModel.email == _normalize_email(email))
        )
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.is_active:
            raise AccountDisabledError()

        return (
            user,
            create_access_token(user.id, user.role),
            create_refresh_token(user.id),
        )

    async def refresh(self, refresh_token: str, db: AsyncSession) -> str:
        """Validate a refresh token and mint a new access token for an active user."""
        payload = decode_token(refresh_token, expected_type="refresh")
        user_id = str(payload["sub"])
        user = (
            await db.execute(select(UserModel).where(UserModel.id == user_id))
        ).scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        if not user.is_active:
            raise AccountDisabledError()
        return create_access_token(user.id, user.role)

    async def list_users(
        self,
        db: AsyncSession,
        search: str | None,
        page: int,
        limit: int,
    ) -> tuple[list[UserModel], int]:
        stmt = select(UserModel)
        count_stmt = select(func.count()).select_from(UserModel)
        if search:
            pattern = contains_pattern(search.strip())
            cond = UserModel.email.ilike(pattern, escape=LIKE_ESCAPE) | UserModel.full_name.ilike(
                pattern, escape=LIKE_ESCAPE
            )
            stmt = stmt.where(cond)
            count_stmt = count_stmt.where(cond)
        stmt = stmt.order_by(UserModel.created_at.desc()).offset((page - 1) * limit).limit(limit)
        users = list((await db.execute(stmt)).scalars().all())
        total = int((await db.execute(count_stmt)).scalar_one())
        return users, total

    async def set_active(self, db: AsyncSession, user_id: str, is_active: bool) -> UserModel:
        user = await self._load(db, user_id)
        user.is_active = is_active
        await db.commit()
        return user

    async def update_profile(
        self,
        db: AsyncSession,
        user_id: str,
        full_name: str | None = None,
        phone: str | None = None,
    ) -> UserModel:
        """Edit display fields only; email and role are not self-service."""
        user = await self._load(db, user_id)
        if full_name is not None:
            user.full_name = full_name
        if phone is not None:
            user.phone = phone
        await db.commit()
        return user

    async def change_password(
        self, db: AsyncSession, user_id: str, current_password: str, new_password: str
    ) -> None:
        user = await self._load(db, user_id)
        if not verify_password(current_password, user.password_hash):
            raise WrongPasswordError()
        user.password_hash = hash_password(new_password)
        await db.commit()
        logger.info("Password changed for user %s", user_id)

    async def _load(self, db: AsyncSession, user_id: str) -> UserModel:
        user = (
            await db.execute(select(UserModel).where(UserModel.id == user_id))
        ).scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        return user
