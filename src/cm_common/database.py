"""Async engine, session factory and the FastAPI session dependency.

Sessions are request-scoped. Services that mutate balances commit or roll
back explicitly; the notification dispatcher opens its own short-lived
session so a failed notification never touches the caller's transaction.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings
from src.cm_common.errors import TransactionConflictError


class Base(DeclarativeBase):
    """Shared declarative base (only `users` is ORM-mapped; everything else is raw SQL)."""

    pass


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """`%term%` for ILIKE ... ESCAPE, with the wildcards in `term` matched literally."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


_RETRYABLE_SQLSTATES = {
    "40001": "serialization failure",
    "40P01": "deadlock detected",
}


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_retryable_conflict(exc: DBAPIError) -> bool:
    """True when PostgreSQL aborted the transaction to break a lock conflict."""
    return _sqlstate(exc) in _RETRYABLE_SQLSTATES


@asynccontextmanager
async def commit_or_rollback(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Commit the session on success; roll back on any error and re-raise.

    `operation` names the unit of work in error messages, e.g.
    "Purchase of SC123". Deadlocks between two settlements touching the same
    pair of accounts in opposite order surface as TransactionConflictError so
    the client can retry.
    """
    try:
        yield
        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        reason = _RETRYABLE_SQLSTATES.get(_sqlstate(exc) or "")
        if reason is not None:
            raise TransactionConflictError(operation, reason) from exc
        raise
    except BaseException:
        await db.rollback()
        raise
