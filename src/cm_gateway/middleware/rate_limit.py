"""Fixed-window rate limiting for the auth endpoints.

Rule: AUTH_RATE_LIMIT_PER_MINUTE requests per client IP per minute on
/api/v1/auth/* (anti brute-force on login/register).

Redis logic:
    count = INCR ratelimit:{ip}:auth:{window}
    if count == 1: EXPIRE key 60
    if count > limit: 429
"""

import logging
import time
from collections.abc import Awaitable, Callable, Iterable

import redis.asyncio as aioredis
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from config.settings import settings
from src.cm_common.errors import RateLimitError
from src.cm_common.redis_client import get_redis
from src.cm_common.response import error_response

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60
_AUTH_PREFIX = "/api/v1/auth/"


def client_ip(request: Request, trusted_proxies: frozenset[str] = frozenset()) -> str:
    """Real client IP.

    X-Forwarded-For is read only when the direct peer is a trusted proxy, and
    then right to left: the first hop that is not itself a trusted proxy is
    the client. Anything further left was written by the client and is ignored.
    """
    peer = request.client.host if request.client else "unknown"
    if peer not in trusted_proxies:
        return peer
    hops = [h.strip() for h in request.headers.get("x-forwarded-for", "").split(",")]
    for hop in reversed(hops):
        if hop and hop not in trusted_proxies:
            return hop
    return peer


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limit: int | None = None,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        trusted_proxies: Iterable[str] | None = None,
    ) -> None:
        super().__init__(app)
        self._limit = settings.AUTH_RATE_LIMIT_PER_MINUTE if limit is None else limit
        self._redis_factory = redis_factory
        self._trusted = frozenset(
            settings.TRUSTED_PROXIES if trusted_proxies is None else trusted_proxies
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method != "POST" or not request.url.path.startswith(_AUTH_PREFIX):
            return await call_next(request)

        window = int(time.time()) // _WINDOW_SECONDS
        key = f"ratelimit:{client_ip(request, self._trusted)}:auth:{window}"
        try:
            redis = await self._redis_factory()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)
        except RedisError:
            # fail open
            logger.warning("Rate limiter unavailable, allowing %s", request.url.path)
            return await call_next(request)

        if count > self._limit:
            err = RateLimitError()
            retry_after = _WINDOW_SECONDS - int(time.time()) % _WINDOW_SECONDS
            return JSONResponse(
                status_code=err.http_status,
                content=error_response(err.code, err.message).model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
