"""
Back Office — Sliding window rate limiter for login (Redis-backed)

Allows RATE_LIMIT_MAX_ATTEMPTS login attempts per RATE_LIMIT_WINDOW_SECONDS
per username, using a sorted set (ZADD/ZREMRANGEBYSCORE/ZCARD).
"""
import json
import logging
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from backoffice.core.config import get_settings
from backoffice.core.redis_client import get_redis

settings = get_settings()
logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "ratelimit:login:"
LOGIN_PATHS = ("/api/auth/login", "/api/auth/login/")


class SlidingWindowRateLimiter(BaseHTTPMiddleware):
    """
    Applies only to POST /api/auth/login. The key is the username from the
    JSON body, or the client IP when the body cannot be parsed. If Redis is
    unreachable the attempt is let through.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method != "POST" or request.url.path not in LOGIN_PATHS:
            return await call_next(request)

        # Starlette caches the body, so the route can still read it.
        body = await request.body()
        client_ip = request.client.host if request.client else "unknown"
        try:
            tracking_key = json.loads(body).get("username") or client_ip
        except (ValueError, AttributeError):
            tracking_key = client_ip

        key = f"{RATE_LIMIT_PREFIX}{tracking_key}"
        now = time.time()
        window_start = now - settings.RATE_LIMIT_WINDOW_SECONDS
        try:
            pipe = get_redis().pipeline()
            pipe.zremrangebyscore(key, "-inf", window_start)
            pipe.zcard(key)
            pipe.zadd(key, {str(now): now})
            pipe.expire(key, settings.RATE_LIMIT_WINDOW_SECONDS + 1)
            results = await pipe.execute()
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, letting login through: %s", exc)
            return await call_next(request)

        attempt_count = results[1]  # count before this attempt
        if attempt_count >= settings.RATE_LIMIT_MAX_ATTEMPTS:
            logger.warning("Login rate limit hit for %s", tracking_key)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too Many Requests",
                    "message": (
                        f"Too many login attempts. Maximum {settings.RATE_LIMIT_MAX_ATTEMPTS} "
                        f"attempts per {settings.RATE_LIMIT_WINDOW_SECONDS} seconds."
                    ),
                    "status": 429,
                    "path": request.url.path,
                    "retry_after_seconds": settings.RATE_LIMIT_WINDOW_SECONDS,
                },
                headers={"Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS)},
            )

        return await call_next(request)
