"""Rate limiting middleware — Redis-based fixed window per minute.

Learn: Each client IP gets one counter per bucket per minute, keyed
"userbase:rl:{ip}:{bucket}:{minute}". Login and self-registration share
the stricter "auth" bucket (10/min) to slow down password guessing and
account spraying. Everything else counts against the "api" bucket.

No Redis (tests, or Redis down at startup) means no limiting.
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from userbase.cache import get_redis

logger = structlog.get_logger()

# (method, path) pairs reachable without a token
SENSITIVE_ENDPOINTS = {
    ("POST", "/api/auth/login"),
    ("POST", "/api/users"),
}

WINDOW_SECONDS = 60


def window_key(client_ip: str, bucket: str, now: float) -> str:
    return f"userbase:rl:{client_ip}:{bucket}:{int(now // WINDOW_SECONDS)}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP request counter with a separate budget for auth endpoints."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.limits = {"api": default_rpm, "auth": auth_rpm}

    def bucket_for(self, request: Request) -> str:
        if (request.method, request.url.path) in SENSITIVE_ENDPOINTS:
            return "auth"
        return "api"

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket = self.bucket_for(request)
        limit = self.limits[bucket]
        key = window_key(client_ip, bucket, time.time())

        try:
            hits = await redis.incr(key)
            if hits == 1:
                # TTL outlives the window
                await redis.expire(key, 2 * WINDOW_SECONDS)
        except Exception as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if hits > limit:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={"code": 429, "message": "rate limit exceeded"},
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - hits))
        return response
