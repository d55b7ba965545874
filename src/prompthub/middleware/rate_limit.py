"""Fixed-window rate limiting backed by Redis counters."""

import time
from typing import Any

import redis.asyncio as aioredis
import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from prompthub.redis_client import get_redis

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Limit requests per client IP per window."""

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    def _limit_headers(self, remaining: int) -> dict[str, str]:
        return {
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Limit": str(self.requests_per_window),
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Count the request and return 429 once the window is exhausted."""
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        try:
            redis = get_redis()
        except RuntimeError:
            # Redis not initialized (tests, local runs): no limiting.
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time()) // self.window_seconds
        rate_key = f"phub:ratelimit:{client_ip}:{window}"

        pipe = redis.pipeline()
        pipe.incr(rate_key)
        pipe.expire(rate_key, self.window_seconds + 1)
        try:
            results: list[Any] = await pipe.execute()
        except aioredis.RedisError as exc:
            # Unreachable Redis: serve the request unlimited.
            logger.warning("rate_limit_unavailable", error=str(exc))
            return await call_next(request)
        current_count: int = results[0]

        if current_count > self.requests_per_window:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(self.window_seconds), **self._limit_headers(0)},
            )

        response = await call_next(request)
        response.headers.update(self._limit_headers(max(0, self.requests_per_window - current_count)))
        return response
