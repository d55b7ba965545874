"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prompthub.config import Settings
from prompthub.middleware.error_handler import setup_error_handlers
from prompthub.middleware.logging import setup_logging
from prompthub.middleware.rate_limit import RateLimitMiddleware
from prompthub.middleware.request_id import RequestIdMiddleware

# The badge API is read-mostly; POST is only used by /badges/check.
_CORS_METHODS = ["GET", "POST", "OPTIONS"]
_CORS_HEADERS = ["Authorization", "Content-Type", "X-Request-Id"]
_EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging and error handlers, then build the middleware stack.

    Starlette runs middleware in reverse-add order. The stack, outermost
    first, is CORS, request context, then the rate limiter, so 429s carry
    CORS headers and a request id.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=_CORS_METHODS,
        allow_headers=_CORS_HEADERS,
        expose_headers=_EXPOSED_HEADERS,
    )
