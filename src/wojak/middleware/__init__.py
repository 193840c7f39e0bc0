"""HTTP middleware stack for the arcade API.

Registration order matters: Starlette wraps in reverse-add order, so the last
middleware added is the outermost. From the inside out the stack is rate
limiting, request id, then CORS, which keeps CORS headers on 429 responses.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wojak.config import Settings
from wojak.middleware.error_handler import setup_error_handlers
from wojak.middleware.logging import setup_logging
from wojak.middleware.rate_limit import RateLimitMiddleware
from wojak.middleware.request_id import RequestIdMiddleware

ALLOWED_HEADERS = ["Authorization", "Content-Type", "X-Request-Id", "X-Admin-Token"]
EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
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
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=ALLOWED_HEADERS,
        expose_headers=EXPOSED_HEADERS,
    )
