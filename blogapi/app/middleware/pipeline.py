"""Composition of the request pipeline.

Every request passes through, outermost first:

    Recovery -> CORS -> Rate limiter -> per-route auth dependencies -> handler

Starlette runs the most recently added middleware first, so the stages are
added here in reverse.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blogapi.app.core.config import Settings
from blogapi.app.core.logging import LoggingService
from blogapi.app.middleware.rate_limit import RateLimitBackend, RateLimitMiddleware
from blogapi.app.middleware.recovery import RecoveryMiddleware

CORS_ALLOW_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Origin", "Content-Length", "Content-Type", "Authorization"]
CORS_EXPOSE_HEADERS = [
    "X-RateLimit-Limit",
    "X-RateLimit-Remaining",
    "X-RateLimit-Reset",
    "Retry-After",
]


def configure_pipeline(
    app: FastAPI,
    settings: Settings,
    limiter: RateLimitBackend,
    logging_service: LoggingService,
) -> None:
    """Install the global middleware stages on ``app``."""
    # Innermost global stage: runs after CORS preflight handling
    app.add_middleware(
        RateLimitMiddleware,
        limiter=limiter,
        logger=logging_service.get_logger("blogapi.middleware.rate_limit"),
    )

    # Credentials are not allowed together with a wildcard origin.
    allow_all = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not allow_all,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
        expose_headers=CORS_EXPOSE_HEADERS,
        max_age=600,
    )

    # Outermost: sees faults from every later stage
    app.add_middleware(
        RecoveryMiddleware,
        logger=logging_service.get_logger("blogapi.middleware.recovery"),
    )
