"""Middleware package for the blog API."""

from blogapi.app.middleware.auth import (
    Authenticator,
    Principal,
    Verifier,
    optional_auth,
    require_admin,
    require_auth,
)
from blogapi.app.middleware.pipeline import configure_pipeline
from blogapi.app.middleware.rate_limit import (
    InMemoryRateLimiter,
    RateLimitMiddleware,
    RedisRateLimiter,
)
from blogapi.app.middleware.recovery import RecoveryMiddleware

__all__ = [
    "Authenticator",
    "Principal",
    "Verifier",
    "optional_auth",
    "require_admin",
    "require_auth",
    "configure_pipeline",
    "InMemoryRateLimiter",
    "RateLimitMiddleware",
    "RedisRateLimiter",
    "RecoveryMiddleware",
]
