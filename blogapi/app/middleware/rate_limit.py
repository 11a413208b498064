"""Rate limiting middleware for the blog API.

Fixed-window limiting: each client gets ``limit`` requests per ``window``
seconds, counted from the client's first request in that window. The
in-memory backend serves single-instance deployments; the Redis backend
keeps the same semantics across instances.
"""

import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import redis
import redis.asyncio as aioredis
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from blogapi.app.core.config import Settings
from blogapi.app.core.logging import get_log_context, get_logger
from blogapi.app.exceptions import RateLimitExceededError

Clock = Callable[[], float]


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after: Optional[int] = None

    def __bool__(self) -> bool:
        return self.allowed


@dataclass
class ClientWindowState:
    """Requests seen for one client in its current window."""
    count: int
    window_start: float


def _validate_limits(limit: int, window_seconds: float) -> None:
    if limit <= 0:
        raise ValueError("limit must be a positive integer")
    if window_seconds <= 0:
        raise ValueError("window_seconds must be positive")


class RateLimitBackend(ABC):
    """Abstract base class for rate limit backends."""

    limit: int
    window_seconds: float

    @abstractmethod
    async def admit(self, client_id: str) -> RateLimitResult:
        """Count a request for ``client_id`` and decide whether to admit it.

        A rejected request never changes the stored count.
        """

    @abstractmethod
    async def sweep(self) -> int:
        """Drop idle client state. Returns the number of entries removed."""


class InMemoryRateLimiter(RateLimitBackend):
    """In-memory fixed-window rate limiter.

    All reads and writes of the client map happen under one asyncio lock, and
    nothing inside the critical section awaits, so concurrent requests for the
    same client can never admit more than ``limit`` in one window.
    """

    def __init__(
        self,
        limit: int = 100,
        window_seconds: float = 60.0,
        clock: Clock = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize rate limiter.

        Args:
            limit: Maximum requests per client per window
            window_seconds: Window length in seconds
            clock: Source of the current time in seconds (injectable for tests)
            logger: Logger to report rejections and sweeps to

        Raises:
            ValueError: If limit or window_seconds is not positive
        """
        _validate_limits(limit, window_seconds)
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._logger = logger or get_logger(__name__)
        self._clients: Dict[str, ClientWindowState] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._clients)

    def get_state(self, client_id: str) -> Optional[ClientWindowState]:
        """Return a copy of the stored state for ``client_id``, if any."""
        state = self._clients.get(client_id)
        if state is None:
            return None
        return ClientWindowState(count=state.count, window_start=state.window_start)

    async def admit(self, client_id: str) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            state = self._clients.get(client_id)

            # New client, or its window has elapsed: start a fresh window
            if state is None or now - state.window_start > self.window_seconds:
                state = ClientWindowState(count=1, window_start=now)
                self._clients[client_id] = state
                return RateLimitResult(
                    allowed=True,
                    limit=self.limit,
                    remaining=self.limit - 1,
                    reset_time=int(now + self.window_seconds),
                )

            reset_at = state.window_start + self.window_seconds

            if state.count >= self.limit:
                self._logger.warning(
                    f"Rate limit exceeded by client: {client_id} "
                    f"(count: {state.count}, limit: {self.limit})"
                )
                return RateLimitResult(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    reset_time=int(reset_at),
                    retry_after=max(1, math.ceil(reset_at - now)),
                )

            state.count += 1
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                remaining=self.limit - state.count,
                reset_time=int(reset_at),
            )

    async def sweep(self) -> int:
        """Remove clients not seen for more than twice the window."""
        async with self._lock:
            now = self._clock()
            stale = [
                client_id for client_id, state in self._clients.items()
                if now - state.window_start > self.window_seconds * 2
            ]
            for client_id in stale:
                del self._clients[client_id]
            remaining = len(self._clients)

        if stale:
            self._logger.info(
                f"Rate limiter cleanup: removed {len(stale)} stale clients, "
                f"{remaining} remaining"
            )
        return len(stale)


# KEYS[1] = client key; ARGV[1] = limit; ARGV[2] = window in milliseconds.
# Returns {allowed, count, pttl}. A rejected request does not INCR, and the
# expiry is set only by the first request of a window, so the key lives
# exactly one window.
FIXED_WINDOW_SCRIPT = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window_ms = tonumber(ARGV[2])

    local current = tonumber(redis.call('GET', key) or '0')
    if current >= limit then
        return {0, current, redis.call('PTTL', key)}
    end

    local count = redis.call('INCR', key)
    if count == 1 then
        redis.call('PEXPIRE', key, window_ms)
    end
    return {1, count, redis.call('PTTL', key)}
"""


class RedisRateLimiter(RateLimitBackend):
    """Redis-based fixed-window rate limiter shared by several instances.

    The check-and-increment runs as one Lua script, which Redis executes
    atomically.
    """

    KEY_PREFIX = "blogapi:ratelimit:"

    def __init__(
        self,
        limit: int = 100,
        window_seconds: float = 60.0,
        redis_client: Optional[Any] = None,
        redis_url: str = "redis://localhost:6379/0",
        fail_closed: bool = False,
        clock: Clock = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis rate limiter.

        Args:
            limit: Maximum requests per client per window
            window_seconds: Window length in seconds
            redis_client: Optional Redis client instance
            redis_url: Redis connection URL, used when no client is given
            fail_closed: Reject requests instead of admitting them when Redis
                cannot be reached
            clock: Source of the current time in seconds
            logger: Logger to report Redis failures to
        """
        _validate_limits(limit, window_seconds)
        self.limit = limit
        self.window_seconds = window_seconds
        self.fail_closed = fail_closed
        self._redis_url = redis_url
        self._redis = redis_client
        self._clock = clock
        self._logger = logger or get_logger(__name__)

    def _get_redis(self) -> Any:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    async def admit(self, client_id: str) -> RateLimitResult:
        now = self._clock()
        window_ms = int(self.window_seconds * 1000)
        try:
            client = self._get_redis()
            allowed, count, pttl = await client.eval(
                FIXED_WINDOW_SCRIPT,
                1,
                f"{self.KEY_PREFIX}{client_id}",
                self.limit,
                window_ms,
            )
        except redis.ConnectionError as e:
            self._logger.error(f"Redis connection failed: {e}")
            return self._handle_redis_failure("connection_error")
        except redis.TimeoutError as e:
            self._logger.warning(f"Redis timeout: {e}")
            return self._handle_redis_failure("timeout")
        except redis.RedisError as e:
            self._logger.error(f"Redis error: {e}")
            return self._handle_redis_failure("redis_error")

        ttl_seconds = (int(pttl) if int(pttl) > 0 else window_ms) / 1000
        reset_time = int(now + ttl_seconds)

        if not int(allowed):
            self._logger.warning(
                f"Rate limit exceeded by client: {client_id} "
                f"(count: {int(count)}, limit: {self.limit})"
            )
            return RateLimitResult(
                allowed=False,
                limit=self.limit,
                remaining=0,
                reset_time=reset_time,
                retry_after=max(1, math.ceil(ttl_seconds)),
            )

        return RateLimitResult(
            allowed=True,
            limit=self.limit,
            remaining=max(0, self.limit - int(count)),
            reset_time=reset_time,
        )

    def _handle_redis_failure(self, error_type: str) -> RateLimitResult:
        now = self._clock()
        if self.fail_closed:
            self._logger.warning(
                f"Rate limiting fail-closed triggered due to {error_type}. "
                "Request denied."
            )
            return RateLimitResult(
                allowed=False,
                limit=self.limit,
                remaining=0,
                reset_time=int(now + self.window_seconds),
                retry_after=max(1, math.ceil(self.window_seconds)),
            )

        self._logger.warning(
            f"Rate limiting fail-open triggered due to {error_type}. "
            "Request allowed without rate limit check."
        )
        return RateLimitResult(
            allowed=True,
            limit=self.limit,
            remaining=self.limit,
            reset_time=int(now + self.window_seconds),
        )

    async def sweep(self) -> int:
        """No-op for Redis (keys expire on their own)."""
        return 0

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def create_rate_limiter(
    settings: Settings,
    logger: Optional[logging.Logger] = None,
    clock: Clock = time.time,
) -> RateLimitBackend:
    """Build the rate limit backend selected by settings."""
    logger = logger or get_logger(__name__)
    if settings.redis_enabled:
        logger.info("Using Redis rate limiter backend")
        return RedisRateLimiter(
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
            redis_url=settings.redis_url,
            fail_closed=settings.rate_limit_fail_closed,
            clock=clock,
            logger=logger,
        )

    logger.debug("Using in-memory rate limiter backend")
    return InMemoryRateLimiter(
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        clock=clock,
        logger=logger,
    )


def get_client_address(request: Request) -> str:
    """Caller's network address: first X-Forwarded-For hop, else the peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


def get_client_id(request: Request) -> str:
    """Rate limit key for the request.

    Uses the verified principal when an earlier stage has already attached
    one, otherwise the caller's address. The global middleware runs before
    the per-route auth dependencies, so on the standard pipeline callers are
    keyed by address; a limiter placed after auth would key the same caller
    by uid, giving it a separate budget.
    """
    principal = getattr(request.state, "principal", None)
    if principal is not None:
        return f"user:{principal.uid}"
    return f"ip:{get_client_address(request)}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce the global rate limit on every request."""

    def __init__(
        self,
        app,
        limiter: RateLimitBackend,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app)
        self.limiter = limiter
        self._logger = logger or get_logger(__name__)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request with rate limiting."""
        client_id = get_client_id(request)
        result = await self.limiter.admit(client_id)

        if not result.allowed:
            exc = RateLimitExceededError(retry_after=result.retry_after)
            self._logger.info(
                "Request rejected by rate limiter",
                extra=get_log_context(
                    path=request.url.path,
                    method=request.method,
                    client_ip=get_client_address(request),
                ),
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.message},
                headers={
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(result.reset_time),
                    "Retry-After": str(result.retry_after or int(self.limiter.window_seconds)),
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Reset"] = str(result.reset_time)
        return response
