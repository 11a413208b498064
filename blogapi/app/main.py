import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogapi.app.api import api_router
from blogapi.app.core.config import Settings, get_settings
from blogapi.app.core.logging import LoggingService
from blogapi.app.core.periodic import PeriodicTask
from blogapi.app.db.session import create_engine_from_settings, create_session_maker, init_models
from blogapi.app.exceptions import BlogAPIException, RateLimitExceededError
from blogapi.app.middleware.auth import Authenticator, Verifier
from blogapi.app.middleware.pipeline import configure_pipeline
from blogapi.app.middleware.rate_limit import RateLimitBackend, RedisRateLimiter, create_rate_limiter
from blogapi.app.services.identity import FirebaseIdentityProvider, IdentityDirectory
from blogapi.app.services.user_service import UserService
from blogapi.app.services.user_store import SqlAlchemyUserStore, UserStore


def create_app(
    settings: Optional[Settings] = None,
    verifier: Optional[Verifier] = None,
    user_store: Optional[UserStore] = None,
    rate_limiter: Optional[RateLimitBackend] = None,
    identity: Optional[IdentityDirectory] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Collaborators that are not passed in are built from settings: the
    Firebase identity provider and the SQL user store are created in the
    lifespan, so importing this module needs neither credentials nor a
    database.

    Args:
        settings: Application settings. Loaded from the environment if omitted.
        verifier: Token verifier for the auth stages
        user_store: User persistence
        rate_limiter: Rate limit backend
        identity: Identity provider directory for the user service
        clock: Time source for the rate limiter

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    logging_service = LoggingService.from_settings(settings)
    logger = logging_service.get_logger("blogapi.main")

    limiter = rate_limiter or create_rate_limiter(
        settings,
        logger=logging_service.get_logger("blogapi.middleware.rate_limit"),
        clock=clock,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager.

        Starts logging, builds the identity provider and the user store on
        startup, runs the rate limiter sweep in the background, and releases
        everything on shutdown, flushing logs last.
        """
        logging_service.start()

        provider: Optional[FirebaseIdentityProvider] = None
        engine = None

        active_verifier = verifier
        if active_verifier is None:
            provider = FirebaseIdentityProvider.from_settings(
                settings, logger=logging_service.get_logger("blogapi.services.identity")
            )
            active_verifier = provider

        directory = identity
        if directory is None and isinstance(active_verifier, IdentityDirectory):
            directory = active_verifier

        store = user_store
        if store is None:
            engine = create_engine_from_settings(
                settings, logger=logging_service.get_logger("blogapi.db")
            )
            await init_models(engine)
            store = SqlAlchemyUserStore(create_session_maker(engine))

        app.state.engine = engine
        app.state.authenticator = Authenticator(
            active_verifier, logger=logging_service.get_logger("blogapi.middleware.auth")
        )
        app.state.user_service = UserService(
            store, directory, logger=logging_service.get_logger("blogapi.services.user")
        )

        sweeper = PeriodicTask(
            "rate-limit-sweep",
            limiter.sweep,
            interval=settings.rate_limit_sweep_interval_seconds,
            logger=logging_service.get_logger("blogapi.core.periodic"),
        )
        await sweeper.start()

        logger.info(
            "Application startup complete",
            extra={
                "rate_limit": limiter.limit,
                "rate_limit_window": limiter.window_seconds,
                "debug_mode": settings.debug,
            },
        )

        try:
            yield
        finally:
            await sweeper.stop()
            if isinstance(limiter, RedisRateLimiter):
                await limiter.close()
            if engine is not None:
                await engine.dispose()
            if provider is not None:
                provider.close()
            logger.info("Application shutdown complete")
            logging_service.shutdown()

    app = FastAPI(
        title=settings.app_name,
        description="Blog platform backend with token authentication and rate limiting",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = limiter
    app.state.logging_service = logging_service

    configure_pipeline(app, settings, limiter, logging_service)

    app.include_router(api_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Health check endpoint with database status."""
        health_status: dict[str, Any] = {"status": "ok", "components": {}}

        engine = getattr(request.app.state, "engine", None)
        if engine is not None:
            try:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                health_status["components"]["database"] = {"status": "ok"}
            except Exception as e:
                health_status["status"] = "degraded"
                health_status["components"]["database"] = {
                    "status": "error",
                    "error": str(e)[:100],  # Truncate for security
                }

        return health_status

    @app.exception_handler(BlogAPIException)
    async def api_error_handler(request: Request, exc: BlogAPIException) -> JSONResponse:
        """Render every application error as ``{"error": message}``."""
        headers = None
        if isinstance(exc, RateLimitExceededError) and exc.retry_after is not None:
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request body/query validation failures as HTTP 400."""
        messages = []
        for error in exc.errors():
            loc = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
        return JSONResponse(status_code=400, content={"error": "; ".join(messages)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(app, host=_settings.host, port=_settings.port)
