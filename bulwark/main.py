"""Bulwark - FastAPI Application Factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bulwark.api import api_router, frontend_router
from bulwark.core.config import Settings, get_settings
from bulwark.core.errors import register_error_handlers
from bulwark.core.logging import get_logger, setup_logging
from bulwark.middleware import (
    CorsPolicy,
    CsrfProtection,
    RateLimitConfig,
    RateLimiter,
    RateLimiters,
    SecurityPipelineMiddleware,
    expiry_sweep_loop,
)
from bulwark.repositories import SqlAlchemyUserRepository, create_user_repository
from bulwark.services.auth import TokenAuthenticator

logger = get_logger("main")


def task_done_callback(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from background tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc}")


def build_rate_limiters(settings: Settings) -> RateLimiters:
    return RateLimiters(
        auth=RateLimiter(
            RateLimitConfig(
                max_requests=settings.auth_rate_limit_max,
                window_seconds=settings.auth_rate_limit_window_seconds,
                message="Too many authentication attempts, please try again later",
            ),
            enabled=settings.rate_limit_enabled,
            name="auth",
        ),
        failed_login=RateLimiter(
            RateLimitConfig(
                max_requests=settings.failed_login_limit_max,
                window_seconds=settings.failed_login_limit_window_seconds,
                message="Too many failed login attempts, please try again later",
            ),
            enabled=settings.rate_limit_enabled,
            name="failed_login",
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings

    setup_logging(level=settings.log_level, format_type=settings.log_format)
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")

    for warning in settings.check_security_configuration():
        logger.warning(f"SECURITY: {warning}")

    users = app.state.user_repository
    if isinstance(users, SqlAlchemyUserRepository):
        await users.initialize()
        logger.info("Database tables ready")

    sweepers = {
        f"rate-limit:{limiter.name}": limiter.cleanup_expired
        for limiter in app.state.rate_limiters.all()
    }
    sweepers["csrf"] = app.state.csrf.cleanup_expired
    cleanup_task = asyncio.create_task(
        expiry_sweep_loop(
            sweepers,
            interval_seconds=settings.expiry_sweep_interval_seconds,
        ),
        name="expiry-sweep",
    )
    cleanup_task.add_done_callback(task_done_callback)

    yield

    logger.info("Shutting down...")
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass
    await users.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Every store (CSRF entries, rate-limit windows, users) hangs off
    ``app.state``, so two apps built here share nothing.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="User management API with a hardened request-security pipeline",
        version=settings.app_version,
        lifespan=lifespan,
        # The schema lists every route and model; only expose it when debugging
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.token_authenticator = TokenAuthenticator(
        settings.jwt_secret,
        ttl_seconds=settings.token_ttl_seconds,
    )
    csrf = CsrfProtection(ttl_seconds=settings.csrf_ttl_seconds)
    cors = CorsPolicy(settings.cors_origins_list, production=settings.is_production)
    app.state.csrf = csrf
    app.state.cors = cors
    app.state.rate_limiters = build_rate_limiters(settings)
    app.state.user_repository = create_user_repository(settings)

    app.add_middleware(
        SecurityPipelineMiddleware,
        cors=cors,
        csrf=csrf,
        production=settings.is_production,
    )

    register_error_handlers(app)

    app.include_router(api_router)
    # Catch-all, must come last
    app.include_router(frontend_router)

    return app


def run() -> None:
    """Console entry point: serve with uvicorn on the configured port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "bulwark.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.port,
        server_header=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
