"""Main entry point for the PayEasy auth service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from payeasy_auth.api import auth_router, csp_router, csrf_router, system_router
from payeasy_auth.api.middleware import AuthMiddleware, SecurityHeadersMiddleware
from payeasy_auth.core.errors import register_exception_handlers
from payeasy_auth.core.logging import configure_logging
from payeasy_auth.core.settings import Settings
from payeasy_auth.core.settings import settings as default_settings
from payeasy_auth.services.csrf import (
    CSRFConfig,
    CSRFManager,
    CSRFSweeper,
    CSRFTokenStore,
    InMemoryCSRFStore,
    RedisCSRFStore,
)
from payeasy_auth.services.rate_limit import RateLimitConfig, RateLimiter
from payeasy_auth.services.replay import ChallengeReplayGuard
from payeasy_auth.services.tokens import SessionTokenService

logger = logging.getLogger(__name__)


def build_csrf_manager(settings: Settings, redis_client: object) -> CSRFManager:
    store: CSRFTokenStore
    if settings.csrf_store == "redis":
        store = RedisCSRFStore(redis_client)
    else:
        store = InMemoryCSRFStore()
    config = CSRFConfig(
        token_expiry=settings.csrf_token_ttl_seconds,
        secure=settings.is_production,
        exempt_paths=tuple(settings.csrf_exempt_paths),
        allowed_origins=tuple(settings.allowed_origins),
    )
    return CSRFManager(config, store)


def build_rate_limiter(settings: Settings, redis_client: object) -> RateLimiter:
    configs = {
        name: RateLimitConfig(window=value.window, limit=value.limit, key_prefix=value.key_prefix)
        for name, value in settings.rate_limits.items()
    }
    return RateLimiter(redis_client, configs=configs, whitelisted_ips=settings.whitelisted_ips)


def create_app(
    settings: Settings | None = None,
    *,
    redis_client: object | None = None,
) -> FastAPI:
    """Build the application and the security services it shares between requests.

    Args:
        settings: Configuration; read from the environment when omitted
        redis_client: Async Redis client; created lazily from ``REDIS_URL`` when omitted

    Raises:
        ConfigurationError: If the session signing secret is unusable
    """
    if settings is None:
        settings = default_settings

    configure_logging(settings.log_level)

    if redis_client is None:
        # Connections are opened on first use, so an unreachable Redis only
        # degrades the features that depend on it.
        redis_client = aioredis.from_url(settings.redis_url)

    token_service = SessionTokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl_seconds=settings.session_ttl_seconds,
    )
    csrf_manager = build_csrf_manager(settings, redis_client)
    rate_limiter = build_rate_limiter(settings, redis_client)
    replay_guard = None
    if settings.challenge_replay_protection:
        replay_guard = ChallengeReplayGuard(
            redis_client,
            ttl_seconds=max(1, 2 * settings.challenge_ttl_ms // 1000),
        )
    sweeper = CSRFSweeper(csrf_manager, interval_seconds=settings.csrf_sweep_interval_seconds)

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        await sweeper.start()
        logger.info("%s started (environment=%s)", settings.app_name, settings.environment)
        try:
            yield
        finally:
            await sweeper.stop()

    app = FastAPI(
        title=settings.app_name,
        description="Wallet challenge authentication, CSRF and rate limiting",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.redis = redis_client
    app.state.token_service = token_service
    app.state.csrf_manager = csrf_manager
    app.state.rate_limiter = rate_limiter
    app.state.replay_guard = replay_guard
    app.state.csrf_sweeper = sweeper

    register_exception_handlers(app)

    # add_middleware wraps, so the last one added runs first on the way in.
    app.add_middleware(
        AuthMiddleware,
        settings=settings,
        csrf_manager=csrf_manager,
        token_service=token_service,
    )
    app.add_middleware(GZipMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=["X-CSRF-Token"],
    )

    app.include_router(auth_router, prefix="/api")
    app.include_router(csrf_router, prefix="/api")
    app.include_router(csp_router, prefix="/api")
    app.include_router(system_router)
    app.include_router(system_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("payeasy_auth.main:app", host="0.0.0.0", port=8000, reload=default_settings.debug)
