"""Shared API dependencies for services, sessions and rate limiting.

Services are constructed once in ``create_app`` and stored on ``app.state``;
the getters below hand them to endpoints so tests can swap them through
``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import Depends, Request, Response, status

from payeasy_auth.core.errors import ApiError
from payeasy_auth.core.settings import Settings
from payeasy_auth.services.csrf import SESSION_COOKIE_NAME, CSRFManager, new_session_id
from payeasy_auth.services.rate_limit import RateLimiter, get_client_ip
from payeasy_auth.services.replay import ChallengeReplayGuard
from payeasy_auth.services.tokens import SessionTokenService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> SessionTokenService:
    return request.app.state.token_service


def get_csrf_manager(request: Request) -> CSRFManager:
    return request.app.state.csrf_manager


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_replay_guard(request: Request) -> ChallengeReplayGuard | None:
    return getattr(request.app.state, "replay_guard", None)


SettingsDep = Annotated[Settings, Depends(get_settings)]
TokenServiceDep = Annotated[SessionTokenService, Depends(get_token_service)]
CSRFManagerDep = Annotated[CSRFManager, Depends(get_csrf_manager)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]
ReplayGuardDep = Annotated[ChallengeReplayGuard | None, Depends(get_replay_guard)]


def read_session_token(request: Request, cookie_name: str) -> str | None:
    """Return the session token from the auth cookie or a Bearer header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):].strip() or None
    return None


def resolve_session_id(request: Request) -> tuple[str, bool]:
    """Return the browser session identifier and whether it was newly generated.

    The auth middleware resolves the identifier first and owns the cookie in that
    case, so only identifiers generated here are reported as new.
    """
    state_id = getattr(request.state, "session_id", None)
    if state_id:
        return state_id, False
    cookie_id = request.cookies.get(SESSION_COOKIE_NAME)
    if cookie_id:
        return cookie_id, False
    return new_session_id(), True


def get_optional_session(
    request: Request,
    settings: SettingsDep,
    token_service: TokenServiceDep,
) -> dict[str, Any] | None:
    """Return the verified session payload, or None when unauthenticated."""
    return token_service.verify_token(read_session_token(request, settings.session_cookie_name))


OptionalSessionDep = Annotated[dict[str, Any] | None, Depends(get_optional_session)]


def get_current_session(session: OptionalSessionDep) -> dict[str, Any]:
    """Require a valid session.

    Raises:
        ApiError: 401 if the token is missing, invalid or expired
    """
    if session is None:
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            "UNAUTHORIZED",
            "Could not validate credentials",
        )
    return session


CurrentSessionDep = Annotated[dict[str, Any], Depends(get_current_session)]


def rate_limit(category: str | None = None) -> Callable[..., Awaitable[None]]:
    """Build a dependency enforcing the per-IP and per-user limits of ``category``."""

    async def _enforce(
        request: Request,
        response: Response,
        limiter: RateLimiterDep,
        session: OptionalSessionDep,
    ) -> None:
        result = await limiter.check_ip(get_client_ip(request), category)
        if not result.limited and session is not None:
            user_result = await limiter.check_user(session["sub"], category)
            if user_result.limited:
                result = user_result

        if result.limited:
            raise ApiError(
                status.HTTP_429_TOO_MANY_REQUESTS,
                "RATE_LIMITED",
                "Too many requests",
                headers=result.headers(),
            )
        for name, value in result.headers().items():
            response.headers[name] = value

    return _enforce
