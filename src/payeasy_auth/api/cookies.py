"""Cookie helpers shared by the endpoints and the middleware."""

from __future__ import annotations

from starlette.responses import Response

from payeasy_auth.core.settings import Settings
from payeasy_auth.services.csrf import SESSION_COOKIE_NAME, CSRFManager

# Browser session identifier lifetime; CSRF tokens are bound to it.
SESSION_ID_MAX_AGE = 60 * 60 * 24 * 30


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    """Store the session token in an HTTP-only, strict same-site cookie."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    """Overwrite the session cookie with an immediately expiring one."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def set_session_id_cookie(response: Response, session_id: str, *, secure: bool) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_id,
        max_age=SESSION_ID_MAX_AGE,
        path="/",
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def attach_csrf_token(response: Response, token: str, manager: CSRFManager) -> None:
    """Hand a CSRF token to the client as both a cookie and a response header."""
    response.set_cookie(value=token, **manager.cookie_options())
    response.headers[manager.config.header_name] = token
