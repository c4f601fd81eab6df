"""HTTP middleware: request authentication gate and security headers.

Starlette middleware is a stack; ``create_app`` adds them so the order is::

    Client -> CORS -> SecurityHeaders -> GZip -> AuthMiddleware -> route handler

``AuthMiddleware`` therefore sees every request before any endpoint runs,
and the security headers are applied to its short-circuit responses too.
"""

from __future__ import annotations

import base64
import logging
import uuid
from urllib.parse import urlencode

from fastapi import Request, Response, status
from fastapi.responses import RedirectResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from payeasy_auth.api.cookies import attach_csrf_token, set_auth_cookie, set_session_id_cookie
from payeasy_auth.core.errors import error_response
from payeasy_auth.core.settings import Settings
from payeasy_auth.services.csrf import SESSION_COOKIE_NAME, CSRFManager, new_session_id
from payeasy_auth.services.headers import get_security_headers
from payeasy_auth.services.origin import validate_origin
from payeasy_auth.services.tokens import SessionTokenService

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Gate every request through CSRF, origin and session checks.

    In order:

    1. Unsafe methods on non-exempt paths must carry an allowed ``Origin`` (or
       ``Referer``) and a valid ``X-CSRF-Token`` for the request's session id,
       otherwise the request is rejected with 403.
    2. Protected path prefixes require a valid session token; without one the
       client is redirected to the login page. Tokens close to expiry are
       re-issued.
    3. The request is forwarded and a freshly rotated CSRF token is attached to
       the response for the next round-trip.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        settings: Settings,
        csrf_manager: CSRFManager,
        token_service: SessionTokenService,
    ) -> None:
        super().__init__(app)
        self.settings = settings
        self.csrf = csrf_manager
        self.tokens = token_service

    def _is_protected(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.settings.protected_paths)

    async def _check_csrf(self, request: Request, session_id: str) -> Response | None:
        if self.csrf.is_exempt(request.method, request.url.path):
            return None

        origin_check = validate_origin(request.headers, self.csrf.config.allowed_origins)
        if not origin_check.valid:
            logger.warning("[CSRF] Origin validation failed: %s", origin_check.error)
            return error_response(status.HTTP_403_FORBIDDEN, "INVALID_ORIGIN", "Invalid origin")

        token = request.headers.get(self.csrf.config.header_name)
        if not token:
            logger.warning("[CSRF] Token validation failed: CSRF token missing")
            return error_response(
                status.HTTP_403_FORBIDDEN, "CSRF_VALIDATION_FAILED", "CSRF validation failed"
            )
        if not await self.csrf.validate_token(session_id, token):
            logger.warning("[CSRF] Token validation failed: CSRF token invalid or expired")
            return error_response(
                status.HTTP_403_FORBIDDEN, "CSRF_VALIDATION_FAILED", "CSRF validation failed"
            )
        return None

    def _login_redirect(self, request: Request) -> RedirectResponse:
        query = urlencode({"redirectTo": request.url.path})
        url = request.url.replace(path=self.settings.login_path, query=query)
        return RedirectResponse(str(url), status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    async def _rotate_csrf(self, response: Response, session_id: str) -> None:
        if self.csrf.config.header_name in response.headers:
            # The route issued its own token (e.g. the CSRF token endpoint).
            return
        try:
            token = await self.csrf.generate_token(session_id)
        except (RedisError, OSError):
            logger.error("Failed to rotate CSRF token", exc_info=True)
            return
        attach_csrf_token(response, token, self.csrf)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        session_id = request.cookies.get(SESSION_COOKIE_NAME)
        session_generated = not session_id
        if not session_id:
            session_id = new_session_id()
        request.state.session_id = session_id

        rejection = await self._check_csrf(request, session_id)
        if rejection is not None:
            return rejection

        refreshed_token: str | None = None
        if self._is_protected(request.url.path):
            token = request.cookies.get(self.settings.session_cookie_name)
            payload = self.tokens.verify_token(token)
            if payload is None:
                return self._login_redirect(request)
            request.state.session = payload
            if self.tokens.needs_refresh(payload, self.settings.session_refresh_threshold_seconds):
                refreshed_token = self.tokens.sign_token(payload["sub"])

        response = await call_next(request)

        if refreshed_token is not None:
            set_auth_cookie(response, refreshed_token, self.settings)
        await self._rotate_csrf(response, session_id)
        if session_generated:
            set_session_id_cookie(response, session_id, secure=self.settings.is_production)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach CSP, HSTS and related headers to every response."""

    def __init__(self, app: ASGIApp, *, settings: Settings) -> None:
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        nonce = base64.b64encode(str(uuid.uuid4()).encode()).decode()
        request.state.csp_nonce = nonce

        response = await call_next(request)

        report_uri = None
        if self.settings.csp_report_path:
            report_uri = str(request.url.replace(path=self.settings.csp_report_path, query=""))
        headers = get_security_headers(
            nonce=nonce,
            report_uri=report_uri,
            is_production=self.settings.is_production,
        )
        for name, value in headers.items():
            response.headers[name] = value
        return response
