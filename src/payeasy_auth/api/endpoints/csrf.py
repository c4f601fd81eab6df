"""CSRF token issuance."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from payeasy_auth.api.cookies import attach_csrf_token, set_session_id_cookie
from payeasy_auth.api.dependencies import (
    CSRFManagerDep,
    SettingsDep,
    rate_limit,
    resolve_session_id,
)
from payeasy_auth.schemas.common import CsrfTokenResponse, ErrorResponse

router = APIRouter(
    tags=["csrf"],
    responses={status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse}},
)


@router.get(
    "/csrf-token",
    summary="Issue a CSRF token for the current browser session",
    response_model=CsrfTokenResponse,
    dependencies=[Depends(rate_limit("api"))],
)
async def issue_csrf_token(
    request: Request,
    response: Response,
    csrf_manager: CSRFManagerDep,
    settings: SettingsDep,
) -> CsrfTokenResponse:
    """Return a token bound to the ``__session`` cookie.

    The token is delivered three ways: the JSON body, the ``X-CSRF-Token``
    header and the ``__csrf_token`` cookie.
    """
    session_id, generated = resolve_session_id(request)
    token = await csrf_manager.generate_token(session_id)

    attach_csrf_token(response, token, csrf_manager)
    if generated:
        set_session_id_cookie(response, session_id, secure=settings.is_production)
    return CsrfTokenResponse(token=token)
