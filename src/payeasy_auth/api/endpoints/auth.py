"""Wallet authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from payeasy_auth.api.cookies import clear_auth_cookie, set_auth_cookie
from payeasy_auth.api.dependencies import (
    CurrentSessionDep,
    ReplayGuardDep,
    SettingsDep,
    TokenServiceDep,
    rate_limit,
    read_session_token,
)
from payeasy_auth.core.errors import ApiError
from payeasy_auth.core.security import verify_signature
from payeasy_auth.core.strkey import is_valid_public_key
from payeasy_auth.schemas.auth import (
    ChallengeData,
    ChallengeRequest,
    ChallengeResponse,
    LogoutData,
    LogoutResponse,
    SessionData,
    SessionResponse,
    VerifyData,
    VerifyRequest,
    VerifyResponse,
)
from payeasy_auth.schemas.common import ErrorResponse
from payeasy_auth.services.challenge import build_message, generate_challenge, is_timestamp_valid

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
    },
)


@router.post(
    "/login",
    summary="Issue a wallet login challenge",
    response_model=ChallengeResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
async def issue_challenge(payload: ChallengeRequest) -> ChallengeResponse:
    """Return a challenge the wallet must sign to prove key ownership."""
    if not is_valid_public_key(payload.public_key):
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_PUBLIC_KEY",
            "Invalid Stellar public key",
            field="publicKey",
        )

    challenge = generate_challenge()
    return ChallengeResponse(data=ChallengeData(**challenge.to_dict()))


@router.post(
    "/verify",
    summary="Verify a signed challenge and start a session",
    response_model=VerifyResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
async def verify_challenge(
    payload: VerifyRequest,
    response: Response,
    settings: SettingsDep,
    token_service: TokenServiceDep,
    replay_guard: ReplayGuardDep,
) -> VerifyResponse:
    """Check the signature and freshness of a challenge, then set the session cookie."""
    if not is_timestamp_valid(payload.timestamp, ttl_ms=settings.challenge_ttl_ms):
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            "CHALLENGE_EXPIRED",
            "Challenge expired. Please request a new login challenge.",
        )

    message = build_message(payload.nonce, payload.timestamp)
    if not verify_signature(payload.public_key, payload.signature, message):
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "INVALID_SIGNATURE", "Invalid signature")

    if replay_guard is not None and not await replay_guard.consume(
        payload.public_key, payload.nonce
    ):
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            "CHALLENGE_REUSED",
            "Challenge has already been used",
        )

    token = token_service.sign_token(payload.public_key)
    set_auth_cookie(response, token, settings)
    logger.info("Wallet session started for %s", payload.public_key)

    return VerifyResponse(data=VerifyData(public_key=payload.public_key))


@router.post(
    "/logout",
    summary="End the current session",
    response_model=LogoutResponse,
    dependencies=[Depends(rate_limit("api"))],
)
async def logout(
    request: Request,
    response: Response,
    settings: SettingsDep,
    token_service: TokenServiceDep,
) -> LogoutResponse:
    """Clear the session cookie. Succeeds even when nobody is logged in."""
    previous = token_service.verify_token(read_session_token(request, settings.session_cookie_name))
    if previous is not None:
        logger.info("Wallet session ended for %s", previous["sub"])

    clear_auth_cookie(response, settings)
    return LogoutResponse(data=LogoutData(message="Logged out successfully"))


@router.get(
    "/session",
    summary="Describe the current session",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit("api"))],
)
async def current_session(session: CurrentSessionDep) -> SessionResponse:
    return SessionResponse(
        data=SessionData(public_key=session["sub"], expires_at=session["exp"]),
    )
