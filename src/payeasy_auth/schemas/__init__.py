"""Pydantic schemas for the auth API."""

from .auth import (
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
from .common import CsrfTokenResponse, ErrorDetail, ErrorResponse, HealthResponse

__all__ = [
    "ChallengeData",
    "ChallengeRequest",
    "ChallengeResponse",
    "CsrfTokenResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "LogoutData",
    "LogoutResponse",
    "SessionData",
    "SessionResponse",
    "VerifyData",
    "VerifyRequest",
    "VerifyResponse",
]
