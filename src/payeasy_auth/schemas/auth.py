"""Wallet authentication schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class ChallengeRequest(BaseModel):
    """Request for a login challenge."""

    public_key: StrictStr = Field(
        ...,
        alias="publicKey",
        min_length=1,
        description="Stellar account ID (G...) of the wallet",
    )

    model_config = ConfigDict(populate_by_name=True)


class ChallengeData(BaseModel):
    """Challenge material the wallet must sign."""

    nonce: str = Field(..., description="Hex-encoded 256-bit nonce")
    timestamp: int = Field(..., description="Issue time in milliseconds since the epoch")
    message: str = Field(..., description="Exact message to sign")


class ChallengeResponse(BaseModel):
    success: Literal[True] = True
    data: ChallengeData


class VerifyRequest(BaseModel):
    """Signed challenge submitted to obtain a session."""

    public_key: StrictStr = Field(..., alias="publicKey", min_length=1)
    signature: StrictStr = Field(
        ...,
        min_length=1,
        description="Base64-encoded Ed25519 signature over the challenge message",
    )
    nonce: StrictStr = Field(..., min_length=1, description="Nonce from the challenge")
    timestamp: int = Field(..., description="Timestamp from the challenge (ms)")

    model_config = ConfigDict(populate_by_name=True)


class VerifyData(BaseModel):
    public_key: str = Field(..., alias="publicKey")

    model_config = ConfigDict(populate_by_name=True)


class VerifyResponse(BaseModel):
    """Response returned after a successful verification; the token travels in a cookie."""

    success: Literal[True] = True
    data: VerifyData


class LogoutData(BaseModel):
    message: str


class LogoutResponse(BaseModel):
    success: Literal[True] = True
    data: LogoutData


class SessionData(BaseModel):
    """The wallet bound to the current session."""

    public_key: str = Field(..., alias="publicKey")
    expires_at: int = Field(..., alias="expiresAt", description="Expiry in epoch seconds")

    model_config = ConfigDict(populate_by_name=True)


class SessionResponse(BaseModel):
    success: Literal[True] = True
    data: SessionData
