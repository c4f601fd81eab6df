"""Session token issuance and verification."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from payeasy_auth.core.errors import ConfigurationError
from payeasy_auth.core.strkey import is_valid_public_key

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 86_400
MIN_SECRET_BYTES = 32


class SessionTokenService:
    """Sign and verify the JWT that carries a wallet session.

    The token payload is ``{"sub": <public key>, "iat": ..., "exp": ...}``. The
    server keeps no session table; a token is valid exactly as long as its
    signature checks out and it has not expired.
    """

    def __init__(
        self,
        secret: str | None,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
    ) -> None:
        if not secret:
            raise ConfigurationError("JWT_SECRET environment variable is not set")
        if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ConfigurationError(
                f"JWT_SECRET must be at least {MIN_SECRET_BYTES} bytes long"
            )
        self._secret = secret
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds

    def sign_token(self, public_key: str, *, now: datetime | None = None) -> str:
        """Create a session token with ``public_key`` as the subject."""
        issued_at = now or datetime.now(UTC)
        expire = issued_at + timedelta(seconds=self.ttl_seconds)
        to_encode: dict[str, object] = {
            "sub": public_key,
            "iat": int(issued_at.timestamp()),
            "exp": int(expire.timestamp()),
        }
        encoded_jwt: str = jwt.encode(to_encode, self._secret, algorithm=self.algorithm)
        return encoded_jwt

    def verify_token(self, token: object) -> dict[str, Any] | None:
        """Decode and validate a session token.

        Returns:
            The decoded payload, or None if the token is missing, malformed, forged,
            expired, or carries an unexpected subject.
        """
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except JWTError as err:
            logger.debug("Rejected session token: %s", err)
            return None

        if not isinstance(payload, dict):
            return None

        subject = payload.get("sub")
        if not isinstance(subject, str) or not is_valid_public_key(subject):
            return None

        for claim in ("iat", "exp"):
            value = payload.get(claim)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                return None

        return payload

    @staticmethod
    def needs_refresh(
        payload: dict[str, Any],
        threshold_seconds: int,
        *,
        now: datetime | None = None,
    ) -> bool:
        """Return True when a verified token expires within ``threshold_seconds``."""
        expires = payload.get("exp")
        if not isinstance(expires, int):
            return False
        current = int((now or datetime.now(UTC)).timestamp())
        return expires - current <= threshold_seconds
