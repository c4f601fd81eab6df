"""Tests for session token signing and verification."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from payeasy_auth.core.errors import ConfigurationError
from payeasy_auth.services.tokens import SessionTokenService
from tests.conftest import TEST_SECRET, make_wallet


def test_sign_and_verify_round_trip(token_service: SessionTokenService) -> None:
    wallet = make_wallet()
    token = token_service.sign_token(wallet.public_key)
    payload = token_service.verify_token(token)

    assert payload is not None
    assert payload["sub"] == wallet.public_key
    assert payload["exp"] - payload["iat"] == 86_400


def test_rejects_missing_or_short_secret() -> None:
    with pytest.raises(ConfigurationError):
        SessionTokenService(None)
    with pytest.raises(ConfigurationError):
        SessionTokenService("")
    with pytest.raises(ConfigurationError, match="at least 32 bytes"):
        SessionTokenService("x" * 31)


def test_verify_rejects_garbage(token_service: SessionTokenService) -> None:
    assert token_service.verify_token(None) is None
    assert token_service.verify_token("") is None
    assert token_service.verify_token("not.a.jwt") is None
    assert token_service.verify_token(12345) is None


def test_verify_rejects_mutated_token(token_service: SessionTokenService) -> None:
    token = token_service.sign_token(make_wallet().public_key)
    header, body, signature = token.split(".")
    flipped = signature[:-2] + ("AA" if signature[-2:] != "AA" else "BB")

    assert token_service.verify_token(f"{header}.{body}.{flipped}") is None
    assert token_service.verify_token(token[:-1]) is None


def test_verify_rejects_other_secret(token_service: SessionTokenService) -> None:
    other = SessionTokenService("another-secret-that-is-also-32-bytes-long")
    token = other.sign_token(make_wallet().public_key)
    assert token_service.verify_token(token) is None


def test_verify_rejects_expired(token_service: SessionTokenService) -> None:
    issued = datetime.now(UTC) - timedelta(days=2)
    token = token_service.sign_token(make_wallet().public_key, now=issued)
    assert token_service.verify_token(token) is None


def test_verify_rejects_non_stellar_subject() -> None:
    now = int(datetime.now(UTC).timestamp())
    token = jwt.encode(
        {"sub": "alice", "iat": now, "exp": now + 60}, TEST_SECRET, algorithm="HS256"
    )
    assert SessionTokenService(TEST_SECRET).verify_token(token) is None


def test_verify_rejects_non_integer_claims() -> None:
    now = int(datetime.now(UTC).timestamp())
    token = jwt.encode(
        {"sub": make_wallet().public_key, "iat": "yesterday", "exp": now + 60},
        TEST_SECRET,
        algorithm="HS256",
    )
    assert SessionTokenService(TEST_SECRET).verify_token(token) is None


def test_needs_refresh() -> None:
    now = datetime(2024, 1, 1, tzinfo=UTC)
    exp = int(now.timestamp())

    assert SessionTokenService.needs_refresh({"exp": exp + 1800}, 3600, now=now) is True
    assert SessionTokenService.needs_refresh({"exp": exp + 3600}, 3600, now=now) is True
    assert SessionTokenService.needs_refresh({"exp": exp + 7200}, 3600, now=now) is False
    assert SessionTokenService.needs_refresh({}, 3600, now=now) is False
