# tests/conftest.py
from __future__ import annotations

import base64
import fnmatch
import os
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from nacl.signing import SigningKey
from redis.exceptions import ConnectionError as RedisConnectionError

TEST_SECRET = "test-session-secret-with-at-least-32-bytes"
os.environ.setdefault("JWT_SECRET", TEST_SECRET)

from payeasy_auth.core.settings import Settings
from payeasy_auth.core.strkey import encode_public_key
from payeasy_auth.main import create_app
from payeasy_auth.services.tokens import SessionTokenService

APP_ORIGIN = "http://localhost:3000"
ORIGIN_HEADERS = {"Origin": APP_ORIGIN}


class FakeRedis:
    """In-memory stand-in for the async Redis commands the services use."""

    def __init__(self) -> None:
        self.sorted_sets: dict[str, dict[str, float]] = {}
        self.values: dict[str, Any] = {}
        self.expirations: dict[str, int] = {}

    async def zremrangebyscore(self, key: str, minimum: float, maximum: float) -> int:
        members = self.sorted_sets.get(key, {})
        doomed = [m for m, score in members.items() if minimum <= score <= maximum]
        for member in doomed:
            del members[member]
        return len(doomed)

    async def zcard(self, key: str) -> int:
        return len(self.sorted_sets.get(key, {}))

    async def zrange(
        self, key: str, start: int, end: int, withscores: bool = False
    ) -> list[Any]:
        ordered = sorted(self.sorted_sets.get(key, {}).items(), key=lambda item: item[1])
        stop = None if end == -1 else end + 1
        selected = ordered[start:stop]
        if withscores:
            return [(member.encode(), score) for member, score in selected]
        return [member.encode() for member, _ in selected]

    async def zadd(self, key: str, mapping: dict[str, float]) -> int:
        members = self.sorted_sets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in members)
        members.update(mapping)
        return added

    async def expire(self, key: str, seconds: int) -> bool:
        self.expirations[key] = seconds
        return True

    async def set(
        self, key: str, value: Any, ex: int | None = None, nx: bool = False
    ) -> bool | None:
        if nx and key in self.values:
            return None
        self.values[key] = value.encode() if isinstance(value, str) else value
        if ex is not None:
            self.expirations[key] = ex
        return True

    async def get(self, key: str) -> Any:
        return self.values.get(key)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if key in self.values:
                del self.values[key]
                removed += 1
            self.sorted_sets.pop(key, None)
        return removed

    async def scan_iter(self, match: str = "*") -> AsyncIterator[str]:
        for key in list(self.values):
            if fnmatch.fnmatch(key, match):
                yield key


class FailingRedis:
    """Every command fails as if the Redis server were unreachable."""

    def __getattr__(self, name: str) -> Any:
        async def _fail(*args: Any, **kwargs: Any) -> Any:
            raise RedisConnectionError("Connection refused")

        return _fail


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class Wallet:
    """A client-side Stellar keypair."""

    signing_key: SigningKey
    public_key: str

    def sign(self, message: str) -> str:
        signature = self.signing_key.sign(message.encode("utf-8")).signature
        return base64.b64encode(signature).decode("ascii")


def make_wallet() -> Wallet:
    signing_key = SigningKey.generate()
    return Wallet(
        signing_key=signing_key,
        public_key=encode_public_key(bytes(signing_key.verify_key)),
    )


def build_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "jwt_secret": TEST_SECRET,
        "environment": "test",
        "app_url": APP_ORIGIN,
    }
    values.update(overrides)
    return Settings(**values)


def fetch_csrf_token(client: TestClient) -> str:
    response = client.get("/api/csrf-token")
    assert response.status_code == 200
    return response.headers["X-CSRF-Token"]


def request_challenge(client: TestClient, public_key: str) -> tuple[dict[str, Any], str]:
    """Request a login challenge; returns the challenge data and the rotated CSRF token."""
    response = client.post("/api/auth/login", json={"publicKey": public_key}, headers=ORIGIN_HEADERS)
    assert response.status_code == 200, response.text
    return response.json()["data"], response.headers["X-CSRF-Token"]


def build_verify_payload(wallet: Wallet, challenge: dict[str, Any]) -> dict[str, Any]:
    return {
        "publicKey": wallet.public_key,
        "signature": wallet.sign(challenge["message"]),
        "nonce": challenge["nonce"],
        "timestamp": challenge["timestamp"],
    }


def login(client: TestClient, wallet: Wallet) -> str:
    """Run the full challenge/verify flow; returns the CSRF token for the next request."""
    fetch_csrf_token(client)
    challenge, csrf_token = request_challenge(client, wallet.public_key)
    response = client.post(
        "/api/auth/verify",
        json=build_verify_payload(wallet, challenge),
        headers={**ORIGIN_HEADERS, "X-CSRF-Token": csrf_token},
    )
    assert response.status_code == 200, response.text
    return response.headers["X-CSRF-Token"]


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def test_settings() -> Settings:
    return build_settings()


@pytest.fixture()
def app(test_settings: Settings, fake_redis: FakeRedis) -> FastAPI:
    return create_app(test_settings, redis_client=fake_redis)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture()
def token_service() -> SessionTokenService:
    return SessionTokenService(TEST_SECRET)


@pytest.fixture()
def wallet() -> Wallet:
    return make_wallet()


@pytest.fixture()
def other_wallet() -> Wallet:
    return make_wallet()


def cookie_attributes(response: Any, name: str) -> set[str]:
    """Return the lower-cased attributes of the ``name`` cookie set by ``response``."""
    header = next(
        value for value in response.headers.get_list("set-cookie") if value.startswith(f"{name}=")
    )
    return {part.strip().lower() for part in header.split(";")[1:]}
