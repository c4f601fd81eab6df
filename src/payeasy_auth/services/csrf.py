"""CSRF token management.

Tokens are bound to a session identifier (the ``__session`` cookie) and follow
a simple lifecycle per session: absent -> issued -> validated* | expired ->
absent. Generating a token overwrites whatever was stored for the session, so
at most one token is live per session. Expiry is checked lazily on every
validation; the periodic sweep only bounds memory growth.

Two stores are provided: a process-local dictionary, which is only reliable
for a single instance, and a Redis-backed store keyed identically for
horizontally scaled deployments.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Protocol

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
DEFAULT_TOKEN_EXPIRY_SECONDS = 60 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 30 * 60
SESSION_COOKIE_NAME = "__session"
SESSION_ID_BYTES = 16


@dataclass(frozen=True)
class CSRFTokenRecord:
    """Stored token plus its issue and expiry times (epoch seconds)."""

    token: str
    issued_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class CSRFConfig:
    """CSRF protection options."""

    header_name: str = "X-CSRF-Token"
    cookie_name: str = "__csrf_token"
    token_length: int = 32
    token_expiry: int = DEFAULT_TOKEN_EXPIRY_SECONDS
    same_site: Literal["lax", "strict", "none"] = "lax"
    secure: bool = False
    exempt_paths: tuple[str, ...] = field(default_factory=tuple)
    allowed_origins: tuple[str, ...] = field(default_factory=tuple)


class CSRFTokenStore(Protocol):
    """Storage backend for CSRF token records."""

    async def get(self, session_id: str) -> CSRFTokenRecord | None: ...

    async def set(self, session_id: str, record: CSRFTokenRecord) -> None: ...

    async def delete(self, session_id: str) -> None: ...

    async def sweep(self, now: float) -> int: ...

    async def clear(self) -> None: ...


class InMemoryCSRFStore:
    """Process-wide token map. Lost on restart and not shared between instances."""

    def __init__(self) -> None:
        self._records: dict[str, CSRFTokenRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def get(self, session_id: str) -> CSRFTokenRecord | None:
        return self._records.get(session_id)

    async def set(self, session_id: str, record: CSRFTokenRecord) -> None:
        self._records[session_id] = record

    async def delete(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    async def sweep(self, now: float) -> int:
        expired = [key for key, record in self._records.items() if record.is_expired(now)]
        for key in expired:
            self._records.pop(key, None)
        return len(expired)

    async def clear(self) -> None:
        self._records.clear()


class RedisCSRFStore:
    """Shared token store; records expire through Redis key TTLs."""

    def __init__(self, client: Any, *, key_prefix: str = "csrf") -> None:
        self._redis = client
        self._key_prefix = key_prefix

    def _key(self, session_id: str) -> str:
        return f"{self._key_prefix}:{session_id}"

    async def get(self, session_id: str) -> CSRFTokenRecord | None:
        raw = await self._redis.get(self._key(session_id))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            data = json.loads(raw)
            return CSRFTokenRecord(
                token=str(data["token"]),
                issued_at=float(data["issued_at"]),
                expires_at=float(data["expires_at"]),
            )
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable CSRF record for session")
            return None

    async def set(self, session_id: str, record: CSRFTokenRecord) -> None:
        ttl = max(1, int(record.expires_at - record.issued_at))
        await self._redis.set(self._key(session_id), json.dumps(asdict(record)), ex=ttl)

    async def delete(self, session_id: str) -> None:
        await self._redis.delete(self._key(session_id))

    async def sweep(self, now: float) -> int:
        # Redis expires keys on its own.
        return 0

    async def clear(self) -> None:
        async for key in self._redis.scan_iter(match=f"{self._key_prefix}:*"):
            await self._redis.delete(key)


class CSRFManager:
    """Issue and check CSRF tokens for session identifiers.

    Constructed once per application and shared by the middleware and the
    token endpoint.
    """

    def __init__(
        self,
        config: CSRFConfig | None = None,
        store: CSRFTokenStore | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or CSRFConfig()
        self.store: CSRFTokenStore = store if store is not None else InMemoryCSRFStore()
        self._clock = clock

    async def generate_token(self, session_id: str) -> str:
        """Create a token for ``session_id``, replacing any previous one."""
        token = secrets.token_hex(self.config.token_length)
        now = self._clock()
        record = CSRFTokenRecord(
            token=token,
            issued_at=now,
            expires_at=now + self.config.token_expiry,
        )
        await self.store.set(session_id, record)
        return token

    async def validate_token(self, session_id: str, token: str | None) -> bool:
        """Check ``token`` against the stored token for ``session_id``.

        Expired records are deleted. Store failures count as invalid.
        """
        if not session_id or not token:
            return False
        try:
            stored = await self.store.get(session_id)
            if stored is None:
                return False
            if stored.is_expired(self._clock()):
                await self.store.delete(session_id)
                return False
        except (RedisError, OSError):
            logger.error("CSRF store unavailable during validation", exc_info=True)
            return False
        return constant_time_compare(stored.token, token)

    async def sweep_expired(self) -> int:
        """Remove every expired record and return how many were removed."""
        removed = await self.store.sweep(self._clock())
        if removed:
            logger.debug("Swept %d expired CSRF tokens", removed)
        return removed

    async def clear_all_tokens(self) -> None:
        await self.store.clear()

    def is_exempt(self, method: str, path: str) -> bool:
        """Return True if a request skips CSRF validation."""
        if method.upper() in SAFE_METHODS:
            return True
        return any(path.startswith(prefix) for prefix in self.config.exempt_paths)

    def cookie_options(self) -> dict[str, Any]:
        """Keyword arguments for ``Response.set_cookie`` carrying the token."""
        return {
            "key": self.config.cookie_name,
            "path": "/",
            "httponly": True,
            "samesite": self.config.same_site,
            "secure": self.config.secure,
            "max_age": self.config.token_expiry,
        }


def constant_time_compare(expected: str, supplied: str) -> bool:
    """Compare two tokens without leaking the position of the first mismatch."""
    if not isinstance(supplied, str):
        return False
    return secrets.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


def new_session_id() -> str:
    """Return a fresh random session identifier."""
    return secrets.token_hex(SESSION_ID_BYTES)


class CSRFSweeper:
    """Periodically purges expired CSRF records in the background."""

    def __init__(
        self,
        manager: CSRFManager,
        *,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self.manager = manager
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                pass
            if self._stopping.is_set():
                return
            try:
                await self.manager.sweep_expired()
            except (RedisError, OSError) as e:
                logger.warning("CSRF sweep failed: %s", e)
            except Exception:
                logger.exception("Unexpected error during CSRF sweep")
