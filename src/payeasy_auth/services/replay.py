"""Optional single-use tracking for login challenges."""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Any, Final

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_DEFAULT_TTL_SECONDS: Final[int] = 600


class ChallengeReplayGuard:
    """Mark challenge nonces as consumed so a signed challenge verifies only once.

    Disabled deployments keep the stateless behaviour where a signed challenge
    can be replayed until its timestamp ages out. Backed by Redis; falls back to
    an in-process cache if Redis errors.
    """

    def __init__(self, client: Any | None, *, ttl_seconds: int = _DEFAULT_TTL_SECONDS) -> None:
        self._redis = client
        self.ttl_seconds = ttl_seconds
        self._cache: dict[str, float] = {}
        self._lock = Lock()

    async def consume(self, public_key: str, nonce: str) -> bool:
        """Record ``nonce`` as used. Returns False if it had already been used."""
        key = f"replay:{public_key}:{nonce}"
        if self._redis is not None:
            try:
                return bool(await self._redis.set(key, "1", nx=True, ex=self.ttl_seconds))
            except (RedisError, OSError):
                logger.warning("Replay store unavailable; using local cache", exc_info=True)

        now = time.time()
        with self._lock:
            self._prune(now)
            if key in self._cache:
                return False
            self._cache[key] = now + self.ttl_seconds
            return True

    def _prune(self, now: float) -> None:
        expired = [key for key, expiry in self._cache.items() if expiry < now]
        for key in expired:
            self._cache.pop(key, None)
