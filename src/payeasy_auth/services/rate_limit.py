"""Sliding-window rate limiting backed by Redis sorted sets.

Each key holds one sorted-set member per accepted request, scored by its
arrival time in seconds. Members older than the window are pruned before
counting, so the count always reflects the trailing ``window`` seconds.

If Redis cannot be reached the limiter fails open: an outage of this
defence-in-depth layer must not take the API down with it.
"""

from __future__ import annotations

import logging
import math
import secrets
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Final

from fastapi import Request
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

UNLIMITED: Final[float] = math.inf


@dataclass(frozen=True)
class RateLimitConfig:
    """Limits for one category of endpoints."""

    window: int
    limit: int
    key_prefix: str


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single rate-limit check."""

    limited: bool
    remaining: float
    reset_at: int
    limit: int
    retry_after: int | None = None

    def headers(self) -> dict[str, str]:
        """Return the ``X-RateLimit-*`` (and ``Retry-After``) headers for this result."""
        remaining = self.remaining
        if math.isinf(remaining):
            remaining = self.limit
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, int(remaining))),
            "X-RateLimit-Reset": str(self.reset_at),
        }
        if self.retry_after:
            headers["Retry-After"] = str(self.retry_after)
        return headers


DEFAULT_CONFIGS: Final[dict[str, RateLimitConfig]] = {
    "global": RateLimitConfig(window=60, limit=1000, key_prefix="rl:global"),
    "auth": RateLimitConfig(window=300, limit=5, key_prefix="rl:auth"),
    "api": RateLimitConfig(window=60, limit=100, key_prefix="rl:api"),
    "payment": RateLimitConfig(window=3600, limit=50, key_prefix="rl:payment"),
}


class RateLimiter:
    """Per-IP and per-user sliding-window limiter."""

    def __init__(
        self,
        client: Any,
        *,
        configs: Mapping[str, RateLimitConfig] | None = None,
        whitelisted_ips: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = client
        self.configs: dict[str, RateLimitConfig] = dict(DEFAULT_CONFIGS)
        if configs:
            self.configs.update(configs)
        self.whitelisted_ips = frozenset(ip for ip in whitelisted_ips if ip)
        self._clock = clock

    def config_for(self, category: str | None, *, fallback: str) -> RateLimitConfig:
        """Resolve a category name, falling back to ``api`` for unknown names."""
        if category is None:
            return self.configs[fallback]
        return self.configs.get(category, self.configs["api"])

    async def check_limit(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        """Count and, if allowed, record one request against ``key``."""
        full_key = f"{config.key_prefix}:{key}"
        now = self._clock()
        now_s = int(now)
        window_start = now - config.window

        try:
            await self._redis.zremrangebyscore(full_key, 0, window_start)
            request_count = int(await self._redis.zcard(full_key))

            if request_count >= config.limit:
                oldest = await self._redis.zrange(full_key, 0, 0, withscores=True)
                if oldest:
                    reset_at = math.ceil(float(oldest[0][1]) + config.window)
                else:
                    reset_at = now_s + config.window
                logger.info("Rate limit exceeded for %s", full_key)
                return RateLimitResult(
                    limited=True,
                    remaining=0,
                    reset_at=reset_at,
                    limit=config.limit,
                    retry_after=max(1, math.ceil(reset_at - now)),
                )

            member = f"{now}-{secrets.token_hex(4)}"
            await self._redis.zadd(full_key, {member: now})
            await self._redis.expire(full_key, config.window + 1)
        except (RedisError, OSError):
            logger.error("Rate limit check failed; allowing request", exc_info=True)
            return RateLimitResult(
                limited=False,
                remaining=config.limit,
                reset_at=now_s + config.window,
                limit=config.limit,
            )

        return RateLimitResult(
            limited=False,
            remaining=config.limit - request_count - 1,
            reset_at=now_s + config.window,
            limit=config.limit,
        )

    async def check_ip(self, ip: str, category: str | None = None) -> RateLimitResult:
        """Check the per-IP limit. Whitelisted addresses are never limited."""
        config = self.config_for(category, fallback="global")
        if ip in self.whitelisted_ips:
            return RateLimitResult(limited=False, remaining=UNLIMITED, reset_at=0, limit=config.limit)
        return await self.check_limit(f"ip:{ip}", config)

    async def check_user(self, user_id: str, category: str | None = None) -> RateLimitResult:
        """Check the per-user limit for an authenticated identity."""
        config = self.config_for(category, fallback="api")
        return await self.check_limit(f"user:{user_id}", config)


def get_client_ip(request: Request) -> str:
    """Return the client address, preferring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"
