"""Security services for the auth gateway."""

from .csrf import CSRFManager, CSRFSweeper, InMemoryCSRFStore, RedisCSRFStore
from .rate_limit import RateLimiter
from .replay import ChallengeReplayGuard
from .tokens import SessionTokenService

__all__ = [
    "CSRFManager",
    "CSRFSweeper",
    "ChallengeReplayGuard",
    "InMemoryCSRFStore",
    "RateLimiter",
    "RedisCSRFStore",
    "SessionTokenService",
]
