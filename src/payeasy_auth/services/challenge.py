"""Wallet login challenges.

A challenge is a random nonce and a millisecond timestamp folded into a fixed
message that the wallet signs. Nothing is stored server-side: at verification
time the message is rebuilt from the ``(nonce, timestamp)`` pair the client
sends back, and freshness is judged from that timestamp alone. A captured
signed message therefore stays usable until it ages out of the TTL window
(see ``ChallengeReplayGuard`` for the opt-in single-use variant).
"""

from __future__ import annotations

import secrets
import time
from dataclasses import asdict, dataclass
from typing import Final

MESSAGE_PREFIX: Final[str] = "PayEasy Login:"
CHALLENGE_TTL_MS: Final[int] = 5 * 60 * 1000
NONCE_BYTES: Final[int] = 32


@dataclass(frozen=True)
class Challenge:
    """Challenge material returned to the client."""

    nonce: str
    timestamp: int
    message: str

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def now_ms() -> int:
    """Return the current wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


def build_message(nonce: str, timestamp: int) -> str:
    """Rebuild the canonical message the wallet signs.

    Args:
        nonce: Hex nonce issued with the challenge
        timestamp: Issue time in milliseconds since the epoch

    Returns:
        ``"PayEasy Login: <nonce>.<timestamp>"``
    """
    return f"{MESSAGE_PREFIX} {nonce}.{timestamp}"


def generate_challenge() -> Challenge:
    """Generate a new login challenge with a 256-bit nonce."""
    nonce = secrets.token_hex(NONCE_BYTES)
    timestamp = now_ms()
    return Challenge(nonce=nonce, timestamp=timestamp, message=build_message(nonce, timestamp))


def is_timestamp_valid(
    timestamp: int,
    *,
    ttl_ms: int = CHALLENGE_TTL_MS,
    now: int | None = None,
) -> bool:
    """Return True if ``timestamp`` lies within ``ttl_ms`` of now, in either direction.

    Clients whose clock is skewed by more than the TTL are rejected.
    """
    current = now_ms() if now is None else now
    return abs(current - timestamp) <= ttl_ms
