"""Origin/Referer validation for state-changing requests."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class OriginCheck:
    """Outcome of an origin validation."""

    valid: bool
    error: str | None = None


def validate_origin(
    headers: Mapping[str, str],
    allowed_origins: Iterable[str] | None = None,
) -> OriginCheck:
    """Validate the request origin against an optional allowlist.

    The ``Origin`` header is used when present, otherwise ``Referer``. A request
    with neither always fails. With an empty allowlist any present origin
    passes; otherwise the origin must start with one of the allowed values.
    """
    origin = headers.get("origin") or headers.get("referer")
    if not origin:
        return OriginCheck(valid=False, error="Origin header missing")

    allowed = [value for value in (allowed_origins or ()) if value]
    if allowed and not any(origin.startswith(value) for value in allowed):
        return OriginCheck(valid=False, error=f"Origin {origin} not allowed")

    return OriginCheck(valid=True)
