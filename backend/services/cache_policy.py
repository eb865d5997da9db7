"""
Cache validity policy.

Decides HIT vs MISS for a stored entry independently of the store's own
expiry. The store may still hold an entry this policy treats as stale; the
gateway then refetches and overwrites it.
"""
from __future__ import annotations

import time
from typing import Optional

from domain.errors import InvalidInputError
from domain.models import CacheEntry, CacheKind, RequestFlags

# Cache duration settings (seconds). Place details change less often than
# the set of places near a point, so they live longer.
CACHE_TTL_SECONDS = {
    "production": {
        CacheKind.NEARBY: 7 * 24 * 3600,
        CacheKind.DETAILS: 14 * 24 * 3600,
    },
    "development": {
        CacheKind.NEARBY: 600,
        CacheKind.DETAILS: 1800,
    },
}


def now_ms() -> int:
    return int(time.time() * 1000)


def ttl_for(kind: CacheKind, development: bool = False, override: Optional[int] = None) -> int:
    if override is not None:
        return override
    env = "development" if development else "production"
    return CACHE_TTL_SECONDS[env][kind]


def parse_request_flags(no_cache: Optional[str], cache_reset: Optional[str]) -> RequestFlags:
    """Build RequestFlags from raw `no-cache` / `cache-reset` query values."""
    reset_ms: Optional[int] = None
    if cache_reset is not None and cache_reset.strip():
        try:
            reset_ms = int(cache_reset.strip())
        except ValueError:
            raise InvalidInputError(f"cache-reset must be epoch milliseconds, got {cache_reset!r}")
    return RequestFlags(
        no_cache=(no_cache or "").strip().lower() == "true",
        cache_reset_ms=reset_ms,
    )


def should_use_cache(flags: RequestFlags) -> bool:
    """An explicit bypass skips the cache read entirely."""
    return not flags.no_cache


def is_entry_fresh(
    entry: Optional[CacheEntry],
    flags: RequestFlags,
    ttl_seconds: int,
    current_ms: Optional[int] = None,
) -> bool:
    if entry is None or flags.no_cache:
        return False
    if flags.cache_reset_ms is not None and entry.written_at_ms <= flags.cache_reset_ms:
        return False
    current = now_ms() if current_ms is None else current_ms
    # A reset can only shorten freshness; the TTL still applies.
    return current - entry.written_at_ms < ttl_seconds * 1000
