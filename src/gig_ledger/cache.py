"""In-process result cache with TTL expiry and least-recently-used eviction.

The cache carries no correctness obligation: any entry may disappear at any
time and callers simply recompute. Keys are namespaced by user
(``dashboard:<user_id>:...``, ``gigs:<user_id>:...``) so that a mutation can
drop everything derived from that user's rows with one ``invalidate`` call.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from gig_ledger.config import get_settings

logger = logging.getLogger(__name__)

HIGH_UTILIZATION_PERCENT = 80

DASHBOARD_PREFIX = "dashboard"
GIG_LIST_PREFIX = "gigs"


@dataclass
class CacheEntry:
    value: Any
    expires_at: float
    last_access: float
    hits: int = 0


@dataclass(frozen=True)
class CacheStats:
    entries: int
    max_entries: int
    utilization: int
    total_hits: int
    average_hits: int


class ResultCache:
    """Bounded TTL + LRU cache. Never blocks."""

    def __init__(
        self,
        max_entries: int = 5000,
        default_ttl: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        entry = self._entries.get(key)
        now = self._clock()
        if entry is not None and entry.expires_at > now:
            entry.hits += 1
            entry.last_access = now
            return entry.value
        self._entries.pop(key, None)
        return None

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store ``value`` under ``key``. None values are not cached."""
        if value is None:
            return
        if key not in self._entries and len(self._entries) >= self.max_entries:
            self._evict_lru()

        now = self._clock()
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(value=value, expires_at=now + ttl, last_access=now)

    def invalidate(self, pattern: str) -> int:
        """Remove every key containing ``pattern``; return how many were removed."""
        doomed = [key for key in self._entries if pattern in key]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def invalidate_user(self, user_id: int) -> int:
        """Drop the dashboard aggregates and gig lists derived from one user's rows."""
        return self.invalidate(f"{DASHBOARD_PREFIX}:{user_id}:") + self.invalidate(
            f"{GIG_LIST_PREFIX}:{user_id}:"
        )

    def clear(self) -> None:
        self._entries.clear()

    def clean_expired(self) -> int:
        """Remove expired entries; return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> CacheStats:
        total_hits = sum(entry.hits for entry in self._entries.values())
        size = len(self._entries)
        stats = CacheStats(
            entries=size,
            max_entries=self.max_entries,
            utilization=round(size / self.max_entries * 100),
            total_hits=total_hits,
            average_hits=round(total_hits / size) if size else 0,
        )
        if stats.utilization > HIGH_UTILIZATION_PERCENT:
            logger.warning(
                "Cache utilization high: %s%% (%s/%s)",
                stats.utilization,
                stats.entries,
                stats.max_entries,
            )
        return stats

    def _evict_lru(self) -> None:
        if not self._entries:
            return
        oldest_key = min(self._entries, key=lambda k: self._entries[k].last_access)
        del self._entries[oldest_key]


def dashboard_key(user_id: int, *parts: object) -> str:
    return ":".join([DASHBOARD_PREFIX, str(user_id), *(str(p) for p in parts)])


def gig_list_key(user_id: int, limit: int, offset: int) -> str:
    return f"{GIG_LIST_PREFIX}:{user_id}:{limit}:{offset}"


@lru_cache(maxsize=1)
def get_cache() -> ResultCache:
    """Process-wide cache shared by every request."""
    settings = get_settings()
    return ResultCache(
        max_entries=settings.cache_max_entries,
        default_ttl=settings.aggregate_cache_ttl,
    )
