"""Read-through TTL cache with stale-on-error fallback.

Every dashboard metric goes through one :class:`Cache` owned by the
application. A read serves the stored payload while it is fresh, otherwise it
awaits the underlying fetch. When that fetch fails, the last known payload is
served regardless of its age; only a key that never succeeded lets the error
escape (as :class:`ColdMissError`).
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional
from urllib.parse import urlencode

from loguru import logger

from .errors import ColdMissError


Fetcher = Callable[[str], Awaitable[Any]]


class CacheStatus(str, Enum):
    """How a payload was produced."""
    HIT = "HIT"
    MISS = "MISS"
    STALE = "STALE"


@dataclass
class CacheEntry:
    """A single cache entry with TTL."""
    key: str
    payload: Any
    fetched_at: float
    ttl: float  # TTL in seconds

    def age(self, now: float) -> float:
        return now - self.fetched_at

    def is_fresh(self, now: float) -> bool:
        return self.age(now) < self.ttl

    def is_expired(self, now: float, grace_factor: float) -> bool:
        """True once the entry outlived its TTL by the grace multiplier."""
        return self.age(now) > self.ttl * grace_factor


def make_key(url: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Build a cache key from a URL and its query parameters.

    Parameters are sorted by name so the same logical request always maps to
    the same key. ``None`` values are dropped and list values expanded.
    """
    if not params:
        return url

    pairs = []
    for name in sorted(params):
        value = params[name]
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((name, str(item)) for item in value)
        else:
            pairs.append((name, str(value)))

    if not pairs:
        return url
    return f"{url}?{urlencode(pairs)}"


class Cache:
    """In-memory read-through cache with per-call TTLs.

    Args:
        fetcher: Default underlying fetch, called with the key on a miss.
            A fetcher passed to :meth:`fetch` takes precedence.
        grace_factor: Entries older than ``ttl * grace_factor`` are removed
            by :meth:`sweep`.
        clock: Returns the current time in seconds.
        single_flight: When enabled, concurrent misses for one key share a
            single underlying fetch instead of each issuing their own.
    """

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        *,
        grace_factor: float = 2.0,
        clock: Callable[[], float] = time.time,
        single_flight: bool = False,
    ):
        if grace_factor < 1:
            raise ValueError("grace_factor must be at least 1")
        self._fetcher = fetcher
        self._grace_factor = grace_factor
        self._clock = clock
        self._single_flight = single_flight
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Future] = {}

    @property
    def grace_factor(self) -> float:
        return self._grace_factor

    def now(self) -> float:
        """Current reading of the cache clock."""
        return self._clock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry without fetching or checking freshness."""
        return self._entries.get(key)

    async def fetch(self, key: str, ttl: float, fetcher: Optional[Fetcher] = None) -> Any:
        """Return the payload for ``key``, refreshing it when older than ``ttl``."""
        payload, _ = await self.fetch_with_status(key, ttl, fetcher)
        return payload

    async def fetch_with_status(
        self,
        key: str,
        ttl: float,
        fetcher: Optional[Fetcher] = None,
    ) -> tuple[Any, CacheStatus]:
        """Like :meth:`fetch`, also reporting whether it was a hit, miss or stale serve."""
        if ttl < 0:
            raise ValueError("ttl must not be negative")
        fetcher = fetcher or self._fetcher
        if fetcher is None:
            raise ValueError(f"No fetcher available for {key!r}")

        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(now):
            logger.debug("Cache hit for {}", key)
            return entry.payload, CacheStatus.HIT

        if not self._single_flight:
            return await self._refresh(key, ttl, fetcher, now)

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._refresh_shared(key, ttl, fetcher, now))
            self._inflight[key] = pending
        else:
            logger.debug("Joining in-flight fetch for {}", key)
        return await asyncio.shield(pending)

    async def _refresh_shared(
        self, key: str, ttl: float, fetcher: Fetcher, now: float,
    ) -> tuple[Any, CacheStatus]:
        try:
            return await self._refresh(key, ttl, fetcher, now)
        finally:
            # Gone from the map before the shared future resolves
            self._inflight.pop(key, None)

    async def _refresh(
        self, key: str, ttl: float, fetcher: Fetcher, now: float,
    ) -> tuple[Any, CacheStatus]:
        """Await the fetcher and store its payload stamped with the read time ``now``."""
        logger.info("Fetching {}", key)
        try:
            payload = await fetcher(key)
        except Exception as exc:
            # Re-read: another caller may have stored a value meanwhile
            entry = self._entries.get(key)
            if entry is None:
                logger.error("Fetching {} failed with nothing cached: {}", key, exc)
                raise ColdMissError(key, exc) from exc
            logger.warning(
                "Using stale cache for {} (age {:.0f}s): {}",
                key, entry.age(self._clock()), exc,
            )
            return entry.payload, CacheStatus.STALE

        self._entries[key] = CacheEntry(
            key=key,
            payload=payload,
            fetched_at=now,
            ttl=ttl,
        )
        return payload, CacheStatus.MISS

    def invalidate(self, key: str) -> bool:
        """Invalidate a cache entry."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all cache entries."""
        self._entries.clear()

    def sweep(self) -> int:
        """Remove entries older than their TTL times the grace factor."""
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items()
            if entry.is_expired(now, self._grace_factor)
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> dict:
        """Summarize the current entries."""
        now = self._clock()
        return {
            "size": len(self._entries),
            "fresh": sum(1 for e in self._entries.values() if e.is_fresh(now)),
            "inFlight": len(self._inflight),
            "graceFactor": self._grace_factor,
            "singleFlight": self._single_flight,
            "entries": [
                {
                    "key": e.key,
                    "ageSeconds": round(e.age(now), 1),
                    "ttl": e.ttl,
                    "fresh": e.is_fresh(now),
                }
                for e in sorted(self._entries.values(), key=lambda e: e.key)
            ],
        }


async def run_sweeper(cache: Cache, interval: float) -> None:
    """Sweep ``cache`` every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        removed = cache.sweep()
        if removed:
            logger.debug("Cache sweep removed {} entries", removed)
