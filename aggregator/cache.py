"""Time-bounded caches shared across requests.

Two module-level caches back discovery: resolved pool addresses (5 minutes,
keyed order-insensitively by chain, factory, token pair and fee) and gas
prices (30 seconds, keyed by chain). Writes are last-writer-wins.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

import structlog

from aggregator.constants import GAS_PRICE_CACHE_TTL_SECONDS, POOL_ADDRESS_CACHE_TTL_SECONDS
from aggregator.models.types import normalize_address

logger = structlog.get_logger()

# Cache statistics are logged once per this many lookups
STATS_LOG_INTERVAL = 50


class TTLCache:
    """Thread-safe key/value cache with a fixed time-to-live per entry.

    Expired entries are dropped when their key is read, and swept from the
    whole cache by the first write after each TTL period, so keys that are
    never read again do not accumulate.
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Any, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._next_sweep = clock() + ttl_seconds
        self.hits = 0
        self.misses = 0

    def get(self, key: Any) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] > self._clock():
                self.hits += 1
                value = entry[1]
            else:
                if entry is not None:
                    del self._entries[key]
                self.misses += 1
                value = None
            lookups = self.hits + self.misses
        if lookups % STATS_LOG_INTERVAL == 0:
            self.log_stats()
        return value

    def set(self, key: Any, value: Any) -> None:
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)
            self._entries[key] = (now + self.ttl_seconds, value)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self.ttl_seconds
        if expired:
            logger.debug("cache_swept", cache=self.name, evicted=len(expired), size=len(self._entries))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def log_stats(self) -> None:
        with self._lock:
            size = len(self._entries)
            hits, misses = self.hits, self.misses
        lookups = hits + misses
        logger.info(
            "cache_stats",
            cache=self.name,
            size=size,
            hits=hits,
            misses=misses,
            hit_rate=round(hits / lookups, 3) if lookups else 0.0,
        )


def pool_address_key(
    chain_id: int,
    factory: str,
    token_a: str,
    token_b: str,
    fee: int | None = None,
) -> tuple[int, str, str, str, int | None]:
    """Cache key for a factory lookup, identical for (a, b) and (b, a)."""
    first, second = sorted((normalize_address(token_a), normalize_address(token_b)))
    return (chain_id, normalize_address(factory), first, second, fee)


pool_address_cache = TTLCache("pool_address", POOL_ADDRESS_CACHE_TTL_SECONDS)
gas_price_cache = TTLCache("gas_price", GAS_PRICE_CACHE_TTL_SECONDS)


__all__ = [
    "TTLCache",
    "STATS_LOG_INTERVAL",
    "pool_address_key",
    "pool_address_cache",
    "gas_price_cache",
]
