"""
Thread-safe metadata cache for market parameters.

Holds tick sizes, neg-risk flags and fee rates per token so order placement
does not hit the metadata endpoints on every call.
"""

import time
import threading
from typing import Optional, Any, Callable
from dataclasses import dataclass
from collections import OrderedDict
import logging

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cache entry with optional expiry."""
    value: Any
    expires_at: Optional[float]  # None never expires


class TTLCache:
    """
    Thread-safe cache with optional time-to-live and LRU eviction.

    A TTL of 0 (or None with default_ttl 0) stores the entry without expiry.
    OrderedDict keeps the least recently used key first for O(1) eviction.
    """

    def __init__(self, default_ttl: float = 0.0, max_size: int = 10000):
        """
        Initialize cache.

        Args:
            default_ttl: Default TTL in seconds, 0 for no expiry
            max_size: Maximum entries before LRU eviction
        """
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns:
            Cached value or None if expired/missing
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if entry.expires_at is not None and time.monotonic() > entry.expires_at:
                del self._cache[key]
                logger.debug(f"Cache expired: {key}")
                return None

            self._cache.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: TTL in seconds (default_ttl if None, 0 for no expiry)
        """
        ttl = ttl if ttl is not None else self.default_ttl
        expires_at = time.monotonic() + ttl if ttl > 0 else None

        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self.max_size:
                lru_key, _ = self._cache.popitem(last=False)
                logger.debug(f"Cache LRU eviction: {lru_key}")

            self._cache[key] = CacheEntry(value=value, expires_at=expires_at)

    def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Any],
        ttl: Optional[float] = None
    ) -> Any:
        """
        Get from cache or fetch if missing/expired.

        The fetch runs outside the lock; concurrent misses may both fetch and
        the last writer wins.
        """
        value = self.get(key)
        if value is not None:
            return value

        logger.debug(f"Cache miss, fetching: {key}")
        value = fetch_fn()
        self.set(key, value, ttl)
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix; returns the count removed."""
        with self._lock:
            doomed = [key for key in self._cache if key.startswith(prefix)]
            for key in doomed:
                del self._cache[key]
            return len(doomed)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._cache)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._cache.keys())


class MetadataCache:
    """
    Per-client cache of market metadata.

    Tick sizes honour tick_size_ttl (0 keeps them until invalidated). Neg-risk
    flags and fee rates never expire on their own.
    """

    TICK_SIZE = "tick_size:"
    NEG_RISK = "neg_risk:"
    FEE_RATE = "fee_rate:"

    def __init__(self, tick_size_ttl: float = 0.0):
        """
        Initialize metadata cache.

        Args:
            tick_size_ttl: Tick size TTL in seconds, 0 for no expiry
        """
        self.tick_size_ttl = tick_size_ttl
        self.cache = TTLCache(default_ttl=0.0)

    def get_tick_size(self, token_id: str) -> Optional[str]:
        return self.cache.get(self.TICK_SIZE + token_id)

    def set_tick_size(self, token_id: str, tick_size: str) -> None:
        self.cache.set(self.TICK_SIZE + token_id, str(tick_size), ttl=self.tick_size_ttl)

    def get_neg_risk(self, token_id: str) -> Optional[bool]:
        return self.cache.get(self.NEG_RISK + token_id)

    def set_neg_risk(self, token_id: str, neg_risk: bool) -> None:
        self.cache.set(self.NEG_RISK + token_id, bool(neg_risk))

    def get_fee_rate(self, token_id: str) -> Optional[int]:
        """Cached fee rate in basis points."""
        return self.cache.get(self.FEE_RATE + token_id)

    def set_fee_rate(self, token_id: str, fee_rate_bps: int) -> None:
        self.cache.set(self.FEE_RATE + token_id, int(fee_rate_bps))

    def clear_tick_size(self, *token_ids: str) -> None:
        """Drop tick sizes for the given tokens, or all of them when none given."""
        if not token_ids:
            removed = self.cache.delete_prefix(self.TICK_SIZE)
            logger.debug(f"Cleared {removed} cached tick sizes")
            return
        for token_id in token_ids:
            self.cache.delete(self.TICK_SIZE + token_id)

    def invalidate(self, token_id: Optional[str] = None) -> None:
        """Forget everything cached for one token, or for every token."""
        if token_id is None:
            self.cache.clear()
            logger.info("Metadata cache cleared")
            return
        for prefix in (self.TICK_SIZE, self.NEG_RISK, self.FEE_RATE):
            self.cache.delete(prefix + token_id)
        logger.debug(f"Metadata invalidated for {token_id}")
