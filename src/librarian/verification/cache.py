"""In-memory result caches for verifiers."""

import hashlib
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
HashFunction = Callable[[str, List[str]], str]


def content_hash(claim: str, documents: List[str]) -> str:
    """Deterministic sha256 key for a claim and its source documents."""
    payload = json.dumps({"claim": claim, "documents": documents}, sort_keys=True)
    return hashlib.sha256(payload.encode()).hexdigest()


class VerificationCache:
    """
    Bounded in-memory cache with optional TTL.

    PATTERN: Dict-based cache with LRU eviction and hit/miss statistics
    CRITICAL: Clock is injectable so expiry is testable without sleeping
    GOTCHA: A ttl of None means entries never expire
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: Optional[float] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize cache.

        Args:
            max_size: Maximum number of cached entries
            ttl: Time-to-live in seconds (no expiry if None)
            clock: Time source in seconds (time.monotonic if None)
        """
        self.max_size = max_size
        self.ttl = ttl
        self.clock = clock or time.monotonic
        self.cache: Dict[str, Dict[str, Any]] = {}
        self.logger = logging.getLogger(__name__)

        # Statistics
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a cached value.

        Args:
            key: Cache key

        Returns:
            Cached value, or None if missing or expired
        """
        entry = self.cache.get(key)
        if entry is None:
            self.misses += 1
            return None

        now = self.clock()
        if self.ttl is not None and now - entry["created_at"] > self.ttl:
            self.logger.debug(f"Cache entry expired: {key[:16]}...")
            del self.cache[key]
            self.misses += 1
            return None

        entry["last_accessed"] = now
        entry["access_count"] += 1
        self.hits += 1
        return entry["value"]

    def set(self, key: str, value: Any) -> None:
        """
        Store a value, evicting the least recently used entry at capacity.

        Args:
            key: Cache key
            value: Value to cache
        """
        if key not in self.cache and len(self.cache) >= self.max_size:
            self._evict_lru()

        now = self.clock()
        self.cache[key] = {
            "value": value,
            "created_at": now,
            "last_accessed": now,
            "access_count": 0,
        }

    def _evict_lru(self) -> None:
        if not self.cache:
            return

        lru_key = min(self.cache.keys(), key=lambda k: self.cache[k]["last_accessed"])
        del self.cache[lru_key]
        self.evictions += 1
        self.logger.debug(f"Evicted LRU entry: {lru_key[:16]}...")

    def clear(self) -> None:
        """Clear all cached entries."""
        count = len(self.cache)
        self.cache.clear()
        self.logger.debug(f"Cleared {count} cache entries")

    def __len__(self) -> int:
        return len(self.cache)

    def get_hit_rate(self) -> float:
        """Hit rate in [0, 1]."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with size, hits, misses, evictions and hit rate
        """
        return {
            "size": len(self.cache),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": self.get_hit_rate(),
            "total_requests": self.hits + self.misses,
        }


class GroundingCache(VerificationCache):
    """Grounding result cache keyed by a hash of (claim, documents)."""

    def __init__(
        self,
        max_size: int = 1000,
        hash_fn: Optional[HashFunction] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(max_size=max_size, ttl=None, clock=clock)
        self.hash_fn = hash_fn or content_hash

    def key_for(self, claim: str, documents: List[str]) -> str:
        """Cache key for a grounding check."""
        return self.hash_fn(claim, list(documents))
