"""Read-side cache for public listings.

Holds projections of task and job listings for a short TTL. It is never read
by authentication or by any mutation; writes only invalidate it.
"""

import threading
import time
from functools import lru_cache
from typing import Any

from .config import get_settings
from .logging_config import get_logger

logger = get_logger("web3hire.cache")

TASKS_PREFIX = "tasks:"
JOBS_PREFIX = "jobs:"


class TTLCache:
    """Simple in-memory cache with TTL expiration."""

    def __init__(self, ttl_seconds: int = 300):
        self._cache: dict[str, tuple[Any, float]] = {}
        self._ttl = ttl_seconds
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Get value if exists and not expired."""
        with self._lock:
            if key in self._cache:
                value, timestamp = self._cache[key]
                if time.time() - timestamp < self._ttl:
                    logger.debug(f"Cache hit for {key}")
                    return value
                # Expired, remove it
                del self._cache[key]
        logger.debug(f"Cache miss for {key}")
        return None

    def set(self, key: str, value: Any) -> None:
        """Set value with current timestamp."""
        with self._lock:
            self._cache[key] = (value, time.time())

    def clear_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``."""
        with self._lock:
            keys = [k for k in self._cache if k.startswith(prefix)]
            for key in keys:
                del self._cache[key]
        if keys:
            logger.info(f"Cleared {len(keys)} cache entries with prefix: {prefix}")
        return len(keys)

    def clear(self) -> None:
        """Clear all cached values."""
        with self._lock:
            self._cache.clear()


def make_key(prefix: str, **params: Any) -> str:
    """Build a stable cache key from query parameters."""
    parts = [f"{k}={params[k]}" for k in sorted(params) if params[k] is not None]
    return prefix + "&".join(parts)


@lru_cache
def get_listing_cache() -> TTLCache:
    """Process-wide listing cache, sized from settings."""
    return TTLCache(ttl_seconds=get_settings().cache_ttl_seconds)
