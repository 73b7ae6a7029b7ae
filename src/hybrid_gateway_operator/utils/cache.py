"""Cache utilities for Kubernetes API calls."""

from __future__ import annotations

import threading
import time
from typing import Any, Optional

# Cache with TTL support
_cache: dict[str, tuple[Any, float]] = {}
_cache_lock = threading.Lock()
_cache_ttl: float = 30.0


def get_cached_object(key: str) -> Optional[Any]:
    """Get an object from cache if it hasn't expired.

    Args:
        key: Cache key (typically "kind:namespace:name")

    Returns:
        Cached object or None if not found or expired
    """
    with _cache_lock:
        if key not in _cache:
            return None

        obj, timestamp = _cache[key]
        if time.time() - timestamp > _cache_ttl:
            del _cache[key]
            return None

        return obj


def set_cache_ttl(ttl_seconds: float) -> None:
    """Set how long cached objects stay valid."""
    global _cache_ttl
    _cache_ttl = ttl_seconds


def set_cached_object(key: str, obj: Any) -> None:
    """Store an object in cache with current timestamp."""
    with _cache_lock:
        _cache[key] = (obj, time.time())


def invalidate_cache(pattern: Optional[str] = None) -> None:
    """Invalidate cache entries.

    Args:
        pattern: Optional pattern to match keys (if None, clears all)
    """
    with _cache_lock:
        if pattern is None:
            _cache.clear()
        else:
            for key in [key for key in _cache if pattern in key]:
                del _cache[key]


def make_cache_key(kind: str, namespace: str, name: str) -> str:
    """Create a cache key for a Kubernetes resource.

    Args:
        kind: Resource kind (e.g., "GatewayClass")
        namespace: Resource namespace ("" for cluster-scoped kinds)
        name: Resource name

    Returns:
        Cache key string
    """
    return f"{kind}:{namespace}:{name}"
