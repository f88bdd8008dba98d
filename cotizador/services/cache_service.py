"""
Cache Service — small key/value cache with per-entry expiry.

Injected wherever a service needs to keep fetched data around
(currently the currency snapshot) instead of module-level globals.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class CacheService(ABC):
    """Interface: get / set / invalidate."""

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the cached value, or None when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store a value; ``ttl_seconds=None`` keeps it until invalidated."""

    @abstractmethod
    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one key, or everything when *key* is None."""


class InMemoryCacheService(CacheService):
    """Process-local cache. Thread-safe; the clock is injectable for tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[Any, Optional[float]]] = {}

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        with self._lock:
            self._entries[key] = (value, expires_at)
        logger.debug(f"Cache set: {key} (ttl={ttl_seconds})")

    def invalidate(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
        logger.info(f"Cache invalidated: {key or 'ALL'}")
