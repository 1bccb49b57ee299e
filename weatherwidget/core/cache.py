"""
Key-value cache stores with per-entry expiry.

DatabaseCacheStore keeps entries in the cache_entries table so they survive restarts and
are shared between the API process and the scheduler; MemoryCacheStore is a process-local
dict used when cache.backend is "memory".
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy import delete

from weatherwidget.core.db import session_scope
from weatherwidget.core.models import CacheEntry

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """get / set with TTL / delete / delete_by_prefix. Deleting a missing key is a no-op."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value for key, or None if absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int) -> None:
        """Insert or replace key, expiring ttl seconds from now."""

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def delete_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix; return how many were removed."""


class MemoryCacheStore(CacheStore):
    """Dict-backed store. Expiration is lazy (on get); there is no background reaper.

    The refresh timer thread and the API share one instance, so every access holds the lock.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._store: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None
            expires_at, value = item
            if self._clock() >= expires_at:
                self._store.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._store[key] = (self._clock() + ttl, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def delete_by_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in list(self._store) if k.startswith(prefix)]
            for k in keys:
                del self._store[k]
        return len(keys)

    def clear(self) -> None:
        """Remove all entries from the cache."""
        with self._lock:
            self._store.clear()


class DatabaseCacheStore(CacheStore):
    """Store backed by the cache_entries table."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    def get(self, key: str) -> Optional[Any]:
        with session_scope() as session:
            row = session.get(CacheEntry, key)
            if row is None:
                return None
            if row.expires_at <= self._clock():
                logger.debug(f"Cache entry expired: {key}")
                session.delete(row)
                return None
            return row.value

    def set(self, key: str, value: Any, ttl: int) -> None:
        now = self._clock()
        expires_at = now + timedelta(seconds=ttl)
        with session_scope() as session:
            row = session.get(CacheEntry, key)
            if row:
                row.value = value
                row.expires_at = expires_at
                row.created_at = now
            else:
                session.add(CacheEntry(key=key, value=value, expires_at=expires_at, created_at=now))

    def delete(self, key: str) -> None:
        with session_scope() as session:
            session.execute(delete(CacheEntry).where(CacheEntry.key == key))

    def delete_by_prefix(self, prefix: str) -> int:
        with session_scope() as session:
            result = session.execute(
                delete(CacheEntry).where(CacheEntry.key.startswith(prefix, autoescape=True))
            )
            return result.rowcount or 0


def create_cache_store(config_data: Optional[Dict[str, Any]] = None) -> CacheStore:
    """Factory: cache.backend is "database" (default) or "memory"."""
    backend = ((config_data or {}).get("cache") or {}).get("backend", "database")
    if backend == "memory":
        return MemoryCacheStore()
    if backend != "database":
        logger.warning(f"Unknown cache backend '{backend}', using database")
    return DatabaseCacheStore()
