"""Cache backends.

All backends store strings under string keys with a TTL and support glob
pattern deletes (``lineage:proj-1:*``). Errors propagate from here; the
CacheService above them decides to fail open.
"""

from __future__ import annotations

import fnmatch
import threading
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    import redis


class CacheBackend(Protocol):
    """Minimal key/value contract shared by every backend."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl_sec: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def delete_pattern(self, pattern: str) -> int: ...


class MemoryCache:
    """In-process cache. Thread-safe, TTL-evicted, oldest entries dropped past max_entries."""

    def __init__(self, max_entries: int = 10000) -> None:
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()
        self._lock = threading.Lock()
        self._max = max_entries

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= time.monotonic():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: str, ttl_sec: int) -> None:
        with self._lock:
            self._entries[key] = (value, time.monotonic() + ttl_sec)
            self._entries.move_to_end(key)
            # Evict oldest
            while len(self._entries) > self._max:
                self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            to_remove = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for key in to_remove:
                del self._entries[key]
            return len(to_remove)

    def cleanup_expired(self) -> int:
        now = time.monotonic()
        with self._lock:
            to_remove = [k for k, (_, exp) in self._entries.items() if exp <= now]
            for key in to_remove:
                del self._entries[key]
            return len(to_remove)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCache:
    """Redis-backed cache for deployments sharing lineage across processes."""

    def __init__(self, client: redis.Redis | Any) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisCache:
        import redis

        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> str | None:
        value = self._client.get(key)
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    def set(self, key: str, value: str, ttl_sec: int) -> None:
        self._client.set(key, value, ex=ttl_sec)

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def delete_pattern(self, pattern: str) -> int:
        keys = list(self._client.scan_iter(match=pattern, count=500))
        if not keys:
            return 0
        return int(self._client.delete(*keys))


class NullCache:
    """Backend that stores nothing. Every read misses."""

    def get(self, key: str) -> str | None:  # noqa: ARG002
        return None

    def set(self, key: str, value: str, ttl_sec: int) -> None:  # noqa: ARG002
        return None

    def delete(self, key: str) -> None:  # noqa: ARG002
        return None

    def delete_pattern(self, pattern: str) -> int:  # noqa: ARG002
        return 0
