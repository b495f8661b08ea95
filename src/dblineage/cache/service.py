"""Fail-open cache service and key grammar.

Key grammar:
    lineage:<sorted project ids joined by _>:<table>:<column or ALL>
    tables:<sorted project ids joined by _>
    schemas:app:<app id>
    source:<component id>
    config:lineage

Any backend error is logged and treated as a miss (reads) or a no-op
(writes); callers never see it.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

import structlog

from dblineage.cache.backends import CacheBackend, MemoryCache, NullCache, RedisCache
from dblineage.config.constants import (
    ALL_COLUMNS_KEY,
    COLUMNS_PREFIX,
    CONFIG_CACHE_KEY,
    LINEAGE_PREFIX,
    SCHEMAS_PREFIX,
    SOURCE_PREFIX,
    TABLES_PREFIX,
)
from dblineage.config.models import CacheConfig

log = structlog.get_logger()


# =============================================================================
# Key builders
# =============================================================================


def project_key(project_ids: Iterable[str]) -> str:
    """Order-independent identity of a project set."""
    return "_".join(sorted(str(p) for p in project_ids))


def lineage_key(project_ids: Iterable[str], table: str, column: str | None = None) -> str:
    return f"{LINEAGE_PREFIX}{project_key(project_ids)}:{table}:{column or ALL_COLUMNS_KEY}"


def tables_key(project_ids: Iterable[str]) -> str:
    return f"{TABLES_PREFIX}{project_key(project_ids)}"


def schemas_key(app_id: str) -> str:
    return f"{SCHEMAS_PREFIX}app:{app_id}"


def source_key(component_id: str) -> str:
    return f"{SOURCE_PREFIX}{component_id}"


def config_key() -> str:
    return CONFIG_CACHE_KEY


def project_patterns(project_id: str) -> list[str]:
    """Patterns covering every cached entry scoped to one project."""
    return [
        f"{prefix}{project_id}:*"
        for prefix in (LINEAGE_PREFIX, TABLES_PREFIX, COLUMNS_PREFIX, SCHEMAS_PREFIX)
    ]


# =============================================================================
# Service
# =============================================================================


class CacheService:
    """JSON cache over a backend. Fails open."""

    def __init__(self, backend: CacheBackend, default_ttl_sec: int = 3600) -> None:
        self.backend = backend
        self.default_ttl_sec = default_ttl_sec

    def get(self, key: str) -> Any | None:
        try:
            raw = self.backend.get(key)
        except Exception as e:
            log.warning("cache_backend_error", op="get", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning("cache_corrupt_entry", key=key)
            return None

    def set(self, key: str, value: Any, ttl_sec: int | None = None) -> bool:
        """Store ``value`` as JSON. False when the backend refused it."""
        try:
            self.backend.set(key, json.dumps(value), ttl_sec or self.default_ttl_sec)
        except Exception as e:
            log.warning("cache_backend_error", op="set", key=key, error=str(e))
            return False
        return True

    def delete(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except Exception as e:
            log.warning("cache_backend_error", op="delete", key=key, error=str(e))

    def delete_pattern(self, pattern: str) -> int:
        try:
            return self.backend.delete_pattern(pattern)
        except Exception as e:
            log.warning("cache_backend_error", op="delete_pattern", key=pattern, error=str(e))
            return 0

    def invalidate_project(self, project_id: str) -> int:
        """Drop every project-scoped entry. Returns the number of keys removed."""
        removed = sum(self.delete_pattern(p) for p in project_patterns(project_id))
        # Single-project table listing has no trailing segment
        removed += self.delete_pattern(tables_key([project_id]))
        log.info("cache_project_invalidated", project_id=project_id, keys=removed)
        return removed


def create_cache(config: CacheConfig | None = None) -> CacheService:
    """Build the configured backend. Redis is imported only when selected."""
    config = config or CacheConfig()
    backend: CacheBackend
    if config.backend == "redis":
        backend = RedisCache.from_url(config.redis_url or "redis://localhost:6379/0")
    elif config.backend == "none":
        backend = NullCache()
    else:
        backend = MemoryCache(max_entries=config.max_entries)
    return CacheService(backend, default_ttl_sec=config.default_ttl_sec)
